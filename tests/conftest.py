import logging
from datetime import datetime, timezone

import pytest

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document
from shared.models.errors import SearchIndexError, StoreError


class StoreClientMemory(StoreClientInterface):
    """Document store kept in a dict; fail_reads / fail_writes simulate an outage."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.documents: dict[str, Document] = {}
        self.fail_reads = False
        self.fail_writes = False

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def do_healthcheck(self) -> bool:
        return not self.fail_reads

    async def do_create_schema(self) -> None:
        pass

    def _check(self, write: bool = False) -> None:
        if self.fail_reads and not write:
            raise StoreError("store unavailable")
        if self.fail_writes and write:
            raise StoreError("store unavailable")

    async def do_save(self, document: Document) -> Document:
        self._check(write=True)
        self.documents[document.id] = document
        return document

    async def do_find_by_id(self, document_id: str) -> Document | None:
        self._check()
        return self.documents.get(document_id)

    async def do_find_all(self) -> list[Document]:
        self._check()
        return list(self.documents.values())

    async def do_find_by_category(self, category: str) -> list[Document]:
        self._check()
        return [d for d in self.documents.values() if d.category == category]

    async def do_update(self, document: Document) -> Document:
        self._check(write=True)
        self.documents[document.id] = document
        return document

    async def do_delete_by_id(self, document_id: str) -> None:
        self._check(write=True)
        self.documents.pop(document_id, None)

    async def do_count(self) -> int:
        self._check()
        return len(self.documents)


def _text_of(source: dict, fields: list[str] | None) -> str:
    keys = fields or ["title", "content"]
    return " ".join(str(source.get(k) or "") for k in keys).lower()


def _matches(source: dict, query: dict) -> bool:
    """Evaluate the subset of the query DSL the gateway emits against one source."""
    (kind, clause), = query.items()
    if kind == "match_all":
        return True
    if kind == "query_string":
        return clause["query"].lower() in _text_of(source, None)
    if kind == "multi_match":
        return clause["query"].lower() in _text_of(source, clause["fields"])
    if kind in ("match", "match_phrase"):
        (field, opts), = clause.items()
        return opts["query"].lower() in _text_of(source, [field])
    if kind == "more_like_this":
        words = set(clause["like"].lower().split())
        return bool(words & set(_text_of(source, clause["fields"]).split()))
    if kind == "term":
        (field, opts), = clause.items()
        value = source.get(field)
        if isinstance(value, bool):
            value = "true" if value else "false"
        return value is not None and str(value) == opts["value"]
    if kind == "prefix":
        (field, opts), = clause.items()
        return str(source.get(field) or "").startswith(opts["value"])
    if kind == "wildcard":
        (field, opts), = clause.items()
        return str(source.get(field) or "").startswith(opts["value"].rstrip("*"))
    if kind == "exists":
        return source.get(clause["field"]) not in (None, "", [])
    if kind == "bool":
        if not all(_matches(source, q) for q in clause.get("must", [])):
            return False
        if not all(_matches(source, q) for q in clause.get("filter", [])):
            return False
        should = clause.get("should", [])
        if should:
            hits = sum(1 for q in should if _matches(source, q))
            return hits >= clause.get("minimum_should_match", 1)
        return True
    raise ValueError(f"query kind not supported by the fake index: {kind}")


class FakeIndexClient:
    """In-memory search index with the request surface of IndexClientInterface."""

    def __init__(self):
        self.entries: dict[str, dict] = {}
        self.exists = True
        self.fail_ids: set[str] = set()
        self.fail_queries = False
        self.fail_counts = False
        self.search_bodies: list[dict] = []
        self.count_bodies: list[dict] = []
        self.index_calls: list[str] = []
        self.deleted_index = 0
        self.created_index = 0
        self.healthy = True

    def get_index_name(self) -> str:
        return "test_documents"

    def get_engine_name(self) -> str:
        return "fake"

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def do_healthcheck(self) -> bool:
        return self.healthy

    async def do_existence_check(self) -> bool:
        return self.exists

    async def do_create_index(self) -> bool:
        if self.exists:
            return False
        self.exists = True
        self.created_index += 1
        return True

    async def do_delete_index(self) -> bool:
        if not self.exists:
            return False
        self.exists = False
        self.entries.clear()
        self.deleted_index += 1
        return True

    async def do_index_document(self, document: Document) -> None:
        self.index_calls.append(document.id)
        if document.id in self.fail_ids:
            raise SearchIndexError(f"indexing {document.id} rejected")
        self.entries[document.id] = document.to_index_source()

    async def do_get_by_id(self, document_id: str) -> dict | None:
        return self.entries.get(document_id)

    async def do_delete_by_id(self, document_id: str) -> bool:
        return self.entries.pop(document_id, None) is not None

    def _matching(self, query: dict) -> list[tuple[str, dict]]:
        return [(doc_id, src) for doc_id, src in self.entries.items() if _matches(src, query)]

    async def do_query(self, body: dict) -> list[dict]:
        self.search_bodies.append(body)
        if self.fail_queries:
            raise SearchIndexError("search failed")
        matching = self._matching(body["query"])
        for sort in reversed(body.get("sort", [])):
            (field, opts), = sort.items()
            matching.sort(key=lambda item: str(item[1].get(field) or ""), reverse=opts["order"] == "desc")
        page = matching[body["from"]: body["from"] + body["size"]]
        return [
            {"id": doc_id, "score": 1.0, "source": src, "highlight": {}}
            for doc_id, src in page
        ]

    async def do_count(self, body: dict) -> int:
        self.count_bodies.append(body)
        if self.fail_counts:
            raise SearchIndexError("count failed")
        return len(self._matching(body["query"]))


def make_document(doc_id: str, category: str = "news", **kwargs) -> Document:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    values = {
        "id": doc_id,
        "title": f"Title {doc_id}",
        "content": f"content of document {doc_id}",
        "category": category,
        "author": "alice",
        "created_at": created,
        "updated_at": created,
    }
    values.update(kwargs)
    return Document(**values)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("search_gateway.tests"))


@pytest.fixture
def store_client(helper_config) -> StoreClientMemory:
    return StoreClientMemory(helper_config=helper_config)


@pytest.fixture
def index_client() -> FakeIndexClient:
    return FakeIndexClient()
