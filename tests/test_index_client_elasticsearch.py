import json

import httpx
import pytest

from conftest import make_document
from shared.clients.index.IndexClientManager import IndexClientManager
from shared.clients.index.elasticsearch.IndexClientElasticsearch import IndexClientElasticsearch
from shared.models.errors import SearchIndexError


@pytest.fixture
def es_env(monkeypatch):
    monkeypatch.setenv("INDEX_ENGINE", "elasticsearch")
    monkeypatch.setenv("INDEX_ELASTICSEARCH_BASE_URL", "http://es.test:9200")
    monkeypatch.setenv("INDEX_ELASTICSEARCH_API_KEY", "secret")
    monkeypatch.setenv("INDEX_ELASTICSEARCH_INDEX", "docs")
    monkeypatch.setenv("INDEX_ELASTICSEARCH_REFRESH", "wait_for")


class Recorder:
    """MockTransport handler answering from a (method, path) -> (status, body) table."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.raw_path.split(b"?")[0].decode()
        status, body = self.routes.get((request.method, path), (404, {"error": "not found"}))
        return httpx.Response(status, json=body)


async def _booted(helper_config, routes) -> tuple[IndexClientElasticsearch, Recorder]:
    recorder = Recorder(routes)
    client = IndexClientElasticsearch(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(recorder))
    return client, recorder


async def test_manager_resolves_engine(es_env, helper_config):
    client = IndexClientManager(helper_config=helper_config).get_client()
    assert isinstance(client, IndexClientElasticsearch)
    assert client.get_engine_name() == "elasticsearch"


def test_unknown_engine_is_rejected(monkeypatch, helper_config):
    monkeypatch.setenv("INDEX_ENGINE", "solr")
    with pytest.raises(ValueError):
        IndexClientManager(helper_config=helper_config)


def test_missing_base_url_is_rejected(monkeypatch, helper_config):
    monkeypatch.delenv("INDEX_ELASTICSEARCH_BASE_URL", raising=False)
    with pytest.raises(ValueError):
        IndexClientElasticsearch(helper_config=helper_config)


async def test_create_index_sends_mapping(es_env, helper_config):
    client, recorder = await _booted(helper_config, {
        ("HEAD", "/docs"): (404, {}),
        ("PUT", "/docs"): (200, {"acknowledged": True}),
    })
    try:
        assert await client.do_create_index() is True
    finally:
        await client.close()

    put = recorder.requests[-1]
    payload = json.loads(put.content)
    assert payload["settings"] == {"number_of_shards": 1, "number_of_replicas": 0}
    props = payload["mappings"]["properties"]
    assert props["category"]["type"] == "keyword"
    assert props["title"]["fields"]["keyword"]["type"] == "keyword"
    assert props["createdAt"]["type"] == "date"
    assert put.headers["Authorization"] == "ApiKey secret"


async def test_create_index_skips_existing(es_env, helper_config):
    client, recorder = await _booted(helper_config, {("HEAD", "/docs"): (200, {})})
    try:
        assert await client.do_create_index() is False
    finally:
        await client.close()
    assert [r.method for r in recorder.requests] == ["HEAD"]


async def test_index_document_puts_source_by_id(es_env, helper_config):
    client, recorder = await _booted(helper_config, {
        ("PUT", "/docs/_doc/a%2Fb"): (201, {"result": "created"}),
    })
    doc = make_document("a/b")
    try:
        await client.do_index_document(doc)
    finally:
        await client.close()

    request = recorder.requests[0]
    assert request.url.params["refresh"] == "wait_for"
    assert json.loads(request.content) == doc.to_index_source()


async def test_backend_error_becomes_index_error(es_env, helper_config):
    client, _ = await _booted(helper_config, {
        ("PUT", "/docs/_doc/d1"): (500, {"error": "boom"}),
    })
    try:
        with pytest.raises(SearchIndexError):
            await client.do_index_document(make_document("d1"))
    finally:
        await client.close()


async def test_transport_error_becomes_index_error(es_env, helper_config):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    client = IndexClientElasticsearch(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(refuse))
    try:
        with pytest.raises(SearchIndexError):
            await client.do_count({"query": {"match_all": {}}})
        assert await client.do_healthcheck() is False
    finally:
        await client.close()


async def test_get_and_delete_missing_entry(es_env, helper_config):
    client, _ = await _booted(helper_config, {})
    try:
        assert await client.do_get_by_id("nope") is None
        assert await client.do_delete_by_id("nope") is False
    finally:
        await client.close()


async def test_query_and_count_parse_responses(es_env, helper_config):
    client, recorder = await _booted(helper_config, {
        ("POST", "/docs/_search"): (200, {"hits": {"hits": [
            {"_id": "d1", "_score": 1.5, "_source": {"id": "d1"}, "highlight": {"title": ["<strong>x</strong>"]}},
            {"_id": "d2", "_score": None, "_source": {"id": "d2"}},
        ]}}),
        ("POST", "/docs/_count"): (200, {"count": 42}),
    })
    body = {"query": {"match_all": {}}, "from": 0, "size": 2}
    try:
        hits = await client.do_query(body)
        total = await client.do_count({"query": body["query"]})
    finally:
        await client.close()

    assert hits == [
        {"id": "d1", "score": 1.5, "source": {"id": "d1"}, "highlight": {"title": ["<strong>x</strong>"]}},
        {"id": "d2", "score": None, "source": {"id": "d2"}, "highlight": {}},
    ]
    assert total == 42
    assert json.loads(recorder.requests[0].content) == body


async def test_request_before_boot_fails(es_env, helper_config):
    client = IndexClientElasticsearch(helper_config=helper_config)
    with pytest.raises(SearchIndexError):
        await client.do_count({"query": {"match_all": {}}})
