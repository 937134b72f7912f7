import asyncio
import time

from pydantic import ValidationError

from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, utc_now
from shared.models.errors import SearchValidationError
from shared.models.search import (
    FullTextQuery,
    MatchType,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SimilarContentQuery,
    TermLevelQuery,
    TermType,
)
from services.query_translation.QueryTranslator import QueryTranslator


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc']) or 'request'}: {err['msg']}"
        for err in exc.errors()
    )


class SearchService:
    """Answers search requests: translate -> query + count -> map hits."""

    def __init__(
        self,
        helper_config: HelperConfig,
        index_client: IndexClientInterface,
        translator: QueryTranslator | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._index_client = index_client
        self._translator = translator or QueryTranslator()

    ##########################################
    ############### CORE #####################
    ##########################################

    async def do_search(self, request: SearchRequest) -> SearchResponse:
        """Run a generic search request.

        Args:
            request (SearchRequest): Text query with optional fields, filters, sort and paging.

        Returns:
            SearchResponse: One page of results and the total number of matches.

        Raises:
            SearchValidationError: If the request cannot be translated.
            SearchIndexError: If the query or the count fails.
        """
        self.logging.info(
            "SearchService.do_search: query='%s', page=%d, size=%d",
            request.query, request.page, request.size,
        )
        query = self._translator.translate_request(request)
        return await self._execute(
            query=query,
            page=request.page,
            size=request.size,
            sort=self._translator.build_sort(request.sort_by, request.sort_order),
            highlight_fields=self._translator.highlight_fields_for(request),
        )

    async def do_advanced(self, request: SearchRequest) -> SearchResponse:
        return await self.do_search(request)

    async def do_search_simple(self, query: str, page: int = 0, size: int = 10) -> SearchResponse:
        request = self._build(SearchRequest, query=query, page=page, size=size)
        return await self.do_search(request)

    async def do_search_in_fields(self, query: str, fields: list[str], page: int = 0, size: int = 10) -> SearchResponse:
        if not fields:
            raise SearchValidationError("At least one field is required")
        request = self._build(SearchRequest, query=query, fields=fields, page=page, size=size)
        return await self.do_search(request)

    async def do_similar_content(self, text: str, page: int = 0, size: int = 10) -> SearchResponse:
        """Find documents whose content resembles the given text."""
        similar = self._build(SimilarContentQuery, text=text)
        self.logging.info("SearchService.do_similar_content: %d chars, page=%d, size=%d", len(similar.text), page, size)
        query = self._translator.build_similar_content_query(similar)
        return await self._execute(query=query, page=page, size=size, highlight_fields=["content"])

    async def do_full_text(
        self,
        query: str,
        fields: list[str],
        match_type: str | MatchType = MatchType.MULTI_MATCH,
        page: int = 0,
        size: int = 10,
        fuzziness: str = "AUTO",
    ) -> SearchResponse:
        """Analysed text query of the given match type.

        Raises:
            UnsupportedQueryShapeError: If the match type is unknown.
            SearchValidationError: If query or fields are missing.
        """
        full_text = self._build(
            FullTextQuery,
            query=query,
            fields=fields or [],
            match_type=MatchType.parse(match_type),
            fuzziness=fuzziness or "AUTO",
        )
        self.logging.info(
            "SearchService.do_full_text: query='%s', type=%s, fields=%s",
            full_text.query, full_text.match_type.value, full_text.fields,
        )
        es_query = self._translator.build_full_text_query(full_text)
        # match and match_phrase only query the first field
        highlight_fields = full_text.fields
        if full_text.match_type in (MatchType.MATCH, MatchType.MATCH_PHRASE):
            highlight_fields = full_text.fields[:1]
        return await self._execute(query=es_query, page=page, size=size, highlight_fields=highlight_fields)

    async def do_term_level(
        self,
        field: str,
        values: list[str] | None,
        term_type: str | TermType = TermType.TERM,
        page: int = 0,
        size: int = 10,
    ) -> SearchResponse:
        """Exact, non analysed query on one field. No highlighting.

        Raises:
            UnsupportedQueryShapeError: If the term type is unknown.
            SearchValidationError: If a required value is missing.
        """
        term_level = self._build(
            TermLevelQuery,
            field=field,
            term_type=TermType.parse(term_type),
            values=list(values or []),
        )
        self.logging.info(
            "SearchService.do_term_level: field='%s', type=%s, values=%s",
            term_level.field, term_level.term_type.value, term_level.values,
        )
        query = self._translator.build_term_level_query(term_level)
        return await self._execute(query=query, page=page, size=size)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build(self, model: type, **kwargs):
        try:
            return model(**kwargs)
        except ValidationError as exc:
            raise SearchValidationError(_validation_message(exc)) from exc

    async def _execute(
        self,
        query: dict,
        page: int,
        size: int,
        sort: list[dict] | None = None,
        highlight_fields: list[str] | None = None,
    ) -> SearchResponse:
        """Run the page query and the total count concurrently and merge them.

        If either call fails the whole search fails.
        """
        search_body = self._translator.build_search_body(
            query, page, size, sort=sort, highlight_fields=highlight_fields
        )
        count_body = self._translator.build_count_body(query)

        started = time.monotonic()
        hits, total = await asyncio.gather(
            self._index_client.do_query(search_body),
            self._index_client.do_count(count_body),
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)

        results = [self._to_result(hit) for hit in hits[:size]]
        self.logging.info(
            "Search returned %d of %d hit(s) in %d ms.", len(results), total, elapsed_ms
        )
        return SearchResponse(
            results=results,
            total_hits=total,
            page=page,
            size=size,
            search_time_millis=elapsed_ms,
            timestamp=utc_now(),
        )

    def _to_result(self, hit: dict) -> SearchResult:
        source = hit.get("source")
        document: Document | None = None
        if isinstance(source, dict):
            try:
                document = Document.model_validate(source)
            except ValidationError as exc:
                self.logging.warning("Index entry %s has an unusable source: %s", hit.get("id"), exc)
            else:
                if document.id is None:
                    document.id = hit.get("id")
        elif source is None:
            self.logging.warning("Index entry %s has no source.", hit.get("id"))

        fragments: list[str] = []
        for field_fragments in (hit.get("highlight") or {}).values():
            fragments.extend(field_fragments or [])

        return SearchResult(
            document=document,
            score=float(hit.get("score") or 0.0),
            highlight=fragments,
        )
