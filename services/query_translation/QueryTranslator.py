"""Query translation.

Turns search requests and the narrower query variants (full text, term
level, similar content) into Elasticsearch query DSL bodies. The output is a
plain dict and depends only on the input, so the same request always yields
the same body.
"""

from typing import Any

from shared.models.errors import SearchValidationError, UnsupportedQueryShapeError
from shared.models.search import (
    FullTextQuery,
    MatchType,
    SearchRequest,
    SimilarContentQuery,
    TermLevelQuery,
    TermType,
)

HIGHLIGHT_PRE_TAG = "<strong>"
HIGHLIGHT_POST_TAG = "</strong>"
HIGHLIGHT_FRAGMENT_SIZE = 150   # characters per fragment
HIGHLIGHT_FRAGMENTS = 3         # fragments per field
DEFAULT_HIGHLIGHT_FIELDS = ["title", "content"]

SIMILAR_CONTENT_FIELDS = ["content"]
SIMILAR_MIN_TERM_FREQ = 1
SIMILAR_MIN_DOC_FREQ = 1
SIMILAR_MAX_QUERY_TERMS = 12


def _as_term_value(value: Any) -> str:
    """Coerce a filter/term value to the string used for exact matching."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class QueryTranslator:
    """Builds search and count bodies for the index client."""

    ##########################################
    ############# TEXT QUERIES ###############
    ##########################################

    def build_text_query(self, query: str, fields: list[str] | None = None) -> dict:
        """Free text over the default fields, or a multi-field match over exactly the given fields.

        Args:
            query (str): The user's search text.
            fields (list[str] | None): Fields to search, in caller order.

        Returns:
            dict: The query clause.
        """
        if fields:
            return {"multi_match": {"query": query, "fields": list(fields)}}
        return {"query_string": {"query": query}}

    def build_filtered_query(self, main_query: dict, filters: dict[str, Any] | None) -> dict:
        """Wrap a query as a required clause and AND one exact term clause per filter entry.

        Args:
            main_query (dict): The text query clause.
            filters (dict[str, Any] | None): Field → value; values are matched by their string form.

        Returns:
            dict: The main query unchanged when there are no filters, a bool query otherwise.
        """
        if not filters:
            return main_query
        return {
            "bool": {
                "must": [main_query],
                "filter": [
                    {"term": {field: {"value": _as_term_value(value)}}}
                    for field, value in filters.items()
                ],
            }
        }

    def build_similar_content_query(self, similar: SimilarContentQuery) -> dict:
        """Documents whose content shares significant terms with the given text."""
        return {
            "more_like_this": {
                "fields": list(SIMILAR_CONTENT_FIELDS),
                "like": similar.text,
                "min_term_freq": SIMILAR_MIN_TERM_FREQ,
                "min_doc_freq": SIMILAR_MIN_DOC_FREQ,
                "max_query_terms": SIMILAR_MAX_QUERY_TERMS,
            }
        }

    def build_full_text_query(self, full_text: FullTextQuery) -> dict:
        """Analysed query: match / match_phrase on the first field, multi_match on all fields.

        Raises:
            UnsupportedQueryShapeError: If the match type has no translation.
        """
        field = full_text.fields[0]
        if full_text.match_type is MatchType.MATCH:
            return {"match": {field: {"query": full_text.query, "fuzziness": full_text.fuzziness}}}
        if full_text.match_type is MatchType.MATCH_PHRASE:
            return {"match_phrase": {field: {"query": full_text.query}}}
        if full_text.match_type is MatchType.MULTI_MATCH:
            return {
                "multi_match": {
                    "query": full_text.query,
                    "fields": list(full_text.fields),
                    "fuzziness": full_text.fuzziness,
                    "type": "best_fields",
                }
            }
        raise UnsupportedQueryShapeError(f"Unsupported match type '{full_text.match_type}'")

    ##########################################
    ########### TERM LEVEL QUERIES ###########
    ##########################################

    def build_term_level_query(self, term_level: TermLevelQuery) -> dict:
        """Exact, non analysed query on one field.

        ``terms`` is expressed as an OR of term clauses so every value is
        matched exactly; duplicate values are dropped.

        Raises:
            SearchValidationError: If a value-bearing type has no value, or a
                single-valued type is given several values.
            UnsupportedQueryShapeError: If the term type has no translation.
        """
        field = term_level.field
        term_type = term_level.term_type
        values = [_as_term_value(v) for v in term_level.values]

        if term_type is TermType.EXISTS:
            return {"exists": {"field": field}}

        if not values:
            raise SearchValidationError(f"Term type '{term_type.value}' requires a value for field '{field}'.")

        if term_type is TermType.TERMS:
            unique_values = list(dict.fromkeys(values))
            return {
                "bool": {
                    "should": [{"term": {field: {"value": v}}} for v in unique_values],
                    "minimum_should_match": 1,
                }
            }

        if len(values) > 1:
            raise SearchValidationError(f"Term type '{term_type.value}' accepts exactly one value, got {len(values)}.")
        value = values[0]

        if term_type is TermType.TERM:
            return {"term": {field: {"value": value}}}
        if term_type is TermType.PREFIX:
            return {"prefix": {field: {"value": value}}}
        if term_type is TermType.WILDCARD:
            return {"wildcard": {field: {"value": value}}}
        raise UnsupportedQueryShapeError(f"Unsupported term type '{term_type}'")

    ##########################################
    ############# BODY ASSEMBLY ##############
    ##########################################

    def translate_request(self, request: SearchRequest) -> dict:
        """Query clause for a generic search request (text query plus filters)."""
        text_query = self.build_text_query(request.query, request.fields)
        return self.build_filtered_query(text_query, request.filters)

    def highlight_fields_for(self, request: SearchRequest) -> list[str]:
        """Fields highlighted for a generic search request."""
        return list(request.fields) if request.fields else list(DEFAULT_HIGHLIGHT_FIELDS)

    def build_sort(self, sort_by: str | None, sort_order: str = "desc") -> list[dict] | None:
        """Explicit field sort, or None for relevance order."""
        if not sort_by:
            return None
        order = "asc" if (sort_order or "").lower() == "asc" else "desc"
        return [{sort_by: {"order": order}}]

    def build_highlight(self, fields: list[str]) -> dict:
        return {
            "pre_tags": [HIGHLIGHT_PRE_TAG],
            "post_tags": [HIGHLIGHT_POST_TAG],
            "fragment_size": HIGHLIGHT_FRAGMENT_SIZE,
            "number_of_fragments": HIGHLIGHT_FRAGMENTS,
            "fields": {field: {} for field in fields},
        }

    def build_search_body(
        self,
        query: dict,
        page: int,
        size: int,
        sort: list[dict] | None = None,
        highlight_fields: list[str] | None = None,
    ) -> dict:
        """Complete search body with offset paging (from = page * size).

        Raises:
            SearchValidationError: If page is negative or size is not positive.
        """
        if page < 0:
            raise SearchValidationError("Page must be >= 0")
        if size < 1:
            raise SearchValidationError("Size must be >= 1")
        body: dict = {"query": query, "from": page * size, "size": size}
        if sort:
            body["sort"] = sort
        if highlight_fields:
            body["highlight"] = self.build_highlight(highlight_fields)
        return body

    def build_count_body(self, query: dict) -> dict:
        """Count body with the same query shape as the search body."""
        return {"query": query}
