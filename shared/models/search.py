"""Pydantic models for search requests, query variants and responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field, field_validator

from shared.models.base import ApiModel
from shared.models.document import Document, utc_now
from shared.models.errors import UnsupportedQueryShapeError


class MatchType(str, Enum):
    """Full-text query kinds."""

    MATCH = "match"
    MATCH_PHRASE = "match_phrase"
    MULTI_MATCH = "multi_match"

    @classmethod
    def parse(cls, raw: "str | MatchType") -> "MatchType":
        """Parse a caller supplied match type; unknown values are rejected."""
        try:
            return cls(raw.strip().lower() if isinstance(raw, str) else raw)
        except ValueError:
            raise UnsupportedQueryShapeError(
                f"Unsupported match type '{raw}'. Valid types: {[m.value for m in cls]}"
            )


class TermType(str, Enum):
    """Term-level (non analysed) query kinds."""

    TERM = "term"
    TERMS = "terms"
    PREFIX = "prefix"
    WILDCARD = "wildcard"
    EXISTS = "exists"

    @classmethod
    def parse(cls, raw: "str | TermType") -> "TermType":
        """Parse a caller supplied term type; unknown values are rejected."""
        try:
            return cls(raw.strip().lower() if isinstance(raw, str) else raw)
        except ValueError:
            raise UnsupportedQueryShapeError(
                f"Unsupported term type '{raw}'. Valid types: {[t.value for t in cls]}"
            )

    @property
    def needs_value(self) -> bool:
        return self is not TermType.EXISTS


class SearchRequest(ApiModel):
    """Generic search request: free text with optional fields, filters, sort and paging."""

    query: str = Field(min_length=1, max_length=1000)
    fields: list[str] | None = None
    filters: dict[str, Any] | None = None
    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1, le=1000)
    sort_by: str | None = None
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query is required")
        return value

    @field_validator("sort_order", mode="before")
    @classmethod
    def _lower_sort_order(cls, value: Any) -> Any:
        if value is None:
            return "desc"
        return value.lower() if isinstance(value, str) else value


class FullTextQuery(ApiModel):
    """Analysed text query over one (match, match_phrase) or many (multi_match) fields."""

    query: str = Field(min_length=1, max_length=1000)
    fields: list[str] = Field(min_length=1)
    match_type: MatchType = MatchType.MULTI_MATCH
    fuzziness: str = "AUTO"


class TermLevelQuery(ApiModel):
    """Exact (non analysed) query on a single field."""

    field: str = Field(min_length=1)
    term_type: TermType = TermType.TERM
    values: list[str] = []


class SimilarContentQuery(ApiModel):
    """Free text whose significant terms are matched against document content."""

    text: str = Field(min_length=1)


class SearchResult(ApiModel):
    """A single hit. document is None when the index entry has no usable source."""

    document: Document | None = None
    score: float = 0.0
    highlight: list[str] = []


class SearchResponse(ApiModel):
    """One page of results plus the unpaged hit count."""

    results: list[SearchResult]
    total_hits: int
    page: int
    size: int
    search_time_millis: int = 0
    timestamp: datetime = Field(default_factory=utc_now)
