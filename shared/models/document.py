"""Document model: the unit owned by the store and mirrored into the search index."""

from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator, model_validator

from shared.models.base import ApiModel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime, truncated to milliseconds (store precision)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class Document(ApiModel):
    """A document as stored in the system-of-record.

    The search index holds a derived copy keyed by the same id. The id is
    assigned once (by the caller or by the server on create) and never changes.

    Attributes:
        id:         Unique document id.
        title:      Human-readable title.
        content:    Full text body.
        category:   Exact-match category used for scoped sweeps and filters.
        author:     Author name.
        metadata:   Free-form JSON values keyed by string.
        created_at: Creation time (UTC).
        updated_at: Last modification time (UTC); never earlier than created_at.
    """

    id: str | None = None
    title: str | None = None
    content: str | None = None
    category: str | None = None
    author: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # the cassandra driver hands back naive datetimes that are UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _updated_not_before_created(self) -> "Document":
        if self.created_at and self.updated_at and self.updated_at < self.created_at:
            raise ValueError("updatedAt must not be earlier than createdAt")
        return self

    def to_index_source(self) -> dict:
        """Return the JSON body stored as the index entry's _source."""
        return self.to_json_dict()
