from datetime import datetime

from pydantic import Field

from shared.models.base import ApiModel
from shared.models.document import utc_now


class SyncReport(ApiModel):
    """Outcome of one sweep from the document store into the search index.

    Attributes:
        scope:       What was swept, e.g. "all", "category:news", "rebuild".
        total:       Number of documents read from the store.
        succeeded:   Documents upserted into the index.
        failed:      Documents whose upsert failed and were skipped.
        failed_ids:  Ids of the skipped documents.
        started_at:  Sweep start (UTC).
        finished_at: Sweep end (UTC), None while running.
    """

    scope: str
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_ids: list[str] = []
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime | None = None
