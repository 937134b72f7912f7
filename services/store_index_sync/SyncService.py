"""Synchronisation service.

Reads documents from the document store and upserts them into the search
index under the same id. Every write is an idempotent overwrite, so sweeps
can be repeated, interleaved or interrupted and the index still converges on
the store's state with the next successful sweep.
"""

import asyncio

from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, utc_now
from shared.models.errors import DocumentNotFoundError, SearchIndexError
from shared.models.sync import SyncReport

DOC_CONCURRENCY = 5     # default max parallel index upserts per sweep


class SyncService:
    """Orchestrates sweeps from the document store into the search index."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        index_client: IndexClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._index_client = index_client
        self._concurrency = max(1, int(helper_config.get_number_val("SYNC_CONCURRENCY", default=DOC_CONCURRENCY)))

    ##########################################
    ################ SWEEPS ##################
    ##########################################

    async def do_sync_all(self) -> SyncReport:
        """Upsert every document of the store into the index.

        Returns:
            SyncReport: Counts and failed ids of the sweep.

        Raises:
            StoreError: If the store cannot be read. Nothing is written in that case.
        """
        self.logging.info("Starting full sync...")
        started_at = utc_now()
        documents = await self._store_client.do_find_all()
        return await self.do_sync_documents(documents, scope="all", started_at=started_at)

    async def do_sync_category(self, category: str) -> SyncReport:
        """Upsert every document of one category into the index.

        Args:
            category (str): Exact category value.

        Returns:
            SyncReport: Counts and failed ids of the sweep.

        Raises:
            StoreError: If the store cannot be read.
        """
        self.logging.info("Starting sync for category '%s'...", category)
        started_at = utc_now()
        documents = await self._store_client.do_find_by_category(category)
        return await self.do_sync_documents(documents, scope=f"category:{category}", started_at=started_at)

    async def do_rebuild_all(self) -> SyncReport:
        """Drop the index, recreate it empty and run a full sweep.

        Searches running while the rebuild is in progress may see a missing
        or partially filled index.

        Raises:
            SearchIndexError: If dropping or creating the index fails.
            StoreError: If the store cannot be read.
        """
        self.logging.warning("Rebuilding index '%s' from scratch...", self._index_client.get_index_name())
        started_at = utc_now()
        await self._index_client.do_delete_index()
        await self._index_client.do_create_index()
        documents = await self._store_client.do_find_all()
        return await self.do_sync_documents(documents, scope="rebuild", started_at=started_at)

    async def do_sync_documents(self, documents: list[Document], scope: str, started_at=None) -> SyncReport:
        """Upsert the given documents with bounded concurrency.

        Index failures of single documents are logged and counted; the sweep
        continues with the remaining documents and nothing is rolled back.

        Args:
            documents (list[Document]): Documents to write.
            scope (str): Label stored in the report.
            started_at (datetime | None): Sweep start, defaults to now.

        Returns:
            SyncReport: Counts and failed ids of the sweep.
        """
        report = SyncReport(scope=scope, total=len(documents), started_at=started_at or utc_now())
        if not documents:
            self.logging.warning("No documents found for scope '%s'. Nothing to sync.", scope)
            report.finished_at = utc_now()
            return report

        self.logging.info("Processing %d documents for scope '%s'...", len(documents), scope)

        # process documents concurrently with bounded parallelism
        sem = asyncio.Semaphore(self._concurrency)
        results = await asyncio.gather(
            *[self._sync_document(doc, sem) for doc in documents],
            return_exceptions=True,
        )

        for doc, result in zip(documents, results):
            if result is True:
                report.succeeded += 1
            elif isinstance(result, SearchIndexError):
                report.failed += 1
                report.failed_ids.append(doc.id or "")
            elif isinstance(result, BaseException):
                raise result

        report.finished_at = utc_now()
        self.logging.info(
            "Sync complete for scope '%s': %d synced, %d errors.",
            scope, report.succeeded, report.failed,
        )
        return report

    ##########################################
    ############ SINGLE DOCUMENT #############
    ##########################################

    async def do_sync_one(self, document: Document) -> None:
        """Upsert a single document into the index.

        Raises:
            SearchIndexError: If the index write fails.
        """
        await self._index_client.do_index_document(document)
        self.logging.info("Synced document id=%s ('%s').", document.id, document.title)

    async def do_sync_by_id(self, document_id: str) -> Document:
        """Load a document from the store and upsert it into the index.

        Returns:
            Document: The synced document.

        Raises:
            DocumentNotFoundError: If the store has no document with that id.
            StoreError: If the store cannot be read.
            SearchIndexError: If the index write fails.
        """
        document = await self._store_client.do_find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document '{document_id}' not found")
        await self.do_sync_one(document)
        return document

    async def do_delete_one(self, document_id: str) -> None:
        """Remove the index entry of a document. A missing entry is not an error.

        Raises:
            SearchIndexError: If the index delete fails.
        """
        removed = await self._index_client.do_delete_by_id(document_id)
        if removed:
            self.logging.info("Removed document id=%s from index.", document_id)
        else:
            self.logging.debug("Document id=%s was not in the index.", document_id)

    async def _sync_document(self, doc: Document, sem: asyncio.Semaphore) -> bool:
        """Upsert one document inside a sweep.

        Returns:
            bool: True if the document was written.

        Raises:
            SearchIndexError: Propagated to gather() and counted by the caller.
        """
        async with sem:
            try:
                await self._index_client.do_index_document(doc)
            except SearchIndexError as exc:
                self.logging.error("Indexing failed for document id=%s ('%s'): %s", doc.id, doc.title, exc)
                raise
            self.logging.debug("Synced document id=%s.", doc.id)
            return True
