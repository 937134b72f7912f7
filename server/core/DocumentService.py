import uuid

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, utc_now
from shared.models.errors import DocumentNotFoundError
from shared.models.sync import SyncReport
from services.store_index_sync.SyncService import SyncService


class DocumentService:
    """Document management on the system-of-record.

    Every write goes to the store first and is then mirrored into the index.
    If the index write fails after the store write succeeded, the error is
    raised to the caller and the index stays stale until the next sweep.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        sync_service: SyncService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._sync_service = sync_service

    def _prepare_new(self, document: Document) -> Document:
        now = utc_now()
        created_at = document.created_at or now
        return document.model_copy(update={
            "id": document.id or str(uuid.uuid4()),
            "created_at": created_at,
            "updated_at": max(now, created_at),
        })

    async def do_create(self, document: Document) -> Document:
        new_doc = self._prepare_new(document)
        saved = await self._store_client.do_save(new_doc)
        self.logging.info("Created document id=%s ('%s').", saved.id, saved.title)
        await self._sync_service.do_sync_one(saved)
        return saved

    async def do_create_bulk(self, documents: list[Document]) -> SyncReport:
        """Save every document, then index them in one sweep.

        Raises:
            StoreError: If a store write fails; documents saved before stay saved.
        """
        saved: list[Document] = []
        for document in documents:
            saved.append(await self._store_client.do_save(self._prepare_new(document)))
        self.logging.info("Created %d document(s) in bulk.", len(saved))
        return await self._sync_service.do_sync_documents(saved, scope="bulk")

    async def do_get(self, document_id: str) -> Document:
        document = await self._store_client.do_find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document '{document_id}' not found")
        return document

    async def do_update(self, document_id: str, document: Document) -> Document:
        """Replace the mutable fields of a stored document.

        The id comes from the path, createdAt is kept from the stored copy
        and updatedAt is set to now.

        Raises:
            DocumentNotFoundError: If the store has no document with that id.
        """
        existing = await self.do_get(document_id)
        created_at = existing.created_at or utc_now()
        updated = document.model_copy(update={
            "id": document_id,
            "created_at": created_at,
            "updated_at": max(utc_now(), created_at),
        })
        saved = await self._store_client.do_update(updated)
        self.logging.info("Updated document id=%s.", document_id)
        await self._sync_service.do_sync_one(saved)
        return saved

    async def do_delete(self, document_id: str) -> None:
        await self.do_get(document_id)
        await self._store_client.do_delete_by_id(document_id)
        self.logging.info("Deleted document id=%s from store.", document_id)
        await self._sync_service.do_delete_one(document_id)

    async def do_count(self) -> int:
        return await self._store_client.do_count()
