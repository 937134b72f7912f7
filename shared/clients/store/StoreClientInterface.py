from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document


class StoreClientInterface(ClientInterface):
    """CRUD contract of the document store (system-of-record).

    Implementations raise StoreError for every backend failure. Lookups of a
    missing id return None rather than raising.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "store"
        """
        return "store"

    ##########################################
    ################ SCHEMA ##################
    ##########################################

    @abstractmethod
    async def do_create_schema(self) -> None:
        """Create the keyspace/table/secondary lookups if they do not exist yet.

        Raises:
            StoreError: If the schema statements fail.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_save(self, document: Document) -> Document:
        """Insert or overwrite a document.

        Args:
            document (Document): The document; id must be set.

        Returns:
            Document: The saved document.

        Raises:
            StoreError: If the write fails.
        """
        pass

    @abstractmethod
    async def do_find_by_id(self, document_id: str) -> Document | None:
        """Load one document.

        Args:
            document_id (str): The document id.

        Returns:
            Document | None: The document, or None if no row exists.

        Raises:
            StoreError: If the read fails.
        """
        pass

    @abstractmethod
    async def do_find_all(self) -> list[Document]:
        """Load every document in the store.

        Raises:
            StoreError: If the read fails.
        """
        pass

    @abstractmethod
    async def do_find_by_category(self, category: str) -> list[Document]:
        """Load all documents whose category equals the given value.

        Args:
            category (str): Exact category value.

        Raises:
            StoreError: If the read fails.
        """
        pass

    @abstractmethod
    async def do_update(self, document: Document) -> Document:
        """Overwrite the mutable columns of an existing document.

        Args:
            document (Document): The document; id selects the row.

        Returns:
            Document: The updated document.

        Raises:
            StoreError: If the write fails.
        """
        pass

    @abstractmethod
    async def do_delete_by_id(self, document_id: str) -> None:
        """Delete a document. Deleting a missing id is not an error.

        Raises:
            StoreError: If the delete fails.
        """
        pass

    @abstractmethod
    async def do_count(self) -> int:
        """Return the number of documents in the store.

        Raises:
            StoreError: If the read fails.
        """
        pass
