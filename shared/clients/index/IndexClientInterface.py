from abc import abstractmethod

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document
from shared.models.errors import SearchIndexError


class IndexClientInterface(HttpClientInterface):
    """CRUD and query contract of the search index.

    The index is derived data: every entry is a copy of a store document keyed
    by the same id, so writing the same document twice is idempotent and the
    last write for an id wins. All backend failures surface as SearchIndexError.
    """

    error_class = SearchIndexError

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "index"
        """
        return "index"

    @abstractmethod
    def get_index_name(self) -> str:
        """
        Returns the name of the index documents are written to.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_index(self) -> str:
        """
        Returns the endpoint path addressing the index itself (create, delete, existence).
        """
        pass

    @abstractmethod
    def _get_endpoint_document(self, document_id: str) -> str:
        """
        Returns the endpoint path addressing a single index entry.

        Args:
            document_id (str): The document id (unescaped).
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for search requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """
        Returns the endpoint path for count requests.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_index_payload(self) -> dict:
        """
        Returns the settings and mappings sent when the index is created.
        """
        pass

    @abstractmethod
    def get_write_params(self) -> dict:
        """
        Returns the query parameters attached to write requests (e.g. refresh policy).
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_hits(self, raw_response: dict) -> list[dict]:
        """
        Extracts the hit list from a raw search response.

        Returns:
            list[dict]: One dict per hit with the keys "id", "score", "source", "highlight".
        """
        pass

    @abstractmethod
    def extract_count(self, raw_response: dict) -> int:
        """
        Extracts the number of matches from a raw count response.
        """
        pass

    @abstractmethod
    def extract_source(self, raw_response: dict) -> dict | None:
        """
        Extracts the stored document body from a raw get-by-id response.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check whether the index exists.

        Returns:
            bool: True if the index exists, False otherwise.
        """
        resp = await self.do_request(method="HEAD", endpoint=self._get_endpoint_index())
        if resp.status_code == 404:
            return False
        if not resp.is_success:
            raise SearchIndexError(f"Existence check of index '{self.get_index_name()}' failed with status {resp.status_code}")
        return True

    async def do_create_index(self) -> bool:
        """Create the index with its mappings unless it already exists.

        Returns:
            bool: True if the index was created, False if it already existed.
        """
        if await self.do_existence_check():
            self.logging.info("Index '%s' already exists.", self.get_index_name())
            return False
        await self.do_request(
            method="PUT",
            json=self.get_create_index_payload(),
            endpoint=self._get_endpoint_index(),
            raise_on_error=True,
        )
        self.logging.info("Index '%s' created.", self.get_index_name())
        return True

    async def do_delete_index(self) -> bool:
        """Drop the index and every entry in it.

        Returns:
            bool: True if the index was deleted, False if it did not exist.
        """
        if not await self.do_existence_check():
            self.logging.info("Index '%s' does not exist, nothing to delete.", self.get_index_name())
            return False
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_index(), raise_on_error=True)
        self.logging.info("Index '%s' deleted.", self.get_index_name())
        return True

    async def do_index_document(self, document: Document) -> None:
        """Insert or overwrite the index entry for a document.

        Args:
            document (Document): The document; its id becomes the entry id.
        """
        if not document.id:
            raise SearchIndexError("Cannot index a document without id.")
        await self.do_request(
            method="PUT",
            json=document.to_index_source(),
            params=self.get_write_params(),
            endpoint=self._get_endpoint_document(document.id),
            raise_on_error=True,
        )
        self.logging.debug("Document %s indexed.", document.id)

    async def do_get_by_id(self, document_id: str) -> dict | None:
        """Fetch the stored body of an index entry.

        Returns:
            dict | None: The entry source, or None if there is no entry with that id.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_document(document_id),
            raise_on_error=True,
            allowed_statuses=(404,),
        )
        if resp.status_code == 404:
            return None
        return self.extract_source(resp.json())

    async def do_delete_by_id(self, document_id: str) -> bool:
        """Remove an index entry.

        Returns:
            bool: True if an entry was removed, False if none existed.
        """
        resp = await self.do_request(
            method="DELETE",
            params=self.get_write_params(),
            endpoint=self._get_endpoint_document(document_id),
            raise_on_error=True,
            allowed_statuses=(404,),
        )
        return resp.status_code != 404

    async def do_query(self, body: dict) -> list[dict]:
        """Run a structured search and return the raw hits of the requested page.

        Args:
            body (dict): Complete search body (query, paging, sort, highlight).

        Returns:
            list[dict]: Hits as produced by extract_hits().
        """
        resp = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        return self.extract_hits(resp.json())

    async def do_count(self, body: dict) -> int:
        """Count every entry matching a query, regardless of paging.

        Args:
            body (dict): Count body holding only the query.
        """
        resp = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_count(),
            raise_on_error=True,
        )
        return self.extract_count(resp.json())
