from abc import abstractmethod
from typing import Any

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import GatewayError


class HttpClientInterface(ClientInterface):
    """Base for clients whose backend speaks HTTP/JSON.

    One pooled httpx.AsyncClient is shared by every caller of the client. The
    pool size bounds the number of concurrent backend calls; exhausting it
    shows up as latency, not as an error to the caller.
    """

    # error raised for transport failures and unexpected statuses
    error_class: type[GatewayError] = GatewayError

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.max_connections = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_CONNECTIONS", default=20))
        self._client: httpx.AsyncClient | None = None

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend, if credentials are set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend (e.g. "http://localhost:9200").
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/_cluster/health").
        """
        pass

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the pooled HTTP client.

        Args:
            transport: Optional transport override (e.g. httpx.MockTransport in tests).
        """
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=self.max_connections),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> bool:
        try:
            resp = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())
        except GatewayError as exc:
            self.logging.warning("%s healthcheck failed: %s", self.get_engine_name(), exc)
            return False
        return resp.is_success

    async def do_request(
        self,
        method: str = "GET",
        content: Any = None,
        json: dict | None = None,
        params: Any = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        allowed_statuses: tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, HEAD).
            content: Raw bytes / string body.
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise error_class on a status >= 300.
            allowed_statuses: Statuses >= 300 that are returned instead of raised (e.g. 404).

        Returns:
            httpx.Response: The raw response.

        Raises:
            GatewayError: error_class if the client is not booted, the transport
                fails, or the status is an error and raise_on_error is set.
        """
        if self._client is None:
            raise self.error_class(f"{self.get_engine_name()} client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "params": params,
        }
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.HTTPError as exc:
            self.logging.error("Request %s %s failed: %s", method, kwargs["url"], exc)
            raise self.error_class(f"{method} {kwargs['url']} failed: {exc}") from exc

        if raise_on_error and response.status_code >= 300 and response.status_code not in allowed_statuses:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text,
            )
            raise self.error_class(
                f"Request to {kwargs['url']} failed with status {response.status_code}"
            )

        return response
