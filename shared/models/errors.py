"""Error taxonomy shared by clients, services and the HTTP layer.

Every error carries a stable ``category`` string and the HTTP status the
API layer should answer with. Backend clients translate driver/transport
failures into StoreError / SearchIndexError so that services never have to
know about httpx or the cassandra driver.
"""


class GatewayError(Exception):
    """Base class for all errors raised by the gateway."""

    category: str = "gateway_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        """Return the JSON envelope rendered to API callers."""
        return {"status": "error", "category": self.category, "message": self.message}


class StoreError(GatewayError):
    """Reading from or writing to the document store failed."""

    category = "store_error"
    status_code = 502


class SearchIndexError(GatewayError):
    """Reading from or writing to the search index failed."""

    category = "index_error"
    status_code = 502


class SearchValidationError(GatewayError):
    """The request is malformed and was rejected before any backend call."""

    category = "validation_error"
    status_code = 400


class UnsupportedQueryShapeError(SearchValidationError):
    """Unknown match type or term type."""

    category = "unsupported_query_shape"


class DocumentNotFoundError(GatewayError):
    """No document with the requested id exists in the store."""

    category = "not_found"
    status_code = 404
