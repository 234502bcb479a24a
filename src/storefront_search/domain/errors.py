"""Error taxonomy for catalog queries.

Every query-layer failure is one of three kinds, and callers branch on the
kind rather than on messages:

- ``QueryValidationError``: the caller sent an empty or malformed query. Never retried.
- ``ProductNotFoundError``: an identifier lookup found nothing. Distinct from an empty listing.
- ``StoreUnavailableError``: the backing store could not answer. Never converted to an empty result.
"""


class CatalogError(Exception):
    """Base class for all catalog query errors."""

    error_type = "catalog_error"

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class QueryValidationError(CatalogError):
    """Raised when query parameters are empty or invalid."""

    error_type = "validation"


class ProductNotFoundError(CatalogError):
    """Raised when a product identifier does not resolve to a product."""

    error_type = "not_found"

    def __init__(self, product_id: str) -> None:
        super().__init__("Product not found", detail=product_id)
        self.product_id = product_id


class StoreUnavailableError(CatalogError):
    """Raised when the catalog store is unreachable or a query fails to execute."""

    error_type = "store_unavailable"
