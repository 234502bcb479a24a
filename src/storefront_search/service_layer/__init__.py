"""Service layer - query use cases and the response boundary."""

from storefront_search.service_layer.catalog_service import CatalogQueryService
from storefront_search.service_layer.services import (
    QueryResponse,
    ResponseStatus,
    get_product,
    list_products,
    suggest_products,
)


__all__ = [
    "CatalogQueryService",
    "QueryResponse",
    "ResponseStatus",
    "get_product",
    "list_products",
    "suggest_products",
]
