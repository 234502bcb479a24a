"""Client-side components: API client, suggestion pipeline, search history and cart."""

from storefront_search.client.api_client import CatalogApiClient
from storefront_search.client.cart import CART_KEY, Cart, CartLine
from storefront_search.client.history import HISTORY_KEY, SearchHistory
from storefront_search.client.session import StorefrontSession
from storefront_search.client.suggestions import (
    SuggestionPipeline,
    SuggestionRequest,
    SuggestionSource,
    SuggestionState,
)


__all__ = [
    "CART_KEY",
    "HISTORY_KEY",
    "Cart",
    "CartLine",
    "CatalogApiClient",
    "SearchHistory",
    "StorefrontSession",
    "SuggestionPipeline",
    "SuggestionRequest",
    "SuggestionSource",
    "SuggestionState",
]
