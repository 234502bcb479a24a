"""Client session - wires the client components from ``Settings``.

One session backs one storefront UI: an API client, the suggestion pipeline
feeding from it, and the persisted search history and cart.
"""

from __future__ import annotations

import logging
from typing import Self

import httpx

from storefront_search.adapters.state_storage import client_storage
from storefront_search.client.api_client import CatalogApiClient
from storefront_search.client.cart import CART_KEY, Cart
from storefront_search.client.history import HISTORY_KEY, SearchHistory
from storefront_search.client.suggestions import SuggestionPipeline
from storefront_search.config import Settings


logger = logging.getLogger(__name__)


class StorefrontSession:
    """Client components built from one ``Settings`` instance."""

    def __init__(self, settings: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings or Settings()
        state_dir = self.settings.client_state_dir
        self.api = CatalogApiClient(
            self.settings.api_base_url,
            timeout=self.settings.http_timeout,
            transport=transport,
        )
        self.history = SearchHistory(client_storage(state_dir, HISTORY_KEY), limit=self.settings.history_limit)
        self.cart = Cart(client_storage(state_dir, CART_KEY))
        self.suggestions = SuggestionPipeline(
            self.api,
            self.history,
            delay=self.settings.debounce_seconds(),
            limit=self.settings.suggestion_limit,
        )

    async def open(self) -> Self:
        """Restore persisted history and cart."""
        await self.history.load()
        await self.cart.load()
        logger.debug(
            "Client session opened against %s (%d history terms, %d cart items)",
            self.settings.api_base_url,
            len(self.history),
            self.cart.total_items,
        )
        return self

    async def aclose(self) -> None:
        await self.suggestions.aclose()
        await self.api.aclose()

    async def __aenter__(self) -> Self:
        return await self.open()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
