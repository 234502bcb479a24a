"""Async HTTP client for the catalog query API."""

from __future__ import annotations

import logging
from typing import Any, Self

import httpx
from pydantic import TypeAdapter, ValidationError

from storefront_search.domain.criteria import FilterCriteria
from storefront_search.domain.errors import ProductNotFoundError, QueryValidationError, StoreUnavailableError
from storefront_search.domain.model import Product, ProductSummary


logger = logging.getLogger(__name__)

_PRODUCTS = TypeAdapter(list[Product])
_SUMMARIES = TypeAdapter(list[ProductSummary])


class CatalogApiClient:
    """Client for ``/products``, ``/search`` and ``/products/{id}``.

    Transport errors, non-JSON bodies and 5xx responses all raise
    ``StoreUnavailableError``; a 400 raises ``QueryValidationError`` and a
    404 on lookup raises ``ProductNotFoundError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def list_products(self, criteria: FilterCriteria | None = None) -> list[Product]:
        params = (criteria or FilterCriteria()).to_query_params()
        payload = await self._get_json("/products", params=params)
        return self._parse(_PRODUCTS, payload.get("data", []))

    async def suggest(self, term: str | None) -> list[ProductSummary]:
        """Fetch suggestions; a blank term returns ``[]`` without a request."""
        if not term or not term.strip():
            return []
        payload = await self._get_json("/search", params={"q": term.strip()})
        return self._parse(_SUMMARIES, payload.get("data", []))

    async def get_product(self, product_id: str) -> Product:
        payload = await self._get_json(f"/products/{product_id}", lookup_id=product_id)
        return self._parse(TypeAdapter(Product), payload.get("data"))

    async def _get_json(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        lookup_id: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Catalog API request to %s failed: %s", path, exc)
            raise StoreUnavailableError("Catalog API unreachable", detail=str(exc)) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        message = payload.get("message") if isinstance(payload, dict) else None

        if response.status_code == 400:
            raise QueryValidationError(message or "Invalid query")
        if response.status_code == 404 and lookup_id is not None:
            raise ProductNotFoundError(lookup_id)
        if response.is_error or not isinstance(payload, dict) or not payload.get("success"):
            raise StoreUnavailableError(
                message or "Catalog query failed",
                detail=f"HTTP {response.status_code} from {path}",
            )
        return payload

    @staticmethod
    def _parse(adapter: TypeAdapter, data: Any) -> Any:
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            raise StoreUnavailableError("Malformed catalog response", detail=str(exc)) from exc
