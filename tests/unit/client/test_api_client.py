"""Unit tests for CatalogApiClient using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from storefront_search.client.api_client import CatalogApiClient
from storefront_search.domain.criteria import FilterCriteria, SortKey
from storefront_search.domain.errors import ProductNotFoundError, QueryValidationError, StoreUnavailableError
from storefront_search.domain.model import Category


BASE_URL = "http://catalog.test/api"

PRODUCT = {
    "id": "red",
    "name": "Red Shoe",
    "category": "Clothing",
    "price": 2000,
    "rating": 4,
    "image": "red.jpg",
    "description": "A red shoe",
    "inStock": True,
    "createdAt": "2024-01-01T00:00:00+00:00",
}
SUMMARY = {key: PRODUCT[key] for key in ("id", "name", "category", "price", "rating", "image", "inStock")}


def _client(handler) -> CatalogApiClient:
    return CatalogApiClient(BASE_URL, transport=httpx.MockTransport(handler))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_products_sends_criteria_as_query_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, json={"success": True, "count": 1, "data": [PRODUCT]})

    async with _client(handler) as client:
        products = await client.list_products(
            FilterCriteria(category=Category.CLOTHING, max_price=5000, sort_key=SortKey.PRICE_ASC)
        )

    assert [p.name for p in products] == ["Red Shoe"]
    assert seen[0].path == "/api/products"
    assert dict(seen[0].params) == {"category": "Clothing", "maxPrice": "5000", "sort": "price-asc"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_suggest_parses_summaries():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["q"] == "shoe"
        return httpx.Response(200, json={"success": True, "count": 1, "data": [SUMMARY]})

    async with _client(handler) as client:
        suggestions = await client.suggest(" shoe ")

    assert [s.id for s in suggestions] == ["red"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_blank_suggest_short_circuits():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        assert await client.suggest("   ") == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_product_and_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/red"):
            return httpx.Response(200, json={"success": True, "data": PRODUCT})
        return httpx.Response(404, json={"success": False, "message": "Product not found"})

    async with _client(handler) as client:
        assert (await client.get_product("red")).description == "A red shoe"
        with pytest.raises(ProductNotFoundError) as excinfo:
            await client.get_product("ghost")

    assert excinfo.value.product_id == "ghost"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_bad_request_maps_to_validation_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "message": "Search query is required"})

    async with _client(handler) as client:
        with pytest.raises(QueryValidationError, match="Search query is required"):
            await client.suggest("x")


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"success": False, "message": "Server Error"}),
        httpx.Response(200, text="<html>proxy error</html>"),
        httpx.Response(200, json={"success": True, "data": [{"name": "missing fields"}]}),
        httpx.Response(404, json={"success": False, "message": "Route not found"}),
    ],
)
async def test_server_failures_map_to_store_unavailable(response):
    async with _client(lambda request: response) as client:
        with pytest.raises(StoreUnavailableError):
            await client.list_products()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transport_errors_map_to_store_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(StoreUnavailableError, match="unreachable"):
            await client.suggest("shoe")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"success": True, "data": []}))
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        async with CatalogApiClient(BASE_URL, client=http_client) as client:
            assert await client.list_products() == []
        assert not http_client.is_closed
