"""Unit tests for CatalogQueryService."""

from __future__ import annotations

import pytest

from storefront_search.adapters.catalog_store import InMemoryCatalogStore
from storefront_search.domain.criteria import FilterCriteria, SortKey
from storefront_search.domain.errors import ProductNotFoundError, QueryValidationError, StoreUnavailableError
from storefront_search.domain.model import Category, ProductSummary
from storefront_search.service_layer.catalog_service import CatalogQueryService


class ExplodingStore(InMemoryCatalogStore):
    async def find(self, predicate, order=None, limit=None):
        raise RuntimeError("driver crashed")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_end_to_end_shoe_scenario(shoe_catalog):
    service = CatalogQueryService(shoe_catalog)

    by_price = await service.list_products(FilterCriteria(category=Category.CLOTHING, sort_key=SortKey.PRICE_ASC))
    above_3000 = await service.list_products(FilterCriteria(min_price=3000))
    suggestions = await service.suggest("shoe")

    assert [p.name for p in by_price] == ["Red Shoe", "Blue Shoe"]
    assert [p.name for p in above_3000] == ["Blue Shoe"]
    assert [s.name for s in suggestions] == ["Red Shoe", "Blue Shoe"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_criteria_returns_whole_catalog_newest_first(catalog, catalog_products):
    service = CatalogQueryService(catalog)

    products = await service.list_products()

    assert [p.id for p in products] == [p.id for p in reversed(catalog_products)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_listing_respects_every_criterion(catalog):
    service = CatalogQueryService(catalog)
    criteria = FilterCriteria(min_price=1000, max_price=15000, search_term="shoe", sort_key=SortKey.PRICE_DESC)

    products = await service.list_products(criteria)

    assert [p.id for p in products] == ["runner", "rack"]
    assert all(1000 <= p.price <= 15000 for p in products)


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("sort_key", "field", "descending"),
    [(SortKey.PRICE_ASC, "price", False), (SortKey.PRICE_DESC, "price", True), (SortKey.RATING, "rating", True)],
)
async def test_sort_orders_are_monotonic(catalog, sort_key, field, descending):
    service = CatalogQueryService(catalog)

    values = [getattr(p, field) for p in await service.list_products(FilterCriteria(sort_key=sort_key))]

    assert values == sorted(values, reverse=descending)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_listing_has_no_implicit_limit(product_factory):
    store = InMemoryCatalogStore([product_factory(f"Item {i}") for i in range(20)])

    assert len(await CatalogQueryService(store).list_products()) == 20


@pytest.mark.unit
@pytest.mark.asyncio
async def test_suggest_is_name_only_rating_ordered_and_limited(product_factory):
    store = InMemoryCatalogStore(
        [product_factory(f"Lamp {i}", rating=i % 5) for i in range(8)]
        + [product_factory("Desk", description="lamp included", rating=5)]
    )

    suggestions = await CatalogQueryService(store).suggest("LAMP")

    assert len(suggestions) == 5
    assert all(isinstance(s, ProductSummary) for s in suggestions)
    assert all("lamp" in s.name.lower() for s in suggestions)
    ratings = [s.rating for s in suggestions]
    assert ratings == sorted(ratings, reverse=True)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_suggestion_limit_is_configurable(catalog):
    service = CatalogQueryService(catalog, suggestion_limit=1)

    assert [s.id for s in await service.suggest("e")] == ["espresso"]


@pytest.mark.unit
def test_suggestion_limit_must_be_positive(catalog):
    with pytest.raises(ValueError):
        CatalogQueryService(catalog, suggestion_limit=0)


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["", "   ", None])
async def test_blank_suggest_is_validation_error_not_empty_success(catalog, term):
    with pytest.raises(QueryValidationError):
        await CatalogQueryService(catalog).suggest(term)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_product(catalog):
    service = CatalogQueryService(catalog)

    assert (await service.get_product("espresso")).name == "Espresso Maker"
    with pytest.raises(ProductNotFoundError):
        await service.get_product("ghost")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unavailable_store_is_never_an_empty_result(catalog):
    catalog.available = False
    service = CatalogQueryService(catalog)

    with pytest.raises(StoreUnavailableError):
        await service.list_products()
    with pytest.raises(StoreUnavailableError):
        await service.suggest("shoe")
    with pytest.raises(StoreUnavailableError):
        await service.get_product("runner")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_store_errors_are_wrapped():
    service = CatalogQueryService(ExplodingStore())

    with pytest.raises(StoreUnavailableError) as excinfo:
        await service.list_products()

    assert excinfo.value.detail == "driver crashed"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
