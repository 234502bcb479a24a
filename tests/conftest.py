"""Shared test fixtures and configuration."""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from storefront_search.adapters.catalog_store import InMemoryCatalogStore
from storefront_search.domain.model import Category, Product


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

_ids = count(1)


def make_product(
    name: str,
    *,
    category: Category | str = Category.ELECTRONICS,
    price: float = 1000,
    rating: float = 0,
    description: str | None = None,
    in_stock: bool = True,
    minutes: int | None = None,
    product_id: str | None = None,
) -> Product:
    """Build a product; ``minutes`` after BASE_TIME sets its creation time."""
    sequence = next(_ids)
    return Product(
        id=product_id or f"p{sequence}",
        name=name,
        category=category,
        price=price,
        rating=rating,
        image=f"https://img.example.com/{sequence}.jpg",
        description=description,
        in_stock=in_stock,
        created_at=BASE_TIME + timedelta(minutes=sequence if minutes is None else minutes),
    )


@pytest.fixture
def shoe_catalog() -> InMemoryCatalogStore:
    """The two-product catalog used by the end-to-end scenario."""
    return InMemoryCatalogStore(
        [
            make_product("Red Shoe", category=Category.CLOTHING, price=2000, rating=4, minutes=1, product_id="red"),
            make_product("Blue Shoe", category=Category.CLOTHING, price=6000, rating=3, minutes=2, product_id="blue"),
        ]
    )


@pytest.fixture
def catalog_products() -> list[Product]:
    return [
        make_product(
            "Wireless Headphones",
            category=Category.ELECTRONICS,
            price=12999,
            rating=4.6,
            description="Noise cancelling over-ear",
            minutes=1,
            product_id="headphones",
        ),
        make_product(
            "Cotton T-Shirt",
            category=Category.CLOTHING,
            price=799,
            rating=4.1,
            description="Soft crew neck",
            minutes=2,
            product_id="tshirt",
        ),
        make_product(
            "Running Shoe",
            category=Category.SPORTS,
            price=2999,
            rating=4.5,
            description="Lightweight mesh",
            minutes=3,
            product_id="runner",
        ),
        make_product(
            "Espresso Maker",
            category=Category.HOME_AND_KITCHEN,
            price=18999,
            rating=4.7,
            description="Pump espresso with milk frother",
            minutes=4,
            product_id="espresso",
        ),
        make_product(
            "Shoe Rack",
            category=Category.HOME_AND_KITCHEN,
            price=2999,
            rating=3.8,
            description=None,
            minutes=5,
            product_id="rack",
        ),
        make_product(
            "Python Cookbook",
            category=Category.BOOKS,
            price=1499,
            rating=4.8,
            description="Recipes for electronics hobbyists",
            minutes=6,
            product_id="cookbook",
        ),
    ]


@pytest.fixture
def catalog(catalog_products) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(catalog_products)


@pytest.fixture
def product_factory():
    return make_product
