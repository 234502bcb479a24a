"""Domain model - catalog entities and value objects.

- ``Product`` is the read-only catalog entity; identity is the store-assigned ``id``.
- ``ProductDraft`` carries the caller-supplied fields before the store assigns
  ``id`` and ``created_at``.
- ``ProductSummary`` is the display projection shared by suggestion results and
  cart snapshots.

Wire names are camelCase (``inStock``, ``createdAt``) to match the HTTP payloads;
Python attributes stay snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
MAX_RATING = 5.0


class Category(str, Enum):
    """Closed set of catalog categories."""

    ELECTRONICS = "Electronics"
    CLOTHING = "Clothing"
    HOME_AND_KITCHEN = "Home & Kitchen"
    BOOKS = "Books"
    SPORTS = "Sports"
    BEAUTY = "Beauty"
    TOYS = "Toys"

    @classmethod
    def parse(cls, value: object) -> Self | None:
        """Resolve a raw category value case-insensitively, ``None`` when unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        return None


_WIRE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class ProductSummary(BaseModel):
    """Display-relevant projection of a product."""

    model_config = _WIRE_CONFIG

    id: str
    name: str
    category: Category
    price: float = Field(ge=0)
    rating: float = Field(default=0.0, ge=0, le=MAX_RATING)
    image: str
    in_stock: bool = True


class ProductDraft(BaseModel):
    """Product fields supplied by whoever loads the catalog."""

    model_config = _WIRE_CONFIG

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    category: Category
    price: float = Field(ge=0)
    rating: float = Field(default=0.0, ge=0, le=MAX_RATING)
    image: str = Field(min_length=1)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    in_stock: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class Product(ProductDraft):
    """Catalog entity as returned by the store."""

    id: str = Field(min_length=1)
    created_at: datetime

    @classmethod
    def from_draft(cls, draft: ProductDraft, *, product_id: str, created_at: datetime) -> Self:
        return cls(id=product_id, created_at=created_at, **draft.model_dump())

    def summarize(self) -> ProductSummary:
        """Project the product down to its display fields."""
        return ProductSummary(
            id=self.id,
            name=self.name,
            category=self.category,
            price=self.price,
            rating=self.rating,
            image=self.image,
            in_stock=self.in_stock,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Product):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
