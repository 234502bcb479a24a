"""Filter criteria for catalog listings.

Query parameters arrive untyped (strings from a URL, ``None`` from a UI that
has nothing selected). ``FilterCriteria.from_query_params`` is the single place
where they are coerced; anything unparseable degrades to "absent" instead of
failing the request.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
import math
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from storefront_search.domain.model import Category


ALL_CATEGORIES = "all"


class SortKey(str, Enum):
    """Sort selectors understood by the catalog."""

    NEWEST = "newest"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    RATING = "rating"

    @classmethod
    def parse(cls, value: object) -> "SortKey":
        """Unknown or missing selectors fall back to newest-first."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NEWEST


@dataclass(frozen=True)
class PriceRange:
    """Preset price band offered by filter panels."""

    label: str
    min_price: float | None
    max_price: float | None


PRICE_RANGES: tuple[PriceRange, ...] = (
    PriceRange("All Prices", None, None),
    PriceRange("Under 5,000", 0, 5000),
    PriceRange("5,000 - 15,000", 5000, 15000),
    PriceRange("15,000 - 50,000", 15000, 50000),
    PriceRange("50,000+", 50000, None),
)


def parse_price(raw: object) -> float | None:
    """Coerce a raw price bound; empty, unparseable, non-finite or negative values are absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_category(raw: object) -> Category | None:
    """Resolve a category filter; the "all" sentinel and unknown names impose no constraint."""
    if isinstance(raw, str) and raw.strip().casefold() in ("", ALL_CATEGORIES):
        return None
    return Category.parse(raw)


class FilterCriteria(BaseModel):
    """Strictly-typed listing criteria.

    Invariants: bounds are non-negative, ``min_price <= max_price`` when both
    are present, and ``search_term`` is either ``None`` or non-empty after trimming.
    """

    model_config = ConfigDict(frozen=True)

    category: Category | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    search_term: str | None = None
    sort_key: SortKey = SortKey.NEWEST

    @field_validator("search_term", mode="before")
    @classmethod
    def _normalize_search_term(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _check_price_bounds(self) -> Self:
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> Self:
        """Build criteria from raw listing parameters.

        Recognized keys: ``category``, ``minPrice``, ``maxPrice``, ``sort`` and
        ``search``. Inverted price bounds are swapped rather than rejected, so
        ``minPrice=5000&maxPrice=1000`` lists the 1000-5000 band instead of nothing.
        """
        min_price = parse_price(params.get("minPrice"))
        max_price = parse_price(params.get("maxPrice"))
        if min_price is not None and max_price is not None and min_price > max_price:
            min_price, max_price = max_price, min_price

        search = params.get("search")
        return cls(
            category=parse_category(params.get("category")),
            min_price=min_price,
            max_price=max_price,
            search_term=search if isinstance(search, str) else None,
            sort_key=SortKey.parse(params.get("sort")),
        )

    def to_query_params(self) -> dict[str, str]:
        """Render the criteria back into listing parameters, omitting absent fields."""
        params: dict[str, str] = {}
        if self.category is not None:
            params["category"] = self.category.value
        if self.min_price is not None:
            params["minPrice"] = _format_number(self.min_price)
        if self.max_price is not None:
            params["maxPrice"] = _format_number(self.max_price)
        if self.sort_key is not SortKey.NEWEST:
            params["sort"] = self.sort_key.value
        if self.search_term:
            params["search"] = self.search_term
        return params

    def with_price_range(self, price_range: PriceRange) -> Self:
        return self.model_copy(update={"min_price": price_range.min_price, "max_price": price_range.max_price})


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else str(value)
