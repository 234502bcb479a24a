"""Sort resolution for catalog listings."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from storefront_search.domain.criteria import SortKey


if TYPE_CHECKING:
    from storefront_search.domain.model import Product


SORTABLE_FIELDS = frozenset({"price", "rating", "created_at"})


@dataclass(frozen=True)
class SortOrder:
    """Single-field ordering; ties keep the store's insertion order."""

    field: str
    descending: bool

    def __post_init__(self) -> None:
        if self.field not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sort field: {self.field}")

    def apply(self, products: Iterable[Product]) -> list[Product]:
        # sorted() stays stable with reverse=True, so equal keys keep input order
        return sorted(products, key=lambda product: getattr(product, self.field), reverse=self.descending)


_ORDERS = {
    SortKey.PRICE_ASC: SortOrder("price", descending=False),
    SortKey.PRICE_DESC: SortOrder("price", descending=True),
    SortKey.RATING: SortOrder("rating", descending=True),
}

NEWEST_FIRST = SortOrder("created_at", descending=True)
RATING_DESC = _ORDERS[SortKey.RATING]


def resolve_sort(selector: SortKey | str | None) -> SortOrder:
    """Map a sort selector to an ordering; anything unrecognized is newest-first."""
    return _ORDERS.get(SortKey.parse(selector), NEWEST_FIRST)
