"""Catalog store abstractions and the in-memory implementation.

The store is the only collaborator that touches product data. It exposes
predicate-filtered retrieval, single-field sort, result limiting and lookup
by identifier; it does not know about query parameters or response shapes.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
import logging
from uuid import uuid4

from storefront_search.domain.errors import StoreUnavailableError
from storefront_search.domain.model import Product, ProductDraft
from storefront_search.domain.ordering import NEWEST_FIRST, SortOrder
from storefront_search.domain.predicates import MatchAll, Predicate


logger = logging.getLogger(__name__)


class AbstractCatalogStore(ABC):
    """Abstract read/seed interface for the product catalog."""

    async def initialize(self) -> None:
        """Optional hook for creating schema or opening connections."""

        return

    @abstractmethod
    async def find(
        self,
        predicate: Predicate,
        order: SortOrder = NEWEST_FIRST,
        limit: int | None = None,
    ) -> list[Product]:
        """Return products matching ``predicate`` in ``order``.

        Args:
            predicate: Composed filter; ``MatchAll`` returns the whole catalog
            order: Sort order; ties keep insertion order
            limit: Maximum number of products, ``None`` for no limit

        Raises:
            StoreUnavailableError: The store could not execute the query
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, product_id: str) -> Product | None:
        """Look up a product by identifier; ``None`` signals not found."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, draft: ProductDraft) -> Product:
        """Insert a product, assigning its identifier and creation timestamp."""
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        raise NotImplementedError

    async def add_many(self, drafts: Iterable[ProductDraft]) -> list[Product]:
        return [await self.add(draft) for draft in drafts]

    async def ping(self) -> bool:
        """Report whether the store can currently answer queries."""
        try:
            await self.count()
        except StoreUnavailableError:
            return False
        return True


class MonotonicClock:
    """UTC clock that never returns the same instant twice."""

    def __init__(self) -> None:
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current

    def observe(self, instant: datetime) -> None:
        if self._last is None or instant > self._last:
            self._last = instant


def new_product_id() -> str:
    return uuid4().hex


class InMemoryCatalogStore(AbstractCatalogStore):
    """Catalog held in a list, in insertion order.

    Used by tests and for small fixed catalogs. Setting ``available`` to
    ``False`` makes every query fail like an unreachable store.
    """

    def __init__(self, products: Iterable[Product] | None = None) -> None:
        self._products: list[Product] = []
        self._clock = MonotonicClock()
        self.available = True
        for product in products or ():
            self.put(product)

    def put(self, product: Product) -> None:
        """Insert a fully-formed product (identifier and timestamp already set)."""
        if any(existing.id == product.id for existing in self._products):
            raise ValueError(f"Duplicate product id: {product.id}")
        self._products.append(product)
        self._clock.observe(product.created_at)

    async def find(
        self,
        predicate: Predicate,
        order: SortOrder = NEWEST_FIRST,
        limit: int | None = None,
    ) -> list[Product]:
        self._check_available()
        matches = self._products if isinstance(predicate, MatchAll) else [
            product for product in self._products if predicate.matches(product)
        ]
        ordered = order.apply(matches)
        if limit is not None:
            return ordered[: max(limit, 0)]
        return ordered

    async def get(self, product_id: str) -> Product | None:
        self._check_available()
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    async def add(self, draft: ProductDraft) -> Product:
        self._check_available()
        product = Product.from_draft(draft, product_id=new_product_id(), created_at=self._clock.now())
        self._products.append(product)
        return product

    async def count(self) -> int:
        self._check_available()
        return len(self._products)

    def _check_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("Catalog store is unavailable", detail="in-memory store marked unavailable")
