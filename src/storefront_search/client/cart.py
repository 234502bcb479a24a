"""Cart Aggregator - quantity-keyed line items persisted across sessions."""

import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from storefront_search.adapters.state_storage import AbstractStateStorage
from storefront_search.domain.model import Product, ProductSummary


logger = logging.getLogger(__name__)

CART_KEY = "cart"


class CartLine(BaseModel):
    """One product in the cart with a display snapshot taken when it was added."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(ge=1)
    product: ProductSummary


_LINES = TypeAdapter(list[CartLine])


class Cart:
    """Ordered cart lines, at most one per product identifier.

    Quantities are always at least 1; a line that would drop to 0 is removed.
    Derived totals are computed on every read.
    """

    def __init__(self, storage: AbstractStateStorage) -> None:
        self._storage = storage
        self._lines: list[CartLine] = []
        self._loaded = False
        self.persistent = True

    async def load(self) -> list[CartLine]:
        if self._loaded:
            return self.lines
        self._loaded = True
        try:
            blob = await self._storage.load()
        except OSError as exc:
            self._degrade("load", exc)
            return self.lines
        if blob:
            self._lines = self._decode(blob)
        return self.lines

    async def add(self, product: Product | ProductSummary) -> CartLine:
        """Add one unit, snapshotting display fields for a new line."""
        await self.load()
        summary = product.summarize() if isinstance(product, Product) else product
        index = self._index(summary.id)
        if index is None:
            line = CartLine(product_id=summary.id, quantity=1, product=summary)
            self._lines.append(line)
        else:
            line = self._lines[index].model_copy(update={"quantity": self._lines[index].quantity + 1})
            self._lines[index] = line
        await self._persist()
        return line

    quick_add = add

    async def remove(self, product_id: str) -> None:
        await self.load()
        index = self._index(product_id)
        if index is None:
            return
        del self._lines[index]
        await self._persist()

    async def set_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; ``<= 0`` removes it and unknown ids are ignored."""
        await self.load()
        if quantity <= 0:
            await self.remove(product_id)
            return
        index = self._index(product_id)
        if index is None:
            return
        self._lines[index] = self._lines[index].model_copy(update={"quantity": quantity})
        await self._persist()

    async def clear(self) -> None:
        await self.load()
        self._lines = []
        await self._persist()

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def get_line(self, product_id: str) -> CartLine | None:
        index = self._index(product_id)
        return None if index is None else self._lines[index]

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def subtotal(self) -> float:
        return sum(line.product.price * line.quantity for line in self._lines)

    def _index(self, product_id: str) -> int | None:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        return None

    def _decode(self, blob: str) -> list[CartLine]:
        try:
            lines = _LINES.validate_json(blob)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cart: %s", exc.error_count())
            return []

        merged: dict[str, CartLine] = {}
        for line in lines:
            if line.product_id in merged:
                existing = merged[line.product_id]
                merged[line.product_id] = existing.model_copy(update={"quantity": existing.quantity + line.quantity})
            else:
                merged[line.product_id] = line
        return list(merged.values())

    async def _persist(self) -> None:
        if not self.persistent:
            return
        try:
            await self._storage.save(_LINES.dump_json(self._lines, by_alias=True).decode("utf-8"))
        except OSError as exc:
            self._degrade("save", exc)

    def _degrade(self, operation: str, exc: OSError) -> None:
        logger.warning("Cart %s failed, keeping cart in memory: %s", operation, exc)
        self.persistent = False
