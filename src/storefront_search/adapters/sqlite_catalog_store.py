"""SQLite-backed catalog store.

Storage layout:
- One ``products`` table; ``seq`` is the insertion order and the tie-break
  for every sort.
- ``created_at`` is stored as a fixed-width ISO-8601 UTC string so that
  lexical order equals chronological order.

Predicate trees are compiled to parameterized SQL. Case-insensitive substring
matching goes through a registered ``contains_ci`` function so the store and
the in-memory evaluator fold case identically (SQLite's own ``LIKE`` and
``lower()`` only fold ASCII).

Every query opens its own connection inside a worker thread, which keeps the
event loop free and avoids sharing connections across threads.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from contextlib import closing
from datetime import datetime, timezone
import logging
from pathlib import Path
import sqlite3
from typing import Any, TypeVar

from anyio import to_thread

from storefront_search.adapters.catalog_store import AbstractCatalogStore, MonotonicClock, new_product_id
from storefront_search.domain.errors import StoreUnavailableError
from storefront_search.domain.model import Product, ProductDraft
from storefront_search.domain.ordering import NEWEST_FIRST, SortOrder
from storefront_search.domain.predicates import (
    AllOf,
    AnyOf,
    ContainsText,
    FieldEquals,
    FieldRange,
    MatchAll,
    Predicate,
    contains_casefold,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    category TEXT NOT NULL,
    price REAL NOT NULL CHECK (price >= 0),
    rating REAL NOT NULL DEFAULT 0 CHECK (rating >= 0 AND rating <= 5),
    image TEXT NOT NULL,
    description TEXT,
    in_stock INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_products_category ON products (category);
CREATE INDEX IF NOT EXISTS idx_products_created_at ON products (created_at);
"""

_PRODUCT_COLUMNS = (
    "id",
    "name",
    "category",
    "price",
    "rating",
    "image",
    "description",
    "in_stock",
    "created_at",
)

# Domain field name -> SQL column; anything else is rejected before it reaches SQL
_COLUMN_BY_FIELD = {
    "name": "name",
    "description": "description",
    "category": "category",
    "price": "price",
    "rating": "rating",
    "created_at": "created_at",
}


def _column(field: str) -> str:
    try:
        return _COLUMN_BY_FIELD[field]
    except KeyError:
        raise ValueError(f"Field {field!r} cannot be queried") from None


def _contains_ci(value: str | None, needle: str | None) -> int:
    if value is None or needle is None:
        return 0
    return int(contains_casefold(value, needle))


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def compile_predicate(predicate: Predicate) -> tuple[str, list[Any]]:
    """Compile a predicate tree into a WHERE fragment and its parameters."""
    if isinstance(predicate, MatchAll):
        return "1 = 1", []
    if isinstance(predicate, FieldEquals):
        return f"{_column(predicate.field)} = ?", [predicate.value]
    if isinstance(predicate, FieldRange):
        column = _column(predicate.field)
        parts: list[str] = []
        params: list[Any] = []
        if predicate.lower is not None:
            parts.append(f"{column} >= ?")
            params.append(predicate.lower)
        if predicate.upper is not None:
            parts.append(f"{column} <= ?")
            params.append(predicate.upper)
        return (" AND ".join(parts) or "1 = 1"), params
    if isinstance(predicate, ContainsText):
        return f"contains_ci({_column(predicate.field)}, ?)", [predicate.text]
    if isinstance(predicate, (AllOf, AnyOf)):
        if not predicate.clauses:
            return ("1 = 1", []) if isinstance(predicate, AllOf) else ("1 = 0", [])
        joiner = " AND " if isinstance(predicate, AllOf) else " OR "
        fragments: list[str] = []
        params = []
        for clause in predicate.clauses:
            fragment, clause_params = compile_predicate(clause)
            fragments.append(f"({fragment})")
            params.extend(clause_params)
        return joiner.join(fragments), params
    raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")


def compile_order(order: SortOrder) -> str:
    direction = "DESC" if order.descending else "ASC"
    return f"{_column(order.field)} {direction}, seq ASC"


def _row_to_product(row: sqlite3.Row) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        price=row["price"],
        rating=row["rating"],
        image=row["image"],
        description=row["description"],
        in_stock=bool(row["in_stock"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class SqliteCatalogStore(AbstractCatalogStore):
    """Catalog store persisted in a single SQLite database file."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = Path(db_path).expanduser()
        self.busy_timeout_ms = busy_timeout_ms
        self._clock = MonotonicClock()

    async def initialize(self) -> None:
        """Create the database file and schema if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        await self._run(self._initialize_sync, write=True)
        logger.info("Catalog store ready at %s", self.db_path)

    async def find(
        self,
        predicate: Predicate,
        order: SortOrder = NEWEST_FIRST,
        limit: int | None = None,
    ) -> list[Product]:
        where, params = compile_predicate(predicate)
        sql = f"SELECT {', '.join(_PRODUCT_COLUMNS)} FROM products WHERE {where} ORDER BY {compile_order(order)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(max(limit, 0))

        def query(conn: sqlite3.Connection) -> list[Product]:
            return [_row_to_product(row) for row in conn.execute(sql, params)]

        return await self._run(query)

    async def get(self, product_id: str) -> Product | None:
        sql = f"SELECT {', '.join(_PRODUCT_COLUMNS)} FROM products WHERE id = ?"

        def query(conn: sqlite3.Connection) -> Product | None:
            row = conn.execute(sql, (product_id,)).fetchone()
            return _row_to_product(row) if row is not None else None

        return await self._run(query)

    async def add(self, draft: ProductDraft) -> Product:
        return (await self.add_many([draft]))[0]

    async def add_many(self, drafts: Iterable[ProductDraft]) -> list[Product]:
        products = [
            Product.from_draft(draft, product_id=new_product_id(), created_at=self._clock.now()) for draft in drafts
        ]
        placeholders = ", ".join("?" for _ in _PRODUCT_COLUMNS)
        sql = f"INSERT INTO products ({', '.join(_PRODUCT_COLUMNS)}) VALUES ({placeholders})"
        rows = [
            (
                product.id,
                product.name,
                product.category.value,
                product.price,
                product.rating,
                product.image,
                product.description,
                int(product.in_stock),
                _format_timestamp(product.created_at),
            )
            for product in products
        ]

        def insert(conn: sqlite3.Connection) -> None:
            with conn:
                conn.executemany(sql, rows)

        await self._run(insert, write=True)
        logger.debug("Inserted %d products", len(products))
        return products

    async def count(self) -> int:
        def query(conn: sqlite3.Connection) -> int:
            return int(conn.execute("SELECT COUNT(*) FROM products").fetchone()[0])

        return await self._run(query)

    def _initialize_sync(self, conn: sqlite3.Connection) -> None:
        conn.executescript(_SCHEMA)
        latest = conn.execute("SELECT MAX(created_at) FROM products").fetchone()[0]
        if latest:
            self._clock.observe(datetime.fromisoformat(latest))

    def _connect(self, *, write: bool) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        if write:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        else:
            conn.execute("PRAGMA query_only = 1")
        return conn

    async def _run(self, operation: Callable[[sqlite3.Connection], T], *, write: bool = False) -> T:
        def run() -> T:
            with closing(self._connect(write=write)) as conn:
                return operation(conn)

        try:
            return await to_thread.run_sync(run)
        except (sqlite3.Error, OSError) as exc:
            logger.error("Catalog query failed on %s: %s", self.db_path, exc)
            raise StoreUnavailableError("Catalog store query failed", detail=str(exc)) from exc
