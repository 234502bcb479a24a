"""Load a JSON product list into the SQLite catalog.

Usage:
    storefront-seed data/sample_products.json
    storefront-seed products.json --db /tmp/catalog.db --replace
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

from pydantic import TypeAdapter, ValidationError

from storefront_search.adapters.sqlite_catalog_store import SqliteCatalogStore
from storefront_search.config import Settings
from storefront_search.domain.errors import StoreUnavailableError
from storefront_search.domain.model import ProductDraft
from storefront_search.observability.logging import configure_logging


logger = logging.getLogger(__name__)

_DRAFTS = TypeAdapter(list[ProductDraft])


def load_drafts(path: Path) -> list[ProductDraft]:
    """Parse and validate a JSON array of products (camelCase or snake_case keys)."""
    return _DRAFTS.validate_json(path.read_bytes())


async def seed_catalog(drafts: list[ProductDraft], db_path: Path, *, replace: bool = False) -> int:
    """Insert ``drafts`` in file order and return the resulting catalog size."""
    if replace and db_path.exists():
        logger.info("Removing existing catalog %s", db_path)
        db_path.unlink()
    store = SqliteCatalogStore(db_path)
    await store.initialize()
    await store.add_many(drafts)
    return await store.count()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the storefront catalog database")
    parser.add_argument("source", type=Path, help="JSON file containing a list of products")
    parser.add_argument("--db", type=Path, default=None, help="Catalog database path (default from settings)")
    parser.add_argument("--replace", action="store_true", help="Delete the existing catalog first")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(level=settings.log_level, json_output=False)
    db_path = args.db or settings.catalog_db_path

    try:
        drafts = load_drafts(args.source)
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.source, exc)
        return 1
    except ValidationError as exc:
        logger.error("Invalid product file %s: %s", args.source, exc)
        return 1

    try:
        total = asyncio.run(seed_catalog(drafts, db_path, replace=args.replace))
    except StoreUnavailableError as exc:
        logger.error("Seeding failed: %s (%s)", exc.message, exc.detail)
        return 1

    logger.info("Seeded %d products into %s (catalog size %d)", len(drafts), db_path, total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
