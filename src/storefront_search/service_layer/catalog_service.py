"""Catalog Query Service - listing, suggestion and lookup use cases.

The service composes the predicate builder and sort resolver with a catalog
store. It raises domain errors; converting them into response envelopes is
the job of ``service_layer.services``.
"""

from collections.abc import Awaitable
import logging
from typing import TypeVar

from storefront_search.adapters.catalog_store import AbstractCatalogStore
from storefront_search.domain.criteria import FilterCriteria
from storefront_search.domain.errors import CatalogError, ProductNotFoundError, StoreUnavailableError
from storefront_search.domain.model import Product, ProductSummary
from storefront_search.domain.ordering import RATING_DESC, resolve_sort
from storefront_search.domain.predicates import build_listing_predicate, build_suggestion_predicate
from storefront_search.observability.metrics import QUERY_ERRORS, QUERY_LATENCY, track_latency
from storefront_search.observability.tracing import create_span


logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 5

T = TypeVar("T")


class CatalogQueryService:
    """Read-only queries over a catalog store.

    Every operation is side-effect free and idempotent. Store failures are
    always raised as ``StoreUnavailableError``; they never become an empty result.
    """

    def __init__(self, store: AbstractCatalogStore, *, suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT) -> None:
        if suggestion_limit < 1:
            raise ValueError("suggestion_limit must be at least 1")
        self.store = store
        self.suggestion_limit = suggestion_limit

    async def list_products(self, criteria: FilterCriteria | None = None) -> list[Product]:
        """Return every product matching ``criteria`` in the resolved order.

        No implicit limit is applied. ``None`` criteria lists the whole
        catalog newest-first.
        """
        criteria = criteria or FilterCriteria()
        predicate = build_listing_predicate(criteria)
        order = resolve_sort(criteria.sort_key)
        attributes = {"catalog.sort": criteria.sort_key.value, "catalog.has_search": bool(criteria.search_term)}
        return await self._run("list", attributes, self.store.find(predicate, order))

    async def suggest(self, term: str | None) -> list[ProductSummary]:
        """Return up to ``suggestion_limit`` name matches, highest rated first.

        Raises:
            QueryValidationError: ``term`` is missing or blank
            StoreUnavailableError: The store could not answer
        """
        try:
            predicate = build_suggestion_predicate(term)
        except CatalogError as exc:
            QUERY_ERRORS.labels(operation="suggest", error_type=exc.error_type).inc()
            raise
        products = await self._run(
            "suggest",
            {"catalog.limit": self.suggestion_limit},
            self.store.find(predicate, RATING_DESC, limit=self.suggestion_limit),
        )
        return [product.summarize() for product in products]

    async def get_product(self, product_id: str) -> Product:
        """Look up a single product.

        Raises:
            ProductNotFoundError: No product has ``product_id``
            StoreUnavailableError: The store could not answer
        """
        product = await self._run("get", {"catalog.product_id": product_id}, self.store.get(product_id))
        if product is None:
            QUERY_ERRORS.labels(operation="get", error_type=ProductNotFoundError.error_type).inc()
            raise ProductNotFoundError(product_id)
        return product

    async def _run(self, operation: str, attributes: dict, query: Awaitable[T]) -> T:
        with create_span(f"catalog.{operation}", attributes=attributes), track_latency(
            QUERY_LATENCY, operation=operation
        ):
            try:
                return await query
            except CatalogError as exc:
                QUERY_ERRORS.labels(operation=operation, error_type=exc.error_type).inc()
                raise
            except Exception as exc:
                QUERY_ERRORS.labels(operation=operation, error_type=StoreUnavailableError.error_type).inc()
                logger.warning("Catalog %s query failed: %s", operation, exc)
                raise StoreUnavailableError("Catalog query failed", detail=str(exc)) from exc
