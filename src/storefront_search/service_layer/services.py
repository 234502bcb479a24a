"""Service layer - query use cases behind a never-raising boundary.

Each function runs one catalog query and returns a ``QueryResponse``. Domain
errors become failure responses with a distinct ``status``; anything
unexpected is logged and reported as a failed query. Nothing propagates to
the caller, so a bad query can never take down the process serving it.
"""

from collections.abc import Mapping
from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from storefront_search.domain.criteria import FilterCriteria
from storefront_search.domain.errors import (
    CatalogError,
    ProductNotFoundError,
    QueryValidationError,
    StoreUnavailableError,
)
from storefront_search.domain.model import Product, ProductSummary
from storefront_search.service_layer.catalog_service import CatalogQueryService


logger = logging.getLogger(__name__)

QUERY_FAILED_MESSAGE = "Server Error"


class ResponseStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class QueryResponse(BaseModel):
    """Structured outcome of a query use case."""

    model_config = ConfigDict(frozen=True)

    success: bool
    status: ResponseStatus
    count: int | None = None
    data: list[Product] | list[ProductSummary] | Product | None = None
    message: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: list[Product] | list[ProductSummary] | Product) -> "QueryResponse":
        count = len(data) if isinstance(data, list) else None
        return cls(success=True, status=ResponseStatus.OK, count=count, data=data)

    @classmethod
    def failure(cls, exc: CatalogError) -> "QueryResponse":
        if isinstance(exc, QueryValidationError):
            status = ResponseStatus.INVALID
        elif isinstance(exc, ProductNotFoundError):
            status = ResponseStatus.NOT_FOUND
        else:
            status = ResponseStatus.FAILED
        message = QUERY_FAILED_MESSAGE if status is ResponseStatus.FAILED else exc.message
        return cls(success=False, status=status, message=message, error=exc.detail or exc.message)

    def to_payload(self, *, include_error: bool = False) -> dict[str, Any]:
        """Render the wire envelope.

        Success: ``{"success": true, "count": n, "data": [...]}`` (``count`` only
        for sequences). Failure: ``{"success": false, "message": ...}`` plus
        ``error`` when ``include_error`` is set.
        """
        if self.success:
            payload: dict[str, Any] = {"success": True}
            if self.count is not None:
                payload["count"] = self.count
            payload["data"] = _dump(self.data)
            return payload

        payload = {"success": False, "message": self.message}
        if include_error and self.error:
            payload["error"] = self.error
        return payload


def _dump(data: Any) -> Any:
    if isinstance(data, list):
        return [item.model_dump(mode="json", by_alias=True) for item in data]
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    return data


async def list_products(
    params: Mapping[str, Any] | FilterCriteria | None,
    service: CatalogQueryService,
) -> QueryResponse:
    """List products from raw query parameters or prepared criteria."""
    try:
        criteria = params if isinstance(params, FilterCriteria) else FilterCriteria.from_query_params(params or {})
        products = await service.list_products(criteria)
    except CatalogError as exc:
        return _failed("list", exc)
    except Exception as exc:
        return _unexpected("list", exc)
    return QueryResponse.ok(products)


async def suggest_products(term: str | None, service: CatalogQueryService) -> QueryResponse:
    try:
        suggestions = await service.suggest(term)
    except CatalogError as exc:
        return _failed("suggest", exc)
    except Exception as exc:
        return _unexpected("suggest", exc)
    return QueryResponse.ok(suggestions)


async def get_product(product_id: str, service: CatalogQueryService) -> QueryResponse:
    try:
        product = await service.get_product(product_id)
    except CatalogError as exc:
        return _failed("get", exc)
    except Exception as exc:
        return _unexpected("get", exc)
    return QueryResponse.ok(product)


def _failed(operation: str, exc: CatalogError) -> QueryResponse:
    if isinstance(exc, StoreUnavailableError):
        logger.exception("Catalog %s query failed", operation)
    else:
        logger.info("Catalog %s query rejected: %s", operation, exc.message)
    return QueryResponse.failure(exc)


def _unexpected(operation: str, exc: Exception) -> QueryResponse:
    logger.exception("Unexpected error in catalog %s query", operation)
    return QueryResponse.failure(StoreUnavailableError("Catalog query failed", detail=str(exc)))
