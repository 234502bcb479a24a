"""Composable builder for the catalog query HTTP app."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Match, Route

from storefront_search import __version__
from storefront_search.adapters.catalog_store import AbstractCatalogStore
from storefront_search.adapters.sqlite_catalog_store import SqliteCatalogStore
from storefront_search.config import Settings
from storefront_search.observability import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    build_trace_resource_attributes,
    configure_log_exporter,
    configure_logging,
    configure_metrics_exporter,
    configure_trace_exporter,
    get_metrics,
    get_metrics_content_type,
    init_log_exporter,
    init_metrics,
    init_tracing,
)
from storefront_search.observability.logging import SERVICE_NAME
from storefront_search.observability.tracing import TraceContextMiddleware, trace_request
from storefront_search.runtime.health import build_health_endpoint
from storefront_search.service_layer import services
from storefront_search.service_layer.catalog_service import CatalogQueryService
from storefront_search.service_layer.services import QueryResponse, ResponseStatus


if TYPE_CHECKING:
    from starlette.requests import Request


logger = logging.getLogger(__name__)

STATUS_CODES = {
    ResponseStatus.OK: 200,
    ResponseStatus.INVALID: 400,
    ResponseStatus.NOT_FOUND: 404,
    ResponseStatus.FAILED: 500,
}

ROUTE_NOT_FOUND_MESSAGE = "Route not found"


class AppBuilder:
    """Builds the ASGI app from ``Settings`` and an optional pre-built store."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: AbstractCatalogStore | None = None,
        *,
        configure_observability: bool = True,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store or SqliteCatalogStore(self.settings.catalog_db_path)
        self.service = CatalogQueryService(self.store, suggestion_limit=self.settings.suggestion_limit)
        self.configure_observability = configure_observability

    def build(self) -> Starlette:
        """Build and return the Starlette application."""
        if self.configure_observability:
            self._init_observability()

        app = Starlette(
            debug=self.settings.log_level.lower() == "debug",
            routes=self._build_routes(),
            lifespan=self._build_lifespan_manager(),
            exception_handlers={HTTPException: self._http_exception_handler},
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.settings.get_cors_origins(),
            allow_methods=["GET"],
            allow_headers=["*"],
        )
        app.add_middleware(BaseHTTPMiddleware, dispatch=self._record_request_metrics)
        app.add_middleware(BaseHTTPMiddleware, dispatch=trace_request)
        app.add_middleware(TraceContextMiddleware)

        app.state.settings = self.settings
        app.state.catalog_service = self.service
        logger.info("Catalog server initialized with %s", type(self.store).__name__)
        return app

    def _init_observability(self) -> None:
        settings = self.settings
        configure_logging(level=settings.log_level, json_output=settings.json_logs)
        collector_config = settings.observability
        resource_attributes = build_trace_resource_attributes(collector_config)
        configure_metrics_exporter(collector_config, service_name=SERVICE_NAME, resource_attributes=resource_attributes)
        init_metrics(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
        init_tracing(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
        configure_trace_exporter(collector_config)
        init_log_exporter(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
        configure_log_exporter(collector_config)

    def _build_routes(self) -> list[Route]:
        return [
            Route("/api/products", endpoint=self._build_list_endpoint(), methods=["GET"]),
            Route("/api/search", endpoint=self._build_search_endpoint(), methods=["GET"]),
            Route("/api/products/{product_id}", endpoint=self._build_product_endpoint(), methods=["GET"]),
            Route("/health", endpoint=build_health_endpoint(self.store, version=__version__), methods=["GET"]),
            Route("/metrics", endpoint=self._build_metrics_endpoint(), methods=["GET"]),
        ]

    def _build_list_endpoint(self):
        async def list_products_endpoint(request: Request) -> JSONResponse:
            result = await services.list_products(request.query_params, self.service)
            return self._respond(result)

        return list_products_endpoint

    def _build_search_endpoint(self):
        async def search_endpoint(request: Request) -> JSONResponse:
            result = await services.suggest_products(request.query_params.get("q"), self.service)
            return self._respond(result)

        return search_endpoint

    def _build_product_endpoint(self):
        async def product_endpoint(request: Request) -> JSONResponse:
            result = await services.get_product(request.path_params["product_id"], self.service)
            return self._respond(result)

        return product_endpoint

    def _build_metrics_endpoint(self):
        async def metrics_endpoint(_: Request) -> Response:
            return Response(content=get_metrics(), media_type=get_metrics_content_type())

        return metrics_endpoint

    def _respond(self, result: QueryResponse) -> JSONResponse:
        payload = result.to_payload(include_error=not self.settings.mask_error_details)
        return JSONResponse(payload, status_code=STATUS_CODES[result.status])

    async def _http_exception_handler(self, request: Request, exc: HTTPException) -> JSONResponse:
        message = ROUTE_NOT_FOUND_MESSAGE if exc.status_code == 404 else exc.detail
        return JSONResponse({"success": False, "message": message}, status_code=exc.status_code)

    async def _record_request_metrics(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        route = _route_label(request)
        REQUEST_COUNT.labels(route=route, status=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route=route).observe(time.perf_counter() - start)
        return response

    def _build_lifespan_manager(self):
        @asynccontextmanager
        async def lifespan(app: Starlette):
            await self.store.initialize()
            try:
                yield
            finally:
                logger.info("Catalog server shutting down")

        return lifespan


def _route_label(request: Request) -> str:
    # Path templates keep the label set bounded
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
    return "unmatched"
