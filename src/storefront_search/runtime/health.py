"""Health endpoint factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse


if TYPE_CHECKING:
    from starlette.requests import Request

    from storefront_search.adapters.catalog_store import AbstractCatalogStore


def build_health_endpoint(store: AbstractCatalogStore, *, version: str):
    """Return a coroutine function that reports catalog store health.

    Always answers 200; check the ``status`` field for degraded state.
    """

    async def health_check(request: Request) -> JSONResponse:
        store_ok = await store.ping()
        return JSONResponse(
            {
                "status": "healthy" if store_ok else "degraded",
                "version": version,
                "store": {
                    "backend": type(store).__name__,
                    "reachable": store_ok,
                },
            }
        )

    return health_check
