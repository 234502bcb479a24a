"""Main ASGI application entry point.

Usage:
    # Serve the catalog from STOREFRONT_CATALOG_DB_PATH (default data/catalog.db)
    storefront-server

    # Or with uvicorn directly
    uvicorn storefront_search.app:create_app --factory
"""

import logging

from starlette.applications import Starlette

from .app_builder import AppBuilder
from .config import Settings


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> Starlette:
    """Create the ASGI application."""
    return AppBuilder(settings).build()


def main() -> None:
    """Main entry point for the catalog server."""
    import uvicorn

    settings = Settings()
    app = create_app(settings)

    logger.info("Starting catalog server on %s:%d", settings.host, settings.port)
    logger.info("Health check: http://%s:%d/health", settings.host, settings.port)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,  # Keep the logging configured by AppBuilder
    )


if __name__ == "__main__":
    main()
