"""Runtime glue shared by the HTTP app."""

from storefront_search.runtime.health import build_health_endpoint


__all__ = ["build_health_endpoint"]
