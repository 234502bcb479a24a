"""Storefront catalog search: query service, HTTP API and client components."""

__version__ = "0.1.0"
