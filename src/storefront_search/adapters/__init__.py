"""Adapters layer - store and persistence implementations.

Catalog stores implement the product query interface; state storages
implement the blob persistence used by client-side components.
"""

from .catalog_store import AbstractCatalogStore, InMemoryCatalogStore
from .sqlite_catalog_store import SqliteCatalogStore
from .state_storage import AbstractStateStorage, FileStateStorage, InMemoryStateStorage, client_storage


__all__ = [
    "AbstractCatalogStore",
    "AbstractStateStorage",
    "FileStateStorage",
    "InMemoryCatalogStore",
    "InMemoryStateStorage",
    "SqliteCatalogStore",
    "client_storage",
]
