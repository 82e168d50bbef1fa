"""Adapters layer - catalog repository implementations.

Abstracts catalog, inventory and store reads behind the Repository Pattern.
"""

from .catalog_repository import AbstractCatalogRepository, FakeCatalogRepository
from .sqlite_catalog_repository import SqliteCatalogRepository, compile_filter


__all__ = [
    "AbstractCatalogRepository",
    "FakeCatalogRepository",
    "SqliteCatalogRepository",
    "compile_filter",
]
