"""Catalog storage backends for product search."""

from .base import (
    ACTIVE_STATUS,
    CatalogRepository,
    CatalogWriter,
    ProductRecord,
)
from .duckdb import DuckDBCatalog

__all__ = [
    "ACTIVE_STATUS",
    "CatalogRepository",
    "CatalogWriter",
    "ProductRecord",
    "DuckDBCatalog",
]
