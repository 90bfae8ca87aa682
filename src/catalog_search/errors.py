"""
Error taxonomy for catalog search.
"""

from __future__ import annotations


class CatalogSearchError(Exception):
    """Base class for search errors."""


class InputError(CatalogSearchError, ValueError):
    """Raised when a query is missing or malformed."""


class GenerationError(CatalogSearchError):
    """Raised when an embedding cannot be produced."""


class IndexUnavailableError(CatalogSearchError):
    """Raised when the similarity index is not provisioned or failing."""


class RepositoryError(CatalogSearchError):
    """Raised when the catalog cannot be read."""
