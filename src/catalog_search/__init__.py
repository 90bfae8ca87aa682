"""
catalog_search - hybrid keyword and semantic product discovery.

This package answers free-text queries against a product catalog by combining
literal keyword matching with embedding similarity, producing ranked exact
matches and semantic suggestions.

Example usage:
    >>> from catalog_search import DuckDBCatalog, EmbeddingProvider, build_query
    >>> from catalog_search.server import build_services
    >>> services = build_services(DuckDBCatalog("catalog.duckdb"), EmbeddingProvider())
    >>> result = services.hybrid.search(build_query("study guides"))
"""

from .cache import EmbeddingCache
from .embeddings import EmbeddingProvider
from .errors import (
    CatalogSearchError,
    GenerationError,
    IndexUnavailableError,
    InputError,
    RepositoryError,
)
from .models import SearchQuery, build_query
from .search import (
    HybridSearchEngine,
    HybridSearchResult,
    QueryEmbedder,
    SemanticSearchEngine,
    SemanticSearchResult,
)
from .storage import DuckDBCatalog, ProductRecord

__all__ = [
    # Cache and embeddings
    "EmbeddingCache",
    "EmbeddingProvider",
    "QueryEmbedder",
    # Errors
    "CatalogSearchError",
    "GenerationError",
    "IndexUnavailableError",
    "InputError",
    "RepositoryError",
    # Queries and engines
    "SearchQuery",
    "build_query",
    "HybridSearchEngine",
    "HybridSearchResult",
    "SemanticSearchEngine",
    "SemanticSearchResult",
    # Storage
    "DuckDBCatalog",
    "ProductRecord",
]
