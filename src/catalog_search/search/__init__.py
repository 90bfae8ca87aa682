"""Search engines and helpers for the product catalog."""

from .embedder import QueryEmbedder
from .filters import CATEGORY_MAP, CatalogFilter, expand_category
from .hybrid import HybridSearchEngine, HybridSearchResult
from .keyword import KeywordMatcher, keyword_terms
from .ranker import (
    ProductCandidate,
    adaptive_threshold,
    merge_results,
    partition_candidates,
)
from .retrievers import (
    IndexRetriever,
    ScanRetriever,
    SemanticHit,
    SemanticRetrieval,
    index_caps,
)
from .semantic import SemanticSearchEngine, SemanticSearchResult
from .similarity import FallbackRanker, cosine_similarity, find_similar_products

__all__ = [
    "QueryEmbedder",
    "CATEGORY_MAP",
    "CatalogFilter",
    "expand_category",
    "HybridSearchEngine",
    "HybridSearchResult",
    "KeywordMatcher",
    "keyword_terms",
    "ProductCandidate",
    "adaptive_threshold",
    "merge_results",
    "partition_candidates",
    "IndexRetriever",
    "ScanRetriever",
    "SemanticHit",
    "SemanticRetrieval",
    "index_caps",
    "SemanticSearchEngine",
    "SemanticSearchResult",
    "FallbackRanker",
    "cosine_similarity",
    "find_similar_products",
]
