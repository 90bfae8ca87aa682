"""
Vector-based semantic search engine.

Embeds a query and ranks catalog products by similarity, falling back to an
exact cosine scan when the similarity index is unavailable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from ..errors import InputError
from ..models import SearchQuery
from ..storage import CatalogRepository
from .embedder import QueryEmbedder
from .filters import CatalogFilter
from .retrievers import SemanticHit, SemanticRetrieval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SemanticSearchResult:
    """Ranked products with their relevance scores."""

    hits: list[SemanticHit]
    timing_ms: int
    semantic_source: str

    @property
    def count(self) -> int:
        return len(self.hits)

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": [
                {**hit.product.to_dict(), "relevanceScore": hit.similarity}
                for hit in self.hits
            ],
            "count": self.count,
        }


class SemanticSearchEngine:
    """Embed a query and search stored product embeddings."""

    def __init__(
        self,
        repository: CatalogRepository,
        embedder: QueryEmbedder,
        *,
        retrieval: SemanticRetrieval | None = None,
    ) -> None:
        self.repository = repository
        self.embedder = embedder
        self.retrieval = retrieval or SemanticRetrieval(repository)

    def search(self, query: SearchQuery) -> SemanticSearchResult:
        """Return products ranked by similarity; GenerationError propagates."""
        if not query.text.strip():
            raise InputError("query parameter q is required")

        start = time.perf_counter()
        catalog_filter = CatalogFilter.from_category(query.category)
        query_vector = self.embedder.embed_with_deadline(query.text)
        hits, source = self.retrieval.retrieve(
            query_vector,
            catalog_filter,
            limit=query.limit,
            min_similarity=query.min_similarity,
            adaptive=False,
            context=f"query={query.text.lower()!r}, filter={catalog_filter.describe()}",
        )
        timing_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "semantic search via %s completed in %dms (%d results)",
            source,
            timing_ms,
            len(hits),
        )
        return SemanticSearchResult(hits=hits, timing_ms=timing_ms, semantic_source=source)
