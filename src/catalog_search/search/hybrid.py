"""
Hybrid keyword + semantic product search.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..errors import GenerationError, InputError
from ..models import SearchQuery
from ..storage import CatalogRepository, ProductRecord
from .embedder import QueryEmbedder
from .filters import CatalogFilter
from .keyword import KeywordMatcher
from .ranker import ProductCandidate, merge_results, partition_candidates
from .retrievers import SemanticHit, SemanticRetrieval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HybridSearchResult:
    """Exact matches (keyword or hybrid) and semantic-only suggestions."""

    exact_matches: list[ProductCandidate]
    suggestions: list[ProductCandidate]
    timing_ms: int
    degraded: bool = False
    semantic_source: str = "none"

    @property
    def count(self) -> int:
        return len(self.exact_matches)

    @property
    def suggestions_count(self) -> int:
        return len(self.suggestions)

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "exactMatches": [candidate.to_dict() for candidate in self.exact_matches],
            "suggestions": [candidate.to_dict() for candidate in self.suggestions],
            "count": self.count,
            "suggestionsCount": self.suggestions_count,
            "timing": f"{self.timing_ms}ms",
            "degraded": self.degraded,
        }


class HybridSearchEngine:
    """Parallel retrieval engine for keyword + semantic query paths."""

    def __init__(
        self,
        repository: CatalogRepository,
        embedder: QueryEmbedder,
        *,
        keyword_matcher: KeywordMatcher | None = None,
        retrieval: SemanticRetrieval | None = None,
    ) -> None:
        self.repository = repository
        self.embedder = embedder
        self.keyword_matcher = keyword_matcher or KeywordMatcher(repository)
        self.retrieval = retrieval or SemanticRetrieval(repository)

    def search(self, query: SearchQuery) -> HybridSearchResult:
        if not query.text.strip():
            raise InputError("query parameter q is required")

        start = time.perf_counter()
        catalog_filter = CatalogFilter.from_category(query.category)
        context = f"query={query.text.lower()!r}, filter={catalog_filter.describe()}"
        logger.debug(
            "hybrid search request: %s, limit=%d, min_similarity=%.3f",
            context,
            query.limit,
            query.min_similarity,
        )

        semantic_hits: list[SemanticHit] = []
        source = "none"
        degraded = False

        executor = ThreadPoolExecutor(max_workers=2)
        try:
            keyword_future = executor.submit(
                self.keyword_matcher.find,
                query.text,
                catalog_filter,
                limit=query.limit,
            )
            embedding_future = self.embedder.submit(executor, query.text)

            try:
                query_vector: list[float] | None = self.embedder.wait(embedding_future)
            except GenerationError as exc:
                logger.warning(
                    "embedding unavailable, returning keyword results only (%s): %s",
                    context,
                    exc,
                )
                query_vector = None
                degraded = True

            if query_vector is not None:
                semantic_hits, source = self.retrieval.retrieve(
                    query_vector,
                    catalog_filter,
                    limit=query.limit,
                    min_similarity=query.min_similarity,
                    adaptive=True,
                    context=context,
                )

            keyword_hits: list[ProductRecord] = keyword_future.result()
        finally:
            executor.shutdown(wait=False)

        merged = merge_results(
            keyword_hits,
            ((hit.product, hit.similarity) for hit in semantic_hits),
        )
        exact_matches, suggestions = partition_candidates(merged, limit=query.limit)

        timing_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "hybrid search completed in %dms (%d keyword, %d semantic via %s; "
            "%d exact, %d suggestions)",
            timing_ms,
            len(keyword_hits),
            len(semantic_hits),
            source,
            len(exact_matches),
            len(suggestions),
        )
        return HybridSearchResult(
            exact_matches=exact_matches,
            suggestions=suggestions,
            timing_ms=timing_ms,
            degraded=degraded,
            semantic_source=source,
        )
