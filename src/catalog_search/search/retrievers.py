"""
Semantic retrieval strategies.

``IndexRetriever`` queries the approximate similarity index and
``ScanRetriever`` ranks by exact cosine similarity in-process. ``SemanticRetrieval``
chooses between them: the index when it reports itself available, and the
scan when it is not provisioned or raises ``IndexUnavailableError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ..errors import IndexUnavailableError
from ..storage.base import CatalogFilterLike, CatalogRepository, ProductRecord
from .ranker import adaptive_threshold
from .similarity import FallbackRanker

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 300
MAX_INDEX_RESULTS = 50


def index_caps(limit: int) -> tuple[int, int]:
    """Return (candidate_cap, result_cap) for a requested limit."""
    candidate_cap = min(limit * 3, MAX_CANDIDATES)
    result_cap = min(limit, MAX_INDEX_RESULTS, candidate_cap)
    return candidate_cap, result_cap


@dataclass(frozen=True)
class SemanticHit:
    """A product retrieved by vector similarity."""

    product: ProductRecord
    similarity: float


class SemanticRetriever(Protocol):
    source: str

    def retrieve(
        self,
        query_vector: list[float],
        filter: CatalogFilterLike,
        *,
        limit: int,
        min_similarity: float,
        adaptive: bool,
    ) -> list[SemanticHit]: ...


class IndexRetriever:
    """Nearest-neighbour search through the catalog's similarity index."""

    source = "index"

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def retrieve(
        self,
        query_vector: list[float],
        filter: CatalogFilterLike,
        *,
        limit: int,
        min_similarity: float,
        adaptive: bool,
    ) -> list[SemanticHit]:
        candidate_cap, result_cap = index_caps(limit)
        ranked = self.repository.vector_search(
            query_vector, filter, candidate_cap, result_cap
        )
        similarities = [similarity for _, similarity in ranked]
        threshold = (
            adaptive_threshold(similarities, min_similarity) if adaptive else min_similarity
        )
        kept = [(pid, similarity) for pid, similarity in ranked if similarity >= threshold]
        logger.debug(
            "index search: %d raw results, %d kept (threshold %.3f)",
            len(ranked),
            len(kept),
            threshold,
        )

        products = self.repository.get_products([pid for pid, _ in kept])
        return [
            SemanticHit(product=products[pid], similarity=similarity)
            for pid, similarity in kept
            if pid in products
        ][:limit]


class ScanRetriever:
    """Exact cosine scan; filters by min_similarity only."""

    source = "fallback"

    def __init__(self, repository: CatalogRepository) -> None:
        self.ranker = FallbackRanker(repository)

    def retrieve(
        self,
        query_vector: list[float],
        filter: CatalogFilterLike,
        *,
        limit: int,
        min_similarity: float,
        adaptive: bool,
    ) -> list[SemanticHit]:
        # Adaptive narrowing is not applied on the degraded path.
        scored = self.ranker.rank(
            query_vector, filter, limit=limit, min_similarity=min_similarity
        )
        return [SemanticHit(product=item.product, similarity=item.similarity) for item in scored]


class SemanticRetrieval:
    """Run semantic retrieval on the index, falling back to the exact scan."""

    def __init__(
        self,
        repository: CatalogRepository,
        *,
        index: SemanticRetriever | None = None,
        fallback: SemanticRetriever | None = None,
    ) -> None:
        self.repository = repository
        self.index = index or IndexRetriever(repository)
        self.fallback = fallback or ScanRetriever(repository)

    def retrieve(
        self,
        query_vector: list[float],
        filter: CatalogFilterLike,
        *,
        limit: int,
        min_similarity: float,
        adaptive: bool,
        context: str = "",
    ) -> tuple[list[SemanticHit], str]:
        """Return (hits, source) where source names the retriever that answered."""
        if self.repository.vector_index_available():
            try:
                hits = self.index.retrieve(
                    query_vector,
                    filter,
                    limit=limit,
                    min_similarity=min_similarity,
                    adaptive=adaptive,
                )
                return hits, self.index.source
            except IndexUnavailableError as exc:
                logger.warning(
                    "similarity index unavailable, using exact scan (%s): %s",
                    context,
                    exc,
                )
        else:
            logger.warning(
                "similarity index not provisioned, using exact scan (%s)", context
            )

        hits = self.fallback.retrieve(
            query_vector,
            filter,
            limit=limit,
            min_similarity=min_similarity,
            adaptive=adaptive,
        )
        return hits, self.fallback.source
