"""
Ranking helpers for fusing keyword and semantic result sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Sequence, TypeAlias

from ..storage.base import ProductRecord

MatchType: TypeAlias = Literal["keyword", "semantic", "hybrid"]

KEYWORD_SCORE = 1.0
EXISTING_WEIGHT = 0.7
SEMANTIC_WEIGHT = 0.3
SEMANTIC_ONLY_WEIGHT = 0.7
ADAPTIVE_RATIO = 0.96
MAX_SUGGESTIONS = 10


@dataclass(frozen=True)
class ProductCandidate:
    """Merged retrieval candidate for a product."""

    product: ProductRecord
    score: float
    match_type: MatchType

    @property
    def id(self) -> str:
        return self.product.id

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.product.to_dict(),
            "score": self.score,
            "matchType": self.match_type,
        }


def adaptive_threshold(similarities: Sequence[float], min_similarity: float) -> float:
    """Cut-off relative to the best similarity, never below min_similarity."""
    top_score = max(similarities, default=0.0)
    return max(min_similarity, top_score * ADAPTIVE_RATIO)


def merge_results(
    keyword_hits: Iterable[ProductRecord],
    semantic_hits: Iterable[tuple[ProductRecord, float]],
) -> dict[str, ProductCandidate]:
    """Fuse keyword and semantic hits into one candidate per product id."""
    merged: dict[str, ProductCandidate] = {}

    for product in keyword_hits:
        merged[product.id] = ProductCandidate(
            product=product, score=KEYWORD_SCORE, match_type="keyword"
        )

    for product, similarity in semantic_hits:
        existing = merged.get(product.id)
        if existing is not None:
            merged[product.id] = ProductCandidate(
                product=existing.product,
                score=existing.score * EXISTING_WEIGHT + similarity * SEMANTIC_WEIGHT,
                match_type="hybrid",
            )
        else:
            merged[product.id] = ProductCandidate(
                product=product,
                score=similarity * SEMANTIC_ONLY_WEIGHT,
                match_type="semantic",
            )
    return merged


def rank_candidates(candidates: Iterable[ProductCandidate], *, limit: int) -> list[ProductCandidate]:
    """Sort by score descending (ties by name, then id) and apply limit."""
    ordered = sorted(
        candidates,
        key=lambda candidate: (-candidate.score, candidate.product.name, candidate.id),
    )
    return ordered[: max(limit, 0)]


def partition_candidates(
    merged: dict[str, ProductCandidate], *, limit: int
) -> tuple[list[ProductCandidate], list[ProductCandidate]]:
    """Split into (exact_matches, suggestions)."""
    exact = [c for c in merged.values() if c.match_type in ("keyword", "hybrid")]
    semantic = [c for c in merged.values() if c.match_type == "semantic"]
    return (
        rank_candidates(exact, limit=limit),
        rank_candidates(semantic, limit=min(MAX_SUGGESTIONS, limit)),
    )
