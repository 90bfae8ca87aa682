"""
Exact cosine-similarity ranking over catalog embeddings.

This is the degraded path used when the similarity index cannot serve a
query: every eligible product carrying an embedding is scored in-process.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from ..storage.base import CatalogFilterLike, CatalogRepository, ProductRecord


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (|a| * |b|), or 0.0 when either norm is zero."""
    if len(a) != len(b):
        raise ValueError(f"vectors must be same length ({len(a)} != {len(b)})")

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


@dataclass(frozen=True)
class ScoredProduct:
    """A product paired with its similarity to the query vector."""

    product: ProductRecord
    similarity: float


def find_similar_products(
    query_vector: Sequence[float],
    products: list[ProductRecord],
    top_n: int = 10,
) -> list[ScoredProduct]:
    """Score products that carry an embedding and return the top_n, best first."""
    scored = [
        ScoredProduct(product=product, similarity=cosine_similarity(query_vector, product.embedding))
        for product in products
        if product.embedding
    ]
    scored.sort(key=lambda item: (-item.similarity, item.product.id))
    return scored[: max(top_n, 0)]


class FallbackRanker:
    """Exact scan over eligible catalog embeddings."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def rank(
        self,
        query_vector: list[float],
        filter: CatalogFilterLike,
        *,
        limit: int,
        min_similarity: float,
    ) -> list[ScoredProduct]:
        products = self.repository.find_eligible(filter, with_embeddings=True)
        top = find_similar_products(query_vector, products, top_n=limit * 2)
        return [item for item in top if item.similarity >= min_similarity][:limit]
