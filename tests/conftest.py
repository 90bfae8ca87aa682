from __future__ import annotations

import threading
from typing import Any

import pytest

from catalog_search.cache import EmbeddingCache
from catalog_search.search import QueryEmbedder, cosine_similarity
from catalog_search.storage import ProductRecord


def make_product(
    product_id: str,
    name: str,
    *,
    description: str = "",
    category: str = "Others",
    price: float = 10.0,
    stock: int = 5,
    status: str = "active",
    embedding: list[float] | None = None,
) -> ProductRecord:
    return ProductRecord(
        id=product_id,
        name=name,
        description=description,
        price=price,
        stock=stock,
        status=status,
        category=category,
        seller_id="seller_1",
        condition="Good",
        embedding=embedding,
    )


class FakeCatalog:
    """In-memory catalog that mirrors the repository contract."""

    def __init__(
        self,
        products: list[ProductRecord],
        *,
        vector_results: list[tuple[str, float]] | None = None,
        index_available: bool = True,
        index_error: Exception | None = None,
        keyword_error: Exception | None = None,
        scan_error: Exception | None = None,
    ) -> None:
        self.products = {product.id: product for product in products}
        self.vector_results = vector_results
        self.index_available = index_available
        self.index_error = index_error
        self.keyword_error = keyword_error
        self.scan_error = scan_error
        self.vector_calls: list[dict[str, Any]] = []
        self.scan_calls = 0

    def vector_index_available(self) -> bool:
        return self.index_available

    def find_eligible(self, filter, *, with_embeddings: bool = False) -> list[ProductRecord]:
        self.scan_calls += 1
        if self.scan_error is not None:
            raise self.scan_error
        return [
            product
            for product in self.products.values()
            if filter.matches(product) and (not with_embeddings or product.embedding)
        ]

    def get_products(self, ids: list[str]) -> dict[str, ProductRecord]:
        return {pid: self.products[pid] for pid in ids if pid in self.products}

    def keyword_search(self, *, phrase, tokens, filter, limit) -> list[ProductRecord]:
        if self.keyword_error is not None:
            raise self.keyword_error
        needle = phrase.lower()
        hits = []
        for product in self.products.values():
            if not filter.matches(product):
                continue
            fields = (product.name.lower(), product.description.lower(), product.category.lower())
            if any(needle in value for value in fields) or any(
                token in product.name.lower() or token in product.category.lower()
                for token in tokens
            ):
                hits.append(product)
        return hits[:limit]

    def vector_search(self, vector, filter, candidate_cap, result_cap) -> list[tuple[str, float]]:
        self.vector_calls.append(
            {"vector": vector, "candidate_cap": candidate_cap, "result_cap": result_cap}
        )
        if self.index_error is not None:
            raise self.index_error
        if self.vector_results is not None:
            ranked = [
                (pid, similarity)
                for pid, similarity in self.vector_results
                if pid in self.products and filter.matches(self.products[pid])
            ]
        else:
            ranked = [
                (product.id, cosine_similarity(vector, product.embedding))
                for product in self.products.values()
                if product.embedding and filter.matches(product)
            ]
        ranked.sort(key=lambda item: -item[1])
        return ranked[:result_cap]


class FakeEmbeddingSource:
    """Returns a fixed vector per text and counts calls."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        default: list[float] | None = None,
        error: Exception | None = None,
        delay: threading.Event | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def generate(self, text: str) -> list[float]:
        with self._lock:
            self.calls.append(text)
        if self.delay is not None:
            self.delay.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.vectors.get(text, self.default)


@pytest.fixture()
def embedder_factory():
    def _make(source: FakeEmbeddingSource, *, timeout: float | None = None) -> QueryEmbedder:
        return QueryEmbedder(source, EmbeddingCache(ttl=60), timeout=timeout)

    return _make
