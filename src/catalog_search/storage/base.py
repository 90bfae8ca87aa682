"""
Catalog repository interfaces and records consumed by the search engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


ACTIVE_STATUS = "active"


@dataclass(frozen=True)
class ProductRecord:
    """A catalog product as read for search."""

    id: str
    name: str
    description: str
    price: float
    stock: int
    status: str
    category: str
    seller_id: str
    condition: str = ""
    embedding: list[float] | None = field(default=None, repr=False)

    @property
    def is_eligible(self) -> bool:
        return self.status == ACTIVE_STATUS and self.stock > 0

    def to_dict(self) -> dict[str, Any]:
        """Public product fields, without the embedding."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "status": self.status,
            "category": self.category,
            "condition": self.condition,
            "seller_id": self.seller_id,
        }


class CatalogFilterLike(Protocol):
    """Structural view of the eligibility filter passed to repositories."""

    @property
    def categories(self) -> tuple[str, ...] | None: ...

    def matches(self, product: ProductRecord) -> bool: ...


class CatalogRepository(Protocol):
    """Read operations the search engines need from the catalog.

    Implementations raise ``RepositoryError`` for read failures and
    ``IndexUnavailableError`` from ``vector_search`` when the similarity
    index cannot serve the request.
    """

    def find_eligible(
        self,
        filter: CatalogFilterLike,
        *,
        with_embeddings: bool = False,
    ) -> list[ProductRecord]:
        """Return eligible products; with_embeddings keeps only embedded ones."""

    def get_products(self, ids: list[str]) -> dict[str, ProductRecord]:
        """Fetch products by id."""

    def keyword_search(
        self,
        *,
        phrase: str,
        tokens: list[str],
        filter: CatalogFilterLike,
        limit: int,
    ) -> list[ProductRecord]:
        """Case-insensitive containment search over product text fields."""

    def vector_search(
        self,
        vector: list[float],
        filter: CatalogFilterLike,
        candidate_cap: int,
        result_cap: int,
    ) -> list[tuple[str, float]]:
        """Approximate nearest neighbours ranked by similarity, descending."""

    def vector_index_available(self) -> bool:
        """Return True when vector_search is provisioned."""


class CatalogWriter(Protocol):
    """Write operations used by the offline embedding backfill."""

    def list_missing_embeddings(self) -> list[ProductRecord]:
        """Products with no stored embedding, regardless of eligibility."""

    def get_products(self, ids: list[str]) -> dict[str, ProductRecord]:
        """Fetch products by id, whatever their status or stock."""

    def store_embeddings(self, embeddings: list[tuple[str, list[float]]]) -> int:
        """Bulk-store (product_id, embedding) pairs. Return count written."""
