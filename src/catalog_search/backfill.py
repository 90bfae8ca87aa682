"""
Offline embedding backfill for catalog products.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .embeddings import DOCUMENT_TASK
from .errors import GenerationError
from .storage import CatalogWriter, ProductRecord

logger = logging.getLogger(__name__)

_DEFAULT_BATCH_SIZE = 10
_DEFAULT_PAUSE = 1.0


class DocumentEmbeddingSource(Protocol):
    def generate(self, text: str, *, task_type: str = ...) -> list[float]: ...

    def generate_batch(self, texts: list[str], *, task_type: str = ...) -> list[list[float]]: ...


def product_embedding_text(product: ProductRecord) -> str:
    """Text embedded for a product: name, description, category, condition."""
    parts = [product.name, product.description, product.category, product.condition]
    return " ".join(part.strip() for part in parts if part and part.strip())


@dataclass
class BackfillResult:
    """Summary output for a backfill run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


class EmbeddingBackfill:
    """Compute and store product embeddings: missing ones, or refreshed by id."""

    def __init__(
        self,
        catalog: CatalogWriter,
        embedding_provider: DocumentEmbeddingSource,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.catalog = catalog
        self.embedding_provider = embedding_provider
        self._sleep = sleep

    def run(
        self,
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        pause: float = _DEFAULT_PAUSE,
    ) -> BackfillResult:
        products = self.catalog.list_missing_embeddings()
        result = BackfillResult(total=len(products))
        logger.info("updating embeddings for %d products", len(products))
        self._embed_all(products, result, batch_size=batch_size, pause=pause)
        logger.info(
            "embedding backfill finished: %d succeeded, %d failed",
            result.success,
            result.failed,
        )
        return result

    def refresh(
        self,
        product_ids: list[str],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        pause: float = _DEFAULT_PAUSE,
    ) -> BackfillResult:
        """Re-embed the given products, replacing any stored vector."""
        ids = list(dict.fromkeys(product_ids))
        found = self.catalog.get_products(ids)
        result = BackfillResult(total=len(ids))
        for product_id in ids:
            if product_id not in found:
                result.failed += 1
                result.errors.append({"product_id": product_id, "error": "product not found"})
                logger.warning("cannot refresh embedding, product %s not found", product_id)

        self._embed_all(
            [found[product_id] for product_id in ids if product_id in found],
            result,
            batch_size=batch_size,
            pause=pause,
        )
        logger.info(
            "embedding refresh finished: %d succeeded, %d failed",
            result.success,
            result.failed,
        )
        return result

    def _embed_all(
        self,
        products: list[ProductRecord],
        result: BackfillResult,
        *,
        batch_size: int,
        pause: float,
    ) -> None:
        step = max(batch_size, 1)
        for start in range(0, len(products), step):
            batch = products[start : start + step]
            pairs = self._embed_batch(batch, result)
            if pairs:
                result.success += self.catalog.store_embeddings(pairs)
            if start + step < len(products) and pause > 0:
                self._sleep(pause)

    def _embed_batch(
        self, batch: list[ProductRecord], result: BackfillResult
    ) -> list[tuple[str, list[float]]]:
        texts = [product_embedding_text(product) for product in batch]
        try:
            vectors = self.embedding_provider.generate_batch(texts)
            return [(product.id, vector) for product, vector in zip(batch, vectors)]
        except GenerationError as exc:
            logger.warning("batch embedding failed, retrying per product: %s", exc)

        pairs: list[tuple[str, list[float]]] = []
        for product, text in zip(batch, texts):
            try:
                pairs.append(
                    (product.id, self.embedding_provider.generate(text, task_type=DOCUMENT_TASK))
                )
            except GenerationError as exc:
                result.failed += 1
                result.errors.append({"product_id": product.id, "error": str(exc)})
                logger.warning("embedding failed for product %s: %s", product.id, exc)
        return pairs
