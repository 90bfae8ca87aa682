"""Tests for the offline embedding backfill."""

from __future__ import annotations

from pathlib import Path

import pytest

from catalog_search.backfill import EmbeddingBackfill, product_embedding_text
from catalog_search.errors import GenerationError
from catalog_search.search import CatalogFilter
from catalog_search.storage import DuckDBCatalog

from .conftest import make_product


class _RecordingProvider:
    def __init__(self, *, fail_batches: bool = False, bad_text: str | None = None) -> None:
        self.fail_batches = fail_batches
        self.bad_text = bad_text
        self.batch_calls: list[list[str]] = []
        self.single_calls: list[str] = []

    def generate_batch(self, texts: list[str], *, task_type: str = "RETRIEVAL_DOCUMENT"):
        self.batch_calls.append(list(texts))
        if self.fail_batches:
            raise GenerationError("batch rejected")
        return [[float(len(text)), 1.0, 0.0] for text in texts]

    def generate(self, text: str, *, task_type: str = "RETRIEVAL_QUERY"):
        self.single_calls.append(text)
        if text == self.bad_text:
            raise GenerationError("content blocked")
        return [float(len(text)), 1.0, 0.0]


def _seed(tmp_path: Path, count: int) -> DuckDBCatalog:
    catalog = DuckDBCatalog(str(tmp_path / "catalog.duckdb"), dim=3)
    catalog.upsert_products(
        [
            make_product(f"p{i}", f"Product {i}", description=f"Description {i}")
            for i in range(count)
        ]
    )
    return catalog


def test_product_embedding_text_skips_blank_parts() -> None:
    product = make_product("p", "Calculator", description="  ", category="Electronics")

    assert product_embedding_text(product) == "Calculator Electronics Good"


def test_backfill_embeds_in_batches_and_pauses_between(tmp_path: Path) -> None:
    catalog = _seed(tmp_path, 5)
    provider = _RecordingProvider()
    pauses: list[float] = []

    result = EmbeddingBackfill(catalog, provider, sleep=pauses.append).run(
        batch_size=2, pause=0.5
    )

    assert result.total == 5
    assert result.success == 5
    assert result.failed == 0
    assert [len(batch) for batch in provider.batch_calls] == [2, 2, 1]
    assert pauses == [0.5, 0.5]
    assert catalog.list_missing_embeddings() == []
    catalog.close()


def test_backfill_retries_failed_batch_per_product(tmp_path: Path) -> None:
    catalog = _seed(tmp_path, 3)
    provider = _RecordingProvider(
        fail_batches=True, bad_text="Product 1 Description 1 Others Good"
    )

    result = EmbeddingBackfill(catalog, provider, sleep=lambda _: None).run(batch_size=10)

    assert result.success == 2
    assert result.failed == 1
    assert result.errors == [{"product_id": "p1", "error": "content blocked"}]
    assert [p.id for p in catalog.list_missing_embeddings()] == ["p1"]
    catalog.close()


def test_backfill_with_nothing_to_do(tmp_path: Path) -> None:
    catalog = _seed(tmp_path, 0)
    provider = _RecordingProvider()

    result = EmbeddingBackfill(catalog, provider).run()

    assert result.total == 0
    assert provider.batch_calls == []
    catalog.close()


def test_refresh_replaces_stale_embeddings_by_id(tmp_path: Path) -> None:
    catalog = _seed(tmp_path, 3)
    catalog.store_embeddings([(f"p{i}", [0.0, 0.0, 1.0]) for i in range(3)])
    provider = _RecordingProvider()

    result = EmbeddingBackfill(catalog, provider, sleep=lambda _: None).refresh(
        ["p1", "ghost", "p1"]
    )

    assert result.total == 2
    assert result.success == 1
    assert result.errors == [{"product_id": "ghost", "error": "product not found"}]
    assert provider.batch_calls == [["Product 1 Description 1 Others Good"]]
    stored = {
        p.id: p.embedding
        for p in catalog.find_eligible(CatalogFilter(), with_embeddings=True)
    }
    assert stored["p1"] == pytest.approx([35.0, 1.0, 0.0])
    assert stored["p0"] == pytest.approx([0.0, 0.0, 1.0])
    catalog.close()
