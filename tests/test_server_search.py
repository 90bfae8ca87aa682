"""Tests for the /api/search REST endpoints."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from catalog_search.config import SearchSettings
from catalog_search.errors import GenerationError, RepositoryError
import catalog_search.server as server_module
from catalog_search.server import app, build_services, get_services

from .conftest import FakeCatalog, FakeEmbeddingSource, make_product


def _catalog(**kwargs) -> FakeCatalog:
    return FakeCatalog(
        [
            make_product("guide", "Advanced Study Guide", category="Study Guides"),
            make_product("bio", "Biology Textbook", category="Textbooks"),
        ],
        **kwargs,
    )


@pytest.fixture()
def client_for():
    def _make(catalog: FakeCatalog, source: FakeEmbeddingSource | None = None) -> TestClient:
        services = build_services(
            catalog,
            source or FakeEmbeddingSource(),
            SearchSettings(embedding_timeout=None),
        )
        app.dependency_overrides[get_services] = lambda: services
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def test_hybrid_endpoint_returns_matches_and_suggestions(client_for) -> None:
    client = client_for(_catalog(vector_results=[("bio", 0.7)]))

    response = client.get("/api/search/hybrid", params={"q": "study guides"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [p["name"] for p in data["exactMatches"]] == ["Advanced Study Guide"]
    assert [p["name"] for p in data["suggestions"]] == ["Biology Textbook"]
    assert data["suggestions"][0]["score"] == pytest.approx(0.49)
    assert data["count"] == 1
    assert data["suggestionsCount"] == 1
    assert data["timing"].endswith("ms")
    assert data["degraded"] is False


def test_hybrid_endpoint_passes_parameters(client_for) -> None:
    catalog = _catalog(vector_results=[("bio", 0.7)])
    client = client_for(catalog)

    response = client.get(
        "/api/search/hybrid",
        params={"q": "study guides", "limit": 4, "minSimilarity": 0.75, "category": "Books"},
    )

    assert response.status_code == 200
    assert response.json()["suggestions"] == []
    assert catalog.vector_calls[0]["candidate_cap"] == 12
    assert catalog.vector_calls[0]["result_cap"] == 4


def test_hybrid_endpoint_degrades_when_embeddings_fail(client_for) -> None:
    client = client_for(
        _catalog(vector_results=[("bio", 0.7)]),
        FakeEmbeddingSource(error=GenerationError("quota")),
    )

    response = client.get("/api/search/hybrid", params={"q": "study guides"})

    assert response.status_code == 200
    data = response.json()
    assert data["degraded"] is True
    assert data["suggestions"] == []


@pytest.mark.parametrize("path", ["/api/search/hybrid", "/api/search/semantic"])
def test_missing_query_is_rejected(client_for, path: str) -> None:
    client = client_for(_catalog())

    response = client.get(path)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "query parameter q is required"}


def test_invalid_limit_is_rejected(client_for) -> None:
    client = client_for(_catalog())

    response = client.get("/api/search/hybrid", params={"q": "pens", "limit": "many"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_semantic_endpoint_returns_relevance_scores(client_for) -> None:
    client = client_for(_catalog(vector_results=[("bio", 0.81), ("guide", 0.6)]))

    response = client.get("/api/search/semantic", params={"q": "biology"})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert data["data"][0]["id"] == "bio"
    assert data["data"][0]["relevanceScore"] == pytest.approx(0.81)


def test_semantic_endpoint_hides_generation_error_detail(client_for) -> None:
    client = client_for(_catalog(), FakeEmbeddingSource(error=GenerationError("secret key invalid")))

    response = client.get("/api/search/semantic", params={"q": "biology"})

    assert response.status_code == 503
    assert response.json() == {"success": False, "message": "embedding service unavailable"}


def test_repository_error_is_internal(client_for) -> None:
    client = client_for(
        _catalog(index_available=False, scan_error=RepositoryError("connection refused"))
    )

    response = client.get("/api/search/hybrid", params={"q": "biology"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "internal server error"}


def test_health_reports_cache_and_index(client_for) -> None:
    client = client_for(_catalog(index_available=False))
    client.get("/api/search/hybrid", params={"q": "biology"})

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"success": True, "cache_size": 1, "vector_index": False}


def test_concurrent_first_requests_build_services_once(monkeypatch) -> None:
    built: list[str] = []

    class _SlowProvider(FakeEmbeddingSource):
        dim = 3

        def __init__(self) -> None:
            super().__init__()
            built.append("provider")
            time.sleep(0.05)

    class _Catalog(FakeCatalog):
        def __init__(self, db_path: str, *, dim: int) -> None:
            super().__init__([make_product("pen", "Gel Pen")])
            built.append("catalog")

        def enable_vector_index(self) -> bool:
            return False

    monkeypatch.setattr(server_module, "_services", None)
    monkeypatch.setattr(server_module, "EmbeddingProvider", _SlowProvider)
    monkeypatch.setattr(server_module, "DuckDBCatalog", _Catalog)
    monkeypatch.setattr(server_module, "resolve_db_path", lambda: "unused.duckdb")

    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(lambda _: get_services(), range(4)))

    try:
        assert built == ["provider", "catalog"]
        assert all(services is results[0] for services in results)
    finally:
        results[0].cache.stop_sweeper()
