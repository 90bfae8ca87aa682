"""
FastAPI server exposing catalog search.

The application owns one set of search services (catalog, embedding cache,
engines) built on first use from the environment. Tests replace them through
``app.dependency_overrides[get_services]``.
"""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .cache import EmbeddingCache
from .config import SearchSettings, resolve_db_path
from .embeddings import EmbeddingProvider
from .errors import GenerationError, InputError
from .models import build_query
from .search import HybridSearchEngine, QueryEmbedder, SemanticSearchEngine
from .storage import CatalogRepository, DuckDBCatalog

logger = logging.getLogger(__name__)


@dataclass
class SearchServices:
    """Search collaborators shared across requests."""

    repository: CatalogRepository
    cache: EmbeddingCache
    hybrid: HybridSearchEngine
    semantic: SemanticSearchEngine
    settings: SearchSettings


def build_services(
    repository: CatalogRepository,
    embedding_provider: EmbeddingProvider,
    settings: SearchSettings | None = None,
) -> SearchServices:
    """Wire engines around one repository, provider and cache."""
    settings = settings or SearchSettings.from_env()
    cache = EmbeddingCache(
        ttl=settings.cache_ttl,
        max_size=settings.cache_max_size,
        sweep_interval=settings.sweep_interval,
    )
    embedder = QueryEmbedder(
        embedding_provider, cache, timeout=settings.embedding_timeout
    )
    return SearchServices(
        repository=repository,
        cache=cache,
        hybrid=HybridSearchEngine(repository, embedder),
        semantic=SemanticSearchEngine(repository, embedder),
        settings=settings,
    )


_services: SearchServices | None = None
_services_lock = threading.Lock()


def get_services() -> SearchServices:
    """Return the process-wide services, creating them on first use."""
    global _services
    if _services is not None:
        return _services
    with _services_lock:
        if _services is None:
            settings = SearchSettings.from_env()
            provider = EmbeddingProvider()
            catalog = DuckDBCatalog(resolve_db_path(), dim=provider.dim)
            catalog.enable_vector_index()
            services = build_services(catalog, provider, settings)
            services.cache.start_sweeper()
            _services = services
    return _services


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _services is not None:
        _services.cache.stop_sweeper()


app = FastAPI(
    title="Catalog Search",
    description="Hybrid keyword and semantic product search",
    lifespan=lifespan,
)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    return _error("invalid query parameters", 400)


@app.get("/api/search/semantic")
async def semantic_search(
    q: str | None = None,
    limit: int | None = None,
    category: str | None = None,
    min_similarity: float | None = Query(default=None, alias="minSimilarity"),
    services: SearchServices = Depends(get_services),
):
    """Rank products by embedding similarity to the query."""
    try:
        query = build_query(
            q,
            category=category,
            limit=limit if limit is not None else services.settings.default_limit,
            min_similarity=(
                min_similarity
                if min_similarity is not None
                else services.settings.default_min_similarity
            ),
        )
        result = await asyncio.to_thread(services.semantic.search, query)
        return result.to_response()
    except InputError as exc:
        return _error(str(exc), 400)
    except GenerationError:
        logger.exception("semantic search failed for q=%r", q)
        return _error("embedding service unavailable", 503)
    except Exception:
        logger.exception("semantic search error for q=%r", q)
        return _error("internal server error", 500)


@app.get("/api/search/hybrid")
async def hybrid_search(
    q: str | None = None,
    limit: int | None = None,
    category: str | None = None,
    min_similarity: float | None = Query(default=None, alias="minSimilarity"),
    services: SearchServices = Depends(get_services),
):
    """Keyword matches plus semantic suggestions."""
    try:
        query = build_query(
            q,
            category=category,
            limit=limit if limit is not None else services.settings.default_limit,
            min_similarity=(
                min_similarity
                if min_similarity is not None
                else services.settings.default_min_similarity
            ),
        )
        result = await asyncio.to_thread(services.hybrid.search, query)
        return result.to_response()
    except InputError as exc:
        return _error(str(exc), 400)
    except Exception:
        logger.exception("hybrid search error for q=%r", q)
        return _error("internal server error", 500)


@app.get("/api/health")
async def health(services: SearchServices = Depends(get_services)):
    """Report cache size and similarity index availability."""
    return {
        "success": True,
        "cache_size": services.cache.size(),
        "vector_index": services.repository.vector_index_available(),
    }


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
