"""
Configuration helpers for catalog storage and search defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = "~/.catalog_search/catalog.duckdb"
ENV_DB_PATH = "CATALOG_SEARCH_DB_PATH"

_DEFAULT_CACHE_TTL = 3600.0
_DEFAULT_CACHE_MAX_SIZE = 10_000
_DEFAULT_EMBEDDING_TIMEOUT = 10.0
_DEFAULT_LIMIT = 20
_DEFAULT_MIN_SIMILARITY = 0.5


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB catalog path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) CATALOG_SEARCH_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


@dataclass(frozen=True)
class SearchSettings:
    """Tunables shared by the search engines and the cache."""

    cache_ttl: float = _DEFAULT_CACHE_TTL
    cache_max_size: int = _DEFAULT_CACHE_MAX_SIZE
    sweep_interval: float = _DEFAULT_CACHE_TTL
    embedding_timeout: float | None = _DEFAULT_EMBEDDING_TIMEOUT
    default_limit: int = _DEFAULT_LIMIT
    default_min_similarity: float = _DEFAULT_MIN_SIMILARITY

    @classmethod
    def from_env(cls) -> "SearchSettings":
        cache_ttl = float(
            os.getenv("CATALOG_SEARCH_CACHE_TTL", str(_DEFAULT_CACHE_TTL))
        )
        raw_timeout = os.getenv(
            "CATALOG_SEARCH_EMBEDDING_TIMEOUT", str(_DEFAULT_EMBEDDING_TIMEOUT)
        )
        return cls(
            cache_ttl=cache_ttl,
            cache_max_size=int(
                os.getenv("CATALOG_SEARCH_CACHE_MAX_SIZE", str(_DEFAULT_CACHE_MAX_SIZE))
            ),
            sweep_interval=float(
                os.getenv("CATALOG_SEARCH_CACHE_SWEEP_INTERVAL", str(cache_ttl))
            ),
            # "0" disables the deadline
            embedding_timeout=float(raw_timeout) or None,
            default_limit=int(
                os.getenv("CATALOG_SEARCH_DEFAULT_LIMIT", str(_DEFAULT_LIMIT))
            ),
            default_min_similarity=float(
                os.getenv(
                    "CATALOG_SEARCH_MIN_SIMILARITY", str(_DEFAULT_MIN_SIMILARITY)
                )
            ),
        )
