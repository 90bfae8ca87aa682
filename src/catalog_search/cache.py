"""
In-process cache for query embeddings.

Entries live in a ``cachetools.TTLCache`` and expire after a fixed TTL.
Concurrent misses on the same key are coalesced so the generator runs once
and every waiter shares its outcome.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable

from cachetools import TTLCache

logger = logging.getLogger(__name__)

_DEFAULT_TTL = 3600.0
_DEFAULT_MAX_SIZE = 10_000

Generator = Callable[[str], list[float]]


def normalize_query_text(text: str) -> str:
    """Trim, lower-case and collapse internal whitespace."""
    return " ".join(text.split()).lower()


@dataclass(frozen=True)
class CacheEntry:
    """A cached query embedding."""

    key: str
    vector: list[float]
    created_at: float


class EmbeddingCache:
    """TTL cache with per-key single-flight generation."""

    def __init__(
        self,
        *,
        ttl: float = _DEFAULT_TTL,
        max_size: int = _DEFAULT_MAX_SIZE,
        sweep_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.ttl = ttl
        self.max_size = max_size
        self.sweep_interval = sweep_interval or ttl
        self._clock = clock
        self._entries: TTLCache[str, CacheEntry] = TTLCache(
            maxsize=max_size, ttl=ttl, timer=clock
        )
        self._inflight: dict[str, Future[list[float]]] = {}
        # TTLCache is not thread-safe; generation itself runs unlocked.
        self._lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()

    @staticmethod
    def make_key(text: str) -> str:
        normalized = normalize_query_text(text)
        return "emb_" + hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    def get(self, text: str, generate: Generator) -> list[float]:
        """Return the embedding for *text*, generating it on a miss."""
        key = self.make_key(text)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry.vector
            future = self._inflight.get(key)
            owner = future is None
            if future is None:
                future = Future()
                self._inflight[key] = future

        if not owner:
            return future.result()

        try:
            vector = generate(text)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._entries[key] = CacheEntry(
                key=key, vector=vector, created_at=self._clock()
            )
            self._inflight.pop(key, None)
        future.set_result(vector)
        return vector

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove expired entries and return how many were dropped."""
        with self._lock:
            removed = len(self._entries.expire())
        if removed:
            logger.debug("embedding cache sweep removed %d entries", removed)
        return removed

    def start_sweeper(self) -> None:
        """Run sweep() every sweep_interval seconds on a daemon thread."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="embedding-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            self.sweep()
