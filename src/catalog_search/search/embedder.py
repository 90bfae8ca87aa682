"""
Query embedding acquisition through the shared cache with a deadline.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Protocol

from ..cache import EmbeddingCache
from ..errors import GenerationError


class QueryEmbeddingSource(Protocol):
    def generate(self, text: str) -> list[float]: ...


class QueryEmbedder:
    """Resolve query vectors via cache then provider, bounded by a timeout."""

    def __init__(
        self,
        provider: QueryEmbeddingSource,
        cache: EmbeddingCache | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.timeout = timeout

    def embed(self, text: str) -> list[float]:
        """Blocking lookup with no deadline."""
        if self.cache is None:
            return self.provider.generate(text)
        return self.cache.get(text, self.provider.generate)

    def submit(self, executor: Executor, text: str) -> Future[list[float]]:
        return executor.submit(self.embed, text)

    def wait(self, future: Future[list[float]]) -> list[float]:
        """Wait for a submitted lookup; the call is abandoned on deadline expiry."""
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise GenerationError(
                f"embedding generation timed out after {self.timeout}s"
            ) from exc

    def embed_with_deadline(self, text: str) -> list[float]:
        if self.timeout is None:
            return self.embed(text)
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            return self.wait(self.submit(executor, text))
        finally:
            # Do not block on an abandoned call.
            executor.shutdown(wait=False)
