"""
Embedding provider for vector-based product search.

Wraps the Google GenAI embedding API for batch and single-text embedding
with configurable model, dimensions, batch size and request timeout.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from google.genai import Client as GenAIClient
from google.genai.types import HttpOptions

from .errors import GenerationError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50
_DEFAULT_TIMEOUT = 30.0

DOCUMENT_TASK = "RETRIEVAL_DOCUMENT"
QUERY_TASK = "RETRIEVAL_QUERY"


class EmbeddingProvider:
    """Generate fixed-dimension text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("CATALOG_SEARCH_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("CATALOG_SEARCH_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("CATALOG_SEARCH_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )
        self.timeout = timeout or float(
            os.getenv("CATALOG_SEARCH_EMBEDDING_HTTP_TIMEOUT", str(_DEFAULT_TIMEOUT))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=int(self.timeout * 1000)),
            )

    def generate(self, text: str, *, task_type: str = QUERY_TASK) -> list[float]:
        """Embed a single text, returning a vector of exactly ``dim`` floats."""
        if not isinstance(text, str) or not text.strip():
            raise GenerationError("invalid text for embedding generation")
        return self._embed([text.strip()], task_type=task_type)[0]

    def generate_batch(
        self,
        texts: list[str],
        *,
        task_type: str = DOCUMENT_TASK,
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        if not texts:
            raise GenerationError("invalid texts for batch embedding generation")
        cleaned: list[str] = []
        for text in texts:
            if not isinstance(text, str) or not text.strip():
                raise GenerationError("invalid text for embedding generation")
            cleaned.append(text.strip())

        all_embeddings: list[list[float]] = []
        for start in range(0, len(cleaned), self.batch_size):
            batch = cleaned[start : start + self.batch_size]
            all_embeddings.extend(self._embed(batch, task_type=task_type))
        return all_embeddings

    def _embed(self, contents: list[str], *, task_type: str) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=contents,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            logger.warning(
                "embedding request failed (model=%s, texts=%d): %s",
                self.model,
                len(contents),
                exc,
            )
            raise GenerationError(f"embedding generation failed: {exc}") from exc

        embeddings = list(result.embeddings or [])
        if len(embeddings) != len(contents):
            raise GenerationError(
                f"expected {len(contents)} embeddings, received {len(embeddings)}"
            )
        return [self._fit_dimension(list(emb.values or [])) for emb in embeddings]

    def _fit_dimension(self, values: list[float]) -> list[float]:
        if len(values) < self.dim:
            raise GenerationError(
                f"embedding has {len(values)} dimensions, expected {self.dim}"
            )
        # Longer vectors keep their leading components.
        return [float(v) for v in values[: self.dim]]
