"""
Literal keyword matching over product text fields.
"""

from __future__ import annotations

import logging

from ..errors import RepositoryError
from ..storage.base import CatalogFilterLike, CatalogRepository, ProductRecord

logger = logging.getLogger(__name__)

_MIN_TOKEN_LENGTH = 3


def keyword_terms(text: str) -> tuple[str, list[str]]:
    """Return (phrase, tokens).

    Tokens are only produced for multi-word queries, and only words longer
    than two characters count.
    """
    phrase = text.strip()
    words = [word for word in phrase.split() if len(word) >= _MIN_TOKEN_LENGTH]
    tokens: list[str] = []
    if len(words) > 1:
        for word in words:
            if word.lower() not in tokens:
                tokens.append(word.lower())
    return phrase, tokens


class KeywordMatcher:
    """Case-insensitive containment search; read failures yield no hits."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def find(
        self,
        text: str,
        filter: CatalogFilterLike,
        *,
        limit: int,
    ) -> list[ProductRecord]:
        phrase, tokens = keyword_terms(text)
        if not phrase:
            return []
        try:
            return self.repository.keyword_search(
                phrase=phrase, tokens=tokens, filter=filter, limit=limit
            )
        except RepositoryError as exc:
            logger.warning(
                "keyword search failed for %r (%s): %s",
                phrase.lower(),
                getattr(filter, "categories", None),
                exc,
            )
            return []
