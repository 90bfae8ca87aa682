from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InputError


DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_MIN_SIMILARITY = 0.5


class SearchQuery(BaseModel):
    """A free-text catalog query"""

    text: str = Field(description="Query text, trimmed and non-empty")
    category: str | None = Field(
        default=None, description="Optional main category or subcategory scope"
    )
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    min_similarity: float = Field(default=DEFAULT_MIN_SIMILARITY, ge=0.0, le=1.0)

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("query text is required")
        return stripped

    @field_validator("category")
    @classmethod
    def _blank_category(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


def build_query(
    text: str | None,
    *,
    category: str | None = None,
    limit: int | None = None,
    min_similarity: float | None = None,
) -> SearchQuery:
    """Validate raw query parameters, raising InputError on bad input."""
    if text is None or not str(text).strip():
        raise InputError("query parameter q is required")
    payload: dict[str, object] = {"text": text, "category": category}
    if limit is not None:
        payload["limit"] = limit
    if min_similarity is not None:
        payload["min_similarity"] = min_similarity
    try:
        return SearchQuery(**payload)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise InputError(f"invalid query: {details}") from exc
