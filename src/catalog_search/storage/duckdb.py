"""
DuckDB catalog backend.

Products live in a single table with a fixed-size ``FLOAT[D]`` embedding
column. Approximate nearest-neighbour search uses the ``vss`` extension's
HNSW index when it can be loaded; otherwise ``vector_search`` reports the
index as unavailable and callers fall back to an exact scan.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import duckdb

from ..errors import IndexUnavailableError, RepositoryError
from .base import ACTIVE_STATUS, CatalogFilterLike, ProductRecord

logger = logging.getLogger(__name__)

_DEFAULT_DIM = 768
_INDEX_NAME = "products_embedding_hnsw"
_PRODUCT_COLUMNS = (
    "id, name, description, price, stock, status, category, seller_id, condition"
)


def _eligibility_clause(filter: CatalogFilterLike) -> tuple[str, list[Any]]:
    clause = "status = ? AND stock > 0"
    params: list[Any] = [ACTIVE_STATUS]
    if filter.categories is not None:
        placeholders = ", ".join(["?"] * len(filter.categories))
        clause += f" AND category IN ({placeholders})"
        params.extend(filter.categories)
    return clause, params


class DuckDBCatalog:
    """DuckDB-backed product catalog with optional HNSW similarity index."""

    def __init__(
        self,
        db_path: str,
        *,
        dim: int = _DEFAULT_DIM,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = db_path if db_path == ":memory:" else str(
            Path(db_path).expanduser().resolve()
        )
        self.dim = dim
        self.read_only = read_only
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(self.db_path, read_only=read_only)
        self._vector_index_ready = False
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS products (
                id VARCHAR PRIMARY KEY,
                name VARCHAR NOT NULL,
                description VARCHAR NOT NULL DEFAULT '',
                price DOUBLE NOT NULL,
                stock INTEGER NOT NULL DEFAULT 0,
                status VARCHAR NOT NULL DEFAULT 'active',
                category VARCHAR NOT NULL,
                seller_id VARCHAR NOT NULL,
                condition VARCHAR NOT NULL DEFAULT '',
                embedding FLOAT[{self.dim}],
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )

    def enable_vector_index(self) -> bool:
        """Load ``vss`` and build the HNSW index; return whether it is usable."""
        try:
            self._conn.execute("INSTALL vss")
            self._conn.execute("LOAD vss")
            if not self.read_only:
                self._conn.execute("SET hnsw_enable_experimental_persistence = true")
                self._conn.execute(
                    f"""
                    CREATE INDEX IF NOT EXISTS {_INDEX_NAME}
                    ON products USING HNSW (embedding)
                    WITH (metric = 'cosine')
                    """
                )
            row = self._conn.execute(
                "SELECT COUNT(*) FROM duckdb_indexes() WHERE index_name = ?",
                [_INDEX_NAME],
            ).fetchone()
        except duckdb.Error as exc:
            logger.warning("similarity index could not be provisioned: %s", exc)
            self._vector_index_ready = False
            return False
        self._vector_index_ready = bool(row and int(row[0]) > 0)
        return self._vector_index_ready

    def vector_index_available(self) -> bool:
        return self._vector_index_ready

    def upsert_products(self, products: list[ProductRecord]) -> int:
        """Insert or replace catalog rows, embeddings included."""
        if not products:
            return 0
        try:
            self._conn.executemany(
                f"""
                INSERT INTO products (
                    id, name, description, price, stock, status, category,
                    seller_id, condition, embedding
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, CAST(? AS FLOAT[{self.dim}]))
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    price = excluded.price,
                    stock = excluded.stock,
                    status = excluded.status,
                    category = excluded.category,
                    seller_id = excluded.seller_id,
                    condition = excluded.condition,
                    embedding = excluded.embedding
                """,
                [
                    (
                        product.id,
                        product.name,
                        product.description,
                        product.price,
                        product.stock,
                        product.status,
                        product.category,
                        product.seller_id,
                        product.condition,
                        product.embedding,
                    )
                    for product in products
                ],
            )
        except duckdb.Error as exc:
            raise RepositoryError(f"failed to write products: {exc}") from exc
        return len(products)

    def find_eligible(
        self,
        filter: CatalogFilterLike,
        *,
        with_embeddings: bool = False,
    ) -> list[ProductRecord]:
        clause, params = _eligibility_clause(filter)
        if with_embeddings:
            clause += " AND embedding IS NOT NULL"
        sql = f"""
            SELECT {_PRODUCT_COLUMNS}, embedding
            FROM products
            WHERE {clause}
            ORDER BY id
        """
        return [self._row_to_product(row) for row in self._fetch(sql, params)]

    def get_products(self, ids: list[str]) -> dict[str, ProductRecord]:
        if not ids:
            return {}
        placeholders = ", ".join(["?"] * len(ids))
        sql = f"""
            SELECT {_PRODUCT_COLUMNS}, NULL AS embedding
            FROM products
            WHERE id IN ({placeholders})
        """
        products = [self._row_to_product(row) for row in self._fetch(sql, list(ids))]
        return {product.id: product for product in products}

    def keyword_search(
        self,
        *,
        phrase: str,
        tokens: list[str],
        filter: CatalogFilterLike,
        limit: int,
    ) -> list[ProductRecord]:
        needle = phrase.strip().lower()
        if not needle:
            return []

        conditions = [
            "contains(lower(name), ?)",
            "contains(lower(description), ?)",
            "contains(lower(category), ?)",
        ]
        match_params: list[Any] = [needle, needle, needle]
        for token in tokens:
            conditions.append("contains(lower(name), ?)")
            conditions.append("contains(lower(category), ?)")
            match_params.extend([token.lower(), token.lower()])

        clause, params = _eligibility_clause(filter)
        sql = f"""
            SELECT {_PRODUCT_COLUMNS}, NULL AS embedding
            FROM products
            WHERE {clause}
              AND ({" OR ".join(conditions)})
            ORDER BY name ASC, id ASC
            LIMIT ?
        """
        params.extend(match_params)
        params.append(limit)
        return [self._row_to_product(row) for row in self._fetch(sql, params)]

    def vector_search(
        self,
        vector: list[float],
        filter: CatalogFilterLike,
        candidate_cap: int,
        result_cap: int,
    ) -> list[tuple[str, float]]:
        if not self._vector_index_ready:
            raise IndexUnavailableError("similarity index is not provisioned")
        if result_cap > candidate_cap:
            raise ValueError("result_cap must not exceed candidate_cap")

        clause, params = _eligibility_clause(filter)
        array_type = f"FLOAT[{self.dim}]"
        # Zero-norm vectors score 0.0, matching the in-process scan.
        sql = f"""
            SELECT
                id,
                CASE
                    WHEN CAST(? AS BOOLEAN) OR array_inner_product(embedding, embedding) = 0 THEN 0.0
                    ELSE array_cosine_similarity(embedding, CAST(? AS {array_type}))
                END AS similarity
            FROM (
                SELECT id, embedding
                FROM products
                WHERE embedding IS NOT NULL AND {clause}
                ORDER BY array_cosine_distance(embedding, CAST(? AS {array_type}))
                LIMIT ?
            ) candidates
            ORDER BY similarity DESC, id ASC
            LIMIT ?
        """
        zero_query = not any(vector)
        query_params: list[Any] = [
            zero_query,
            vector,
            *params,
            vector,
            candidate_cap,
            result_cap,
        ]
        try:
            with self._conn.cursor() as cursor:
                rows = cursor.execute(sql, query_params).fetchall()
        except duckdb.Error as exc:
            raise IndexUnavailableError(f"similarity index query failed: {exc}") from exc
        return [(str(row[0]), float(row[1])) for row in rows]

    def list_missing_embeddings(self) -> list[ProductRecord]:
        sql = f"""
            SELECT {_PRODUCT_COLUMNS}, NULL AS embedding
            FROM products
            WHERE embedding IS NULL
            ORDER BY id
        """
        return [self._row_to_product(row) for row in self._fetch(sql, [])]

    def store_embeddings(self, embeddings: list[tuple[str, list[float]]]) -> int:
        if not embeddings:
            return 0
        try:
            self._conn.executemany(
                f"UPDATE products SET embedding = CAST(? AS FLOAT[{self.dim}]) WHERE id = ?",
                [(vector, product_id) for product_id, vector in embeddings],
            )
        except duckdb.Error as exc:
            raise RepositoryError(f"failed to store embeddings: {exc}") from exc
        return len(embeddings)

    def count_products(self) -> int:
        row = self._fetch("SELECT COUNT(*) FROM products", [])
        return int(row[0][0]) if row else 0

    def _fetch(self, sql: str, params: list[Any]) -> list[tuple[Any, ...]]:
        # A cursor per read keeps concurrent queries off the shared connection.
        try:
            with self._conn.cursor() as cursor:
                return cursor.execute(sql, params).fetchall()
        except duckdb.Error as exc:
            raise RepositoryError(f"catalog read failed: {exc}") from exc

    @staticmethod
    def _row_to_product(row: tuple[Any, ...]) -> ProductRecord:
        embedding = row[9]
        return ProductRecord(
            id=str(row[0]),
            name=str(row[1]),
            description=str(row[2]),
            price=float(row[3]),
            stock=int(row[4]),
            status=str(row[5]),
            category=str(row[6]),
            seller_id=str(row[7]),
            condition=str(row[8]),
            embedding=[float(v) for v in embedding] if embedding is not None else None,
        )
