"""Concrete adapter for PostgreSQL with the pgvector extension.

pgvector consumes the predicate dialect: canonical filters are translated to
a SQL predicate and embedded as the `WHERE` clause.

Table layout::

    id       TEXT PRIMARY KEY
    vector   vector(dim)
    payload  JSONB            -- payload keys without a declared column
    <col>    <type>           -- one per entry in `payload_columns`

Only declared payload columns (and `id`) can appear in structured or simple
filters; predicate strings are passed through as written.

psycopg2 is blocking, so every statement runs in a worker thread and the
connection is used by one statement at a time.
"""

import asyncio
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extras import Json, RealDictCursor, execute_values

from vectorbridge.abc import VectorStoreAdapter
from vectorbridge.constants import FilterDialect, VectorMetric
from vectorbridge.exceptions import (
    ConnectionError,
    InvalidConfigError,
    InvalidFieldError,
    SearchError,
)
from vectorbridge.filters import coerce_filter
from vectorbridge.schema import (
    FilterCondition,
    ScoredPoint,
    ScrollPage,
    ScrollRequest,
    SearchRequest,
    SimpleFilter,
    StructuredFilter,
    VectorPoint,
)
from vectorbridge.settings import settings as api_settings
from vectorbridge.types import CanonicalFilterInput, Payload

__all__ = ("PgVectorAdapter",)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

COLUMN_TYPES = {
    "TEXT",
    "INTEGER",
    "BIGINT",
    "REAL",
    "DOUBLE PRECISION",
    "NUMERIC",
    "BOOLEAN",
    "TIMESTAMPTZ",
}

# Distance operator per metric; smaller is closer for all three
_DISTANCE_OPS = {
    VectorMetric.COSINE: "<=>",
    VectorMetric.DOT_PRODUCT: "<#>",
    VectorMetric.EUCLIDEAN: "<->",
}

RESERVED_COLUMNS = {"id", "vector", "payload", "distance"}


def _vector_literal(vector: Sequence[float]) -> str:
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def _id_text(value: Any) -> Any:
    return None if value is None else str(value)


def _parse_vector(raw: Any) -> List[float]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [float(v) for v in json.loads(raw)]
    return [float(v) for v in raw]


class PgVectorAdapter(VectorStoreAdapter):
    """Vector store adapter for PostgreSQL with pgvector.

    Attributes:
        collection_name: Table name
        dim: Dimension of stored vectors
        payload_columns: Declared filterable payload keys and their SQL types
    """

    filter_dialect = FilterDialect.PREDICATE

    def __init__(
        self,
        collection_name: Optional[str] = None,
        dim: Optional[int] = None,
        metric: Optional[str] = None,
        payload_columns: Optional[Dict[str, str]] = None,
        connection: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(collection_name=collection_name, dim=dim, metric=metric, **kwargs)
        if not _IDENTIFIER.match(self.collection_name):
            raise InvalidConfigError(
                "Invalid table name", config_key="VECTOR_COLLECTION_NAME", value=self.collection_name
            )
        self.payload_columns = self._validate_columns(payload_columns or {})
        self._client = connection
        self._lock = asyncio.Lock()
        self._initialized = False

    @staticmethod
    def _validate_columns(columns: Dict[str, str]) -> Dict[str, str]:
        validated: Dict[str, str] = {}
        for name, sql_type in columns.items():
            normalized = " ".join(sql_type.upper().split())
            if not _IDENTIFIER.match(name) or name.lower() in RESERVED_COLUMNS:
                raise InvalidConfigError("Invalid payload column name", field=name)
            if normalized not in COLUMN_TYPES:
                raise InvalidConfigError(
                    "Unsupported payload column type", field=name, value=sql_type, supported=sorted(COLUMN_TYPES)
                )
            validated[name] = normalized
        return validated

    @property
    def client(self) -> Any:
        """Lazily open and return the psycopg2 connection.

        Raises:
            ConnectionError: PostgreSQL could not be reached
        """
        if self._client is None:
            try:
                self._client = psycopg2.connect(
                    dbname=api_settings.PGVECTOR_DBNAME,
                    user=api_settings.PGVECTOR_USER,
                    password=api_settings.PGVECTOR_PASSWORD,
                    host=api_settings.PGVECTOR_HOST,
                    port=api_settings.PGVECTOR_PORT,
                )
            except psycopg2.OperationalError as e:
                raise ConnectionError(
                    "PostgreSQL connection failed",
                    adapter="PGVector",
                    database=api_settings.PGVECTOR_DBNAME,
                    host=api_settings.PGVECTOR_HOST,
                    port=api_settings.PGVECTOR_PORT,
                    original_error=str(e),
                ) from e
            self.logger.message("PostgreSQL connection established (db=%s).", api_settings.PGVECTOR_DBNAME)
        return self._client

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def _run(self, statements: List[Tuple[str, Any]], fetch: bool = False) -> List[Dict[str, Any]]:
        """Execute statements in one transaction; return rows of the last one when `fetch`."""
        conn = self.client
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                for sql, params in statements:
                    cur.execute(sql, params)
                rows = cur.fetchall() if fetch else []
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        return rows

    def _run_values(self, sql: str, rows: List[Tuple[Any, ...]], template: str) -> None:
        conn = self.client
        try:
            with conn.cursor() as cur:
                execute_values(cur, sql, rows, template=template)
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise

    async def _execute(self, operation: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        async with self._lock:
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except psycopg2.Error as e:
                error_cls = SearchError if operation == "search" else ConnectionError
                raise error_cls(
                    "PostgreSQL statement failed",
                    adapter="PGVector",
                    operation=operation,
                    collection_name=self.collection_name,
                    original_error=str(e),
                ) from e

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def _filter_keys(self, filter_input: CanonicalFilterInput) -> List[str]:
        value = coerce_filter(filter_input)
        if isinstance(value, StructuredFilter):
            return [c.key for c in value.must + value.should + value.must_not]
        if isinstance(value, SimpleFilter):
            return [key for key, _ in value.items()]
        return []

    def _check_filter_keys(self, filter_input: CanonicalFilterInput, operation: str) -> None:
        allowed = set(self.payload_columns) | {"id"}
        for key in self._filter_keys(filter_input):
            if key not in allowed:
                raise InvalidFieldError(
                    "Filter key is not a declared payload column",
                    field=key,
                    operation=operation,
                    adapter="PGVector",
                    declared=sorted(self.payload_columns),
                )

    def _id_condition(self, condition: FilterCondition) -> FilterCondition:
        update: Dict[str, Any] = {}
        if condition.has_id:
            update["has_id"] = [str(v) for v in condition.has_id]
        if condition.key == "id" and condition.match is not None:
            match = condition.match
            match_update: Dict[str, Any] = {}
            if match.has_value:
                match_update["value"] = _id_text(match.value)
            if match.any is not None:
                match_update["any"] = [_id_text(v) for v in match.any]
            if match.except_ is not None:
                match_update["except_"] = [_id_text(v) for v in match.except_]
            if match_update:
                update["match"] = match.model_copy(update=match_update)
        return condition.model_copy(update=update) if update else condition

    def _prepare_filter(self, filter_input: CanonicalFilterInput, operation: str) -> CanonicalFilterInput:
        """Check filter keys and write id values as text, matching the `id TEXT` column.

        Predicate strings are returned as written.
        """
        self._check_filter_keys(filter_input, operation)
        value = coerce_filter(filter_input)
        if isinstance(value, StructuredFilter):
            return StructuredFilter(
                must=[self._id_condition(c) for c in value.must],
                should=[self._id_condition(c) for c in value.should],
                must_not=[self._id_condition(c) for c in value.must_not],
            )
        if isinstance(value, SimpleFilter) and "id" in value.root:
            ids = value.root["id"]
            root = dict(value.root)
            root["id"] = [_id_text(v) for v in ids] if isinstance(ids, list) else _id_text(ids)
            return SimpleFilter(root)
        return value

    def _where(self, predicate: str, extra: Optional[str] = None) -> str:
        """Build a WHERE clause. `%` is doubled, so the statement must be run with a params tuple."""
        clauses = []
        if predicate:
            clauses.append("(" + predicate.replace("%", "%%") + ")")
        if extra:
            clauses.append(extra)
        return (" WHERE " + " AND ".join(clauses)) if clauses else ""

    def _split_payload(self, payload: Payload) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        columns = {k: v for k, v in payload.items() if k in self.payload_columns}
        rest = {k: v for k, v in payload.items() if k not in self.payload_columns}
        return columns, rest

    def _row_payload(self, row: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(row.get("payload") or {})
        for name in self.payload_columns:
            if row.get(name) is not None:
                payload[name] = row[name]
        return payload

    # ------------------------------------------------------------------
    # Collection Management
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the extension, the table and any missing payload columns."""
        if self._initialized:
            return
        table = self.collection_name
        statements: List[Tuple[str, Any]] = [
            ("CREATE EXTENSION IF NOT EXISTS vector", None),
            (
                f"CREATE TABLE IF NOT EXISTS {table} ("
                f"id TEXT PRIMARY KEY, vector vector({self.dim}), payload JSONB NOT NULL DEFAULT '{{}}'::jsonb)",
                None,
            ),
        ]
        for name, sql_type in self.payload_columns.items():
            statements.append((f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {sql_type}", None))
        await self._execute("initialize", self._run, statements)
        self._initialized = True
        self.logger.message(
            "PGVector initialized: table='%s', dimension=%s, metric=%s, columns=%s",
            table,
            self.dim,
            self.metric,
            sorted(self.payload_columns),
        )

    async def is_collection_empty(self) -> bool:
        rows = await self._execute(
            "is_collection_empty",
            self._run,
            [("SELECT to_regclass(%s) IS NOT NULL AS present", (self.collection_name,))],
            fetch=True,
        )
        if not rows or not rows[0]["present"]:
            return True
        rows = await self._execute(
            "is_collection_empty",
            self._run,
            [(f"SELECT EXISTS (SELECT 1 FROM {self.collection_name}) AS present", None)],
            fetch=True,
        )
        return not rows[0]["present"]

    # ------------------------------------------------------------------
    # Write Operations
    # ------------------------------------------------------------------

    async def batch_save_data(self, points: List[VectorPoint]) -> None:
        if not points:
            return
        column_names = list(self.payload_columns)
        rows = []
        for point in points:
            self.validate_vector(point.vector, "batch_save_data")
            columns, rest = self._split_payload(point.payload)
            rows.append(
                (str(point.id), _vector_literal(point.vector), Json(rest), *[columns.get(c) for c in column_names])
            )

        names = ", ".join(["id", "vector", "payload", *column_names])
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in ["vector", "payload", *column_names])
        template = "(" + ", ".join(["%s", "%s::vector", "%s::jsonb"] + ["%s"] * len(column_names)) + ")"
        sql = f"INSERT INTO {self.collection_name} ({names}) VALUES %s ON CONFLICT (id) DO UPDATE SET {updates}"
        await self._execute("batch_save_data", self._run_values, sql, rows, template)
        self.logger.message("Upserted %d points into '%s'.", len(rows), self.collection_name)

    async def batch_delete(self, filter: CanonicalFilterInput) -> None:
        filter = self._prepare_filter(filter, "batch_delete")
        predicate = self.compile_guarded_filter(filter, "batch_delete")
        sql = f"DELETE FROM {self.collection_name}{self._where(predicate)}"
        await self._execute("batch_delete", self._run, [(sql, ())])
        self.logger.message("Deleted points from '%s' where %s", self.collection_name, predicate)

    async def update_payload(self, filter: CanonicalFilterInput, payload: Payload) -> None:
        filter = self._prepare_filter(filter, "update_payload")
        predicate = self.compile_guarded_filter(filter, "update_payload")
        columns, rest = self._split_payload(payload)

        assignments = [f"{name} = %s" for name in columns]
        params: List[Any] = list(columns.values())
        if rest:
            assignments.append("payload = payload || %s::jsonb")
            params.append(Json(rest))
        if not assignments:
            return
        sql = f"UPDATE {self.collection_name} SET {', '.join(assignments)}{self._where(predicate)}"
        await self._execute("update_payload", self._run, [(sql, tuple(params))])
        self.logger.message("Updated payload keys %s in '%s'.", sorted(payload), self.collection_name)

    # ------------------------------------------------------------------
    # Read Operations
    # ------------------------------------------------------------------

    def _select_fields(self, with_vector: bool = False) -> List[str]:
        fields = ["id", "payload", *self.payload_columns]
        if with_vector:
            fields.append("vector::text AS vector")
        return fields

    def _score(self, distance: float) -> float:
        if self.metric == VectorMetric.COSINE:
            return 1.0 - distance
        if self.metric == VectorMetric.DOT_PRODUCT:
            # <#> returns the negative inner product
            return -distance
        return distance

    def _passes_threshold(self, score: float, threshold: Optional[float]) -> bool:
        if threshold is None:
            return True
        if self.metric == VectorMetric.EUCLIDEAN:
            return score <= threshold
        return score >= threshold

    async def search(self, request: SearchRequest, filter: CanonicalFilterInput = None) -> List[ScoredPoint]:
        """Similarity search ordered by pgvector distance.

        Raises:
            SearchError: request carries no vector, or the statement failed
        """
        if request.vector is None:
            raise SearchError("Vector is required for similarity search", adapter="PGVector", query=request.query)
        self.validate_vector(request.vector, "search")
        filter = self._prepare_filter(filter, "search")
        predicate = self.compile_filter(filter)

        op = _DISTANCE_OPS[self.metric]
        fields = self._select_fields() + [f"vector {op} %s::vector AS distance"]
        sql = (
            f"SELECT {', '.join(fields)} FROM {self.collection_name}{self._where(predicate)} "
            "ORDER BY distance ASC LIMIT %s"
        )
        rows = await self._execute(
            "search", self._run, [(sql, (_vector_literal(request.vector), request.limit))], fetch=True
        )

        results = []
        for row in rows:
            score = self._score(float(row["distance"]))
            if self._passes_threshold(score, request.score_threshold):
                results.append(ScoredPoint(id=row["id"], score=score, payload=self._row_payload(row)))
        self.logger.message("Search returned %d results.", len(results))
        return results

    async def scroll(self, request: ScrollRequest, filter: CanonicalFilterInput = None) -> ScrollPage:
        """Keyset pagination on `id`; `next_offset` is the first id of the next page."""
        filter = self._prepare_filter(filter, "scroll")
        predicate = self.compile_filter(filter)

        params: List[Any] = []
        extra = None
        if request.offset is not None:
            extra = "id >= %s"
            params.append(str(request.offset))
        params.append(request.limit + 1)

        fields = self._select_fields(with_vector=request.with_vector)
        sql = f"SELECT {', '.join(fields)} FROM {self.collection_name}{self._where(predicate, extra)} ORDER BY id LIMIT %s"
        rows = await self._execute("scroll", self._run, [(sql, tuple(params))], fetch=True)

        next_offset = None
        if len(rows) > request.limit:
            next_offset = rows[request.limit]["id"]
            rows = rows[: request.limit]

        points = [
            VectorPoint(
                id=row["id"],
                vector=_parse_vector(row.get("vector")) if request.with_vector else [],
                payload=self._row_payload(row) if request.with_payload else {},
            )
            for row in rows
        ]
        return ScrollPage(points=points, next_offset=next_offset)
