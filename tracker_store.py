from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)

TABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "workstreams": ("id", "name", "color", "sort_order", "created_at"),
    "projects": ("id", "title", "status", "workstream_id", "sort_order", "created_at"),
    "tasks": (
        "id",
        "project_id",
        "title",
        "due_date",
        "assignee",
        "done",
        "sort_order",
        "created_at",
    ),
    "profiles": ("id", "email", "role"),
}

# (column, ascending)
Order = Sequence[Tuple[str, bool]]
DEFAULT_ORDER: Tuple[Tuple[str, bool], ...] = (("sort_order", True), ("created_at", True))

FIXED_WORKSTREAMS = [
    ("兒少組", "#2563eb"),
    ("研發組", "#16a34a"),
    ("數位推廣組", "#7c3aed"),
    ("行政組", "#ea580c"),
]


class UnknownTableError(ValueError):
    pass


@dataclass
class StoreResult:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def check_table(table: str) -> Tuple[str, ...]:
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise UnknownTableError(f"Unknown table: {table}") from None


def check_columns(table: str, columns: Sequence[str]) -> None:
    known = check_table(table)
    for column in columns:
        if column not in known:
            raise UnknownTableError(f"Unknown column {table}.{column}")


def build_select(
    table: str,
    filters: Mapping[str, Any] | None = None,
    order: Order | None = DEFAULT_ORDER,
) -> Tuple[str, List[Any]]:
    filters = filters or {}
    order = order or ()
    check_columns(table, list(filters))
    check_columns(table, [column for column, _ in order])

    query = f"SELECT * FROM {table}"
    params: List[Any] = []
    if filters:
        clauses = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = %s")
                params.append(value)
        query += " WHERE " + " AND ".join(clauses)
    if order:
        query += " ORDER BY " + ", ".join(
            f"{column} {'ASC' if ascending else 'DESC'}" for column, ascending in order
        )
    return query, params


def build_insert(table: str, values: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    if not values:
        raise ValueError("Nothing to insert")
    check_columns(table, list(values))
    columns = ", ".join(values.keys())
    placeholders = ", ".join("%s" for _ in values)
    return f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *", list(values.values())


def build_update(table: str, row_id: str, values: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    if not values:
        raise ValueError("Nothing to update")
    check_columns(table, list(values))
    assignments = ", ".join(f"{key} = %s" for key in values)
    return f"UPDATE {table} SET {assignments} WHERE id = %s", list(values.values()) + [row_id]


def build_delete(table: str, column: str, value: Any) -> Tuple[str, List[Any]]:
    check_columns(table, [column])
    return f"DELETE FROM {table} WHERE {column} = %s", [value]


def to_wire_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def to_wire(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: to_wire_value(value) for key, value in row.items()}


class TableStore:
    """Table-oriented client for the tracker database.

    Every operation returns a StoreResult instead of raising on database
    errors; the failed transaction is rolled back and the message is kept in
    ``StoreResult.error``.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10) -> None:
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: pool.ThreadedConnectionPool | None = None

    def get_pool(self) -> pool.ThreadedConnectionPool:
        if self._pool is None:
            self._pool = pool.ThreadedConnectionPool(
                minconn=self.minconn, maxconn=self.maxconn, dsn=self.dsn
            )
        return self._pool

    @contextmanager
    def connection(self) -> Iterator[Any]:
        db = self.get_pool().getconn()
        try:
            yield db
        finally:
            try:
                db.rollback()
            except psycopg2.Error:
                logger.warning("Rollback failed while returning connection to pool")
            self.get_pool().putconn(db)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

    def _run(self, description: str, statements: Sequence[Tuple[str, List[Any]]], fetch: str = "") -> StoreResult:
        try:
            with self.connection() as db:
                with db.cursor(cursor_factory=RealDictCursor) as cursor:
                    data: Any = None
                    for query, params in statements:
                        cursor.execute(query, params)
                    if fetch == "all":
                        data = [to_wire(row) for row in cursor.fetchall()]
                    elif fetch == "one":
                        row = cursor.fetchone()
                        data = to_wire(row) if row is not None else None
                    elif fetch == "count":
                        data = cursor.rowcount
                db.commit()
                return StoreResult(data=data)
        except psycopg2.Error as exc:
            logger.exception("%s failed", description)
            message = (getattr(exc, "pgerror", None) or str(exc)).strip()
            return StoreResult(error=message or exc.__class__.__name__)

    def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: Order | None = DEFAULT_ORDER,
    ) -> StoreResult:
        if order is DEFAULT_ORDER and "sort_order" not in check_table(table):
            order = None
        return self._run(f"select {table}", [build_select(table, filters, order)], fetch="all")

    def select_one(self, table: str, filters: Mapping[str, Any]) -> StoreResult:
        query, params = build_select(table, filters, order=None)
        return self._run(f"select one {table}", [(query + " LIMIT 1", params)], fetch="one")

    def insert(self, table: str, values: Mapping[str, Any]) -> StoreResult:
        return self._run(f"insert {table}", [build_insert(table, values)], fetch="one")

    def update(self, table: str, row_id: str, values: Mapping[str, Any]) -> StoreResult:
        return self._run(f"update {table} {row_id}", [build_update(table, row_id, values)], fetch="count")

    def update_many(self, table: str, changes: Mapping[str, Mapping[str, Any]]) -> StoreResult:
        """Apply per-row changes in a single transaction."""
        if not changes:
            return StoreResult(data=0)
        statements = [build_update(table, row_id, values) for row_id, values in changes.items()]
        result = self._run(f"batch update {table}", statements)
        if result.ok:
            result.data = len(statements)
        return result

    def delete(self, table: str, row_id: str) -> StoreResult:
        return self._run(f"delete {table} {row_id}", [build_delete(table, "id", row_id)], fetch="count")

    def delete_where(self, table: str, column: str, value: Any) -> StoreResult:
        return self._run(f"delete {table} by {column}", [build_delete(table, column, value)], fetch="count")

    def ping(self) -> bool:
        result = self._run("health check", [("SELECT 1 AS ok", [])], fetch="one")
        return bool(result.ok and result.data and result.data.get("ok") == 1)


SCHEMA_STATEMENTS = [
    "CREATE EXTENSION IF NOT EXISTS pgcrypto",
    """
    CREATE TABLE IF NOT EXISTS workstreams (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        color TEXT,
        sort_order INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        title TEXT NOT NULL,
        status TEXT,
        workstream_id UUID NOT NULL REFERENCES workstreams (id) ON DELETE CASCADE,
        sort_order INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        project_id UUID NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        due_date DATE,
        assignee TEXT,
        done BOOLEAN NOT NULL DEFAULT FALSE,
        sort_order INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id UUID PRIMARY KEY,
        email TEXT,
        role TEXT NOT NULL DEFAULT 'reviewer' CHECK (role IN ('admin', 'reviewer'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS projects_workstream_idx ON projects (workstream_id, sort_order)",
    "CREATE INDEX IF NOT EXISTS tasks_project_idx ON tasks (project_id, sort_order)",
]


def init_db(db) -> None:
    with db.cursor() as cursor:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
        cursor.execute("SELECT COUNT(*) FROM workstreams")
        (existing,) = cursor.fetchone()
        if not existing:
            for position, (name, color) in enumerate(FIXED_WORKSTREAMS):
                cursor.execute(
                    "INSERT INTO workstreams (name, color, sort_order) VALUES (%s, %s, %s)",
                    (name, color, position),
                )
    db.commit()
    logger.info("Schema ready")
