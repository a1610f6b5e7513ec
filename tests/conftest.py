from __future__ import annotations

import itertools
from typing import Any, Dict, List, Mapping

import pytest

from ordering import sort_siblings
from tracker_store import StoreResult, check_columns, check_table

# --- A tiny in-memory stand-in for TableStore --------------------------------


class MemoryStore:
    def __init__(self, **tables: List[Dict[str, Any]]) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [] for name in ("workstreams", "projects", "tasks", "profiles")
        }
        for name, rows in tables.items():
            self.tables[name] = [dict(row) for row in rows]
        self.failures: Dict[tuple, str] = {}
        self.calls: List[tuple] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def fail_on(self, op: str, table: str, message: str = "boom") -> None:
        self.failures[(op, table)] = message

    def _failure(self, op: str, table: str) -> StoreResult | None:
        message = self.failures.get((op, table))
        return StoreResult(error=message) if message else None

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table]

    def get(self, table: str, row_id: str) -> Dict[str, Any]:
        return next(row for row in self.tables[table] if row["id"] == row_id)

    def select(self, table, filters=None, order=None) -> StoreResult:
        check_table(table)
        self.calls.append(("select", table))
        failure = self._failure("select", table)
        if failure:
            return failure
        rows = [
            dict(row)
            for row in self.tables[table]
            if all(row.get(k) == v for k, v in (filters or {}).items())
        ]
        if "sort_order" in check_table(table):
            rows = sort_siblings(rows)
        return StoreResult(data=rows)

    def select_one(self, table, filters) -> StoreResult:
        result = self.select(table, filters)
        if not result.ok:
            return result
        return StoreResult(data=result.data[0] if result.data else None)

    def insert(self, table, values) -> StoreResult:
        check_columns(table, list(values))
        self.calls.append(("insert", table, dict(values)))
        failure = self._failure("insert", table)
        if failure:
            return failure
        row = {
            "id": f"{table}-{next(self._ids)}",
            "created_at": f"2026-01-01T00:00:{next(self._clock):02d}",
            **values,
        }
        self.tables[table].append(row)
        return StoreResult(data=dict(row))

    def update(self, table, row_id, values) -> StoreResult:
        check_columns(table, list(values))
        self.calls.append(("update", table, row_id, dict(values)))
        failure = self._failure("update", table)
        if failure:
            return failure
        count = 0
        for row in self.tables[table]:
            if row["id"] == row_id:
                row.update(values)
                count += 1
        return StoreResult(data=count)

    def update_many(self, table, changes: Mapping[str, Mapping[str, Any]]) -> StoreResult:
        self.calls.append(("update_many", table, {k: dict(v) for k, v in changes.items()}))
        failure = self._failure("update_many", table)
        if failure:
            return failure
        for row_id, values in changes.items():
            for row in self.tables[table]:
                if row["id"] == row_id:
                    row.update(values)
        return StoreResult(data=len(changes))

    def delete(self, table, row_id) -> StoreResult:
        return self.delete_where(table, "id", row_id, op="delete")

    def delete_where(self, table, column, value, op: str = "delete_where") -> StoreResult:
        check_columns(table, [column])
        self.calls.append((op, table, value))
        failure = self._failure(op, table)
        if failure:
            return failure
        before = len(self.tables[table])
        self.tables[table] = [row for row in self.tables[table] if row.get(column) != value]
        return StoreResult(data=before - len(self.tables[table]))

    def ping(self) -> bool:
        return True

    def writes(self) -> List[tuple]:
        return [call for call in self.calls if call[0] != "select"]


# --- Fixtures -----------------------------------------------------------------


@pytest.fixture()
def sample_rows() -> Dict[str, List[Dict[str, Any]]]:
    workstreams = [
        {"id": "ws-a", "name": "研發組", "color": None, "sort_order": 0, "created_at": "2026-01-01T00:00:00"},
        {"id": "ws-b", "name": "行政組", "color": "#000000", "sort_order": 1, "created_at": "2026-01-01T00:00:01"},
    ]
    projects = [
        {"id": "p1", "title": "Budget", "status": "active", "workstream_id": "ws-a", "sort_order": 0,
         "created_at": "2026-01-02T00:00:00"},
        {"id": "p2", "title": "Outreach", "status": "active", "workstream_id": "ws-a", "sort_order": 1,
         "created_at": "2026-01-02T00:00:01"},
        {"id": "p3", "title": "Office", "status": None, "workstream_id": "ws-b", "sort_order": 0,
         "created_at": "2026-01-02T00:00:02"},
    ]
    tasks = [
        {"id": "t1", "project_id": "p1", "title": "Draft", "due_date": "2026-01-05", "assignee": "Lin",
         "done": False, "sort_order": 0, "created_at": "2026-01-03T00:00:00"},
        {"id": "t2", "project_id": "p1", "title": "Review", "due_date": "2025-12-20", "assignee": "Chen",
         "done": False, "sort_order": 1, "created_at": "2026-01-03T00:00:01"},
        {"id": "t3", "project_id": "p1", "title": "Submit", "due_date": "2026-01-20", "assignee": None,
         "done": False, "sort_order": 2, "created_at": "2026-01-03T00:00:02"},
        {"id": "t4", "project_id": "p3", "title": "Keys", "due_date": "2026-01-06", "assignee": "Wu",
         "done": True, "sort_order": 0, "created_at": "2026-01-03T00:00:03"},
        {"id": "t5", "project_id": "p3", "title": "Someday", "due_date": None, "assignee": "Wu",
         "done": False, "sort_order": 1, "created_at": "2026-01-03T00:00:04"},
    ]
    return {"workstreams": workstreams, "projects": projects, "tasks": tasks}


@pytest.fixture()
def store(sample_rows) -> MemoryStore:
    return MemoryStore(**sample_rows)
