from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence

from ordering import sort_siblings

logger = logging.getLogger(__name__)

COLLECTIONS = ("workstreams", "projects", "tasks")

DRAFT_FIELDS = ("title", "due_date", "assignee")


def empty_dashboard_data(error: str = "") -> Dict[str, Any]:
    return {
        "workstreams": [],
        "projects": [],
        "tasks": [],
        "updated": datetime.now().strftime("%Y-%m-%d %H:%M"),
        "errors": [error] if error else [],
        "loaded": False,
    }


def load_dashboard_data(store, previous: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    """Read every collection in display order.

    A collection whose read fails keeps the rows from ``previous``.
    """
    base = previous or empty_dashboard_data()
    data: Dict[str, Any] = {"errors": []}
    loaded_any = False
    for table in COLLECTIONS:
        result = store.select(table)
        if result.ok:
            data[table] = list(result.data or [])
            loaded_any = True
        else:
            logger.error("Reading %s failed: %s", table, result.error)
            data[table] = list(base.get(table, []))
            data["errors"].append(f"{table}: {result.error}")
    data["updated"] = datetime.now().strftime("%Y-%m-%d %H:%M")
    data["loaded"] = loaded_any or bool(base.get("loaded"))
    return data


def load_dashboard_data_safe(store, previous: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    try:
        return load_dashboard_data(store, previous)
    except Exception as exc:
        logger.exception("Failed to load dashboard data")
        if previous:
            return {**previous, "errors": [str(exc)]}
        return empty_dashboard_data(error=str(exc))


def group_by(rows: Sequence[Mapping[str, Any]], key: str) -> Dict[str, List[Mapping[str, Any]]]:
    grouped: Dict[str, List[Mapping[str, Any]]] = {}
    for row in rows:
        grouped.setdefault(row.get(key), []).append(row)
    return {parent: sort_siblings(children) for parent, children in grouped.items()}


def projects_by_workstream(projects: Sequence[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    return group_by(projects, "workstream_id")


def tasks_by_project(tasks: Sequence[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    return group_by(tasks, "project_id")


@dataclass(frozen=True)
class DraftTask:
    title: str = ""
    due_date: str = ""
    assignee: str = ""


def draft_for(drafts: Mapping[str, DraftTask], project_id: str) -> DraftTask:
    return drafts.get(project_id) or DraftTask()


def with_draft_field(
    drafts: Mapping[str, DraftTask], project_id: str, name: str, value: str
) -> Dict[str, DraftTask]:
    if name not in DRAFT_FIELDS:
        raise ValueError(f"Unknown draft field: {name}")
    return {**drafts, project_id: replace(draft_for(drafts, project_id), **{name: value})}


def clear_draft(drafts: Mapping[str, DraftTask], project_id: str) -> Dict[str, DraftTask]:
    return {**drafts, project_id: DraftTask()}
