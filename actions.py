"""User mutations against the tracker store.

Every function raises ActionError with a message fit for the blocking alert
when input is incomplete or the store reports a failure. Nothing is retried;
the caller reloads the dashboard afterwards.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import ordering
from dashboard_data import DraftTask
from derived_views import WORKSTREAM_COLORS, parse_due_date
from tracker_store import StoreResult

logger = logging.getLogger(__name__)


class ActionError(Exception):
    pass


def _check(result: StoreResult | None, failure: str) -> StoreResult | None:
    if result is not None and not result.ok:
        logger.error("%s: %s", failure, result.error)
        raise ActionError(f"{failure}: {result.error}")
    return result


def _siblings(rows: Sequence[Mapping[str, Any]], key: str, parent_id: str | None) -> list:
    return [row for row in rows if row.get(key) == parent_id]


def add_workstream(store, name: str, workstreams: Sequence[Mapping[str, Any]]) -> StoreResult:
    name = (name or "").strip()
    if not name:
        raise ActionError("Choose a workstream")
    if name not in WORKSTREAM_COLORS:
        raise ActionError(f"Unknown workstream: {name}")
    if any(ws.get("name") == name for ws in workstreams):
        raise ActionError(f"Workstream {name} already exists")
    return _check(
        store.insert(
            "workstreams",
            {
                "name": name,
                "color": WORKSTREAM_COLORS[name],
                "sort_order": ordering.next_sort_order(workstreams),
            },
        ),
        "Add failed",
    )


def delete_workstream(store, workstream_id: str) -> StoreResult:
    return _check(store.delete("workstreams", workstream_id), "Delete failed")


def add_project(
    store, title: str, workstream_id: str, projects: Sequence[Mapping[str, Any]]
) -> StoreResult:
    title = (title or "").strip()
    if not title:
        raise ActionError("Enter a project name")
    if not workstream_id:
        raise ActionError("Choose a workstream")
    siblings = _siblings(projects, "workstream_id", workstream_id)
    return _check(
        store.insert(
            "projects",
            {
                "title": title,
                "status": "active",
                "workstream_id": workstream_id,
                "sort_order": ordering.next_sort_order(siblings),
            },
        ),
        "Add failed",
    )


def delete_project(store, project_id: str) -> StoreResult:
    _check(store.delete_where("tasks", "project_id", project_id), "Delete failed")
    return _check(store.delete("projects", project_id), "Delete failed")


def add_task(store, project_id: str, draft: DraftTask, tasks: Sequence[Mapping[str, Any]]) -> StoreResult:
    title = draft.title.strip()
    if not title:
        raise ActionError("Enter a task name")
    if not draft.due_date.strip():
        raise ActionError("Choose a due date")
    due = parse_due_date(draft.due_date)
    if due is None:
        raise ActionError(f"Invalid due date: {draft.due_date}")
    assignee = draft.assignee.strip()
    if not assignee:
        raise ActionError("Enter an assignee")
    siblings = _siblings(tasks, "project_id", project_id)
    return _check(
        store.insert(
            "tasks",
            {
                "project_id": project_id,
                "title": title,
                "due_date": due.isoformat(),
                "assignee": assignee,
                "done": False,
                "sort_order": ordering.next_sort_order(siblings),
            },
        ),
        "Add failed",
    )


def delete_task(store, task_id: str) -> StoreResult:
    return _check(store.delete("tasks", task_id), "Delete failed")


def toggle_done(store, task: Mapping[str, Any]) -> StoreResult:
    return _check(store.update("tasks", task["id"], {"done": not task.get("done")}), "Update failed")


def move_workstream(store, workstreams: Sequence[Mapping[str, Any]], workstream_id: str, direction: int):
    return _check(ordering.move(store, "workstreams", workstreams, workstream_id, direction), "Reorder failed")


def move_project(store, projects: Sequence[Mapping[str, Any]], project: Mapping[str, Any], direction: int):
    siblings = _siblings(projects, "workstream_id", project.get("workstream_id"))
    return _check(ordering.move(store, "projects", siblings, project["id"], direction), "Reorder failed")


def move_task(store, tasks: Sequence[Mapping[str, Any]], task: Mapping[str, Any], direction: int):
    siblings = _siblings(tasks, "project_id", task.get("project_id"))
    return _check(ordering.move(store, "tasks", siblings, task["id"], direction), "Reorder failed")


def reorder_projects(store, projects: Sequence[Mapping[str, Any]], active_id: str, over_id: str):
    by_id = {p["id"]: p for p in projects}
    active, over = by_id.get(active_id), by_id.get(over_id)
    if active is None or over is None or active.get("workstream_id") != over.get("workstream_id"):
        return None
    siblings = _siblings(projects, "workstream_id", active.get("workstream_id"))
    return _check(ordering.reorder(store, "projects", siblings, active_id, over_id), "Reorder failed")


def reorder_tasks(store, tasks: Sequence[Mapping[str, Any]], project_id: str, active_id: str, over_id: str):
    siblings = _siblings(tasks, "project_id", project_id)
    return _check(ordering.reorder(store, "tasks", siblings, active_id, over_id), "Reorder failed")
