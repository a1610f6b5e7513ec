from __future__ import annotations

import pytest

import actions
from actions import ActionError
from conftest import MemoryStore
from dashboard_data import DraftTask


# --- workstreams ------------------------------------------------------------

def test_add_workstream_uses_fixed_color_and_appends(store: MemoryStore):
    actions.add_workstream(store, "兒少組", store.rows("workstreams"))
    added = store.rows("workstreams")[-1]
    assert added["name"] == "兒少組"
    assert added["color"] == "#2563eb"
    assert added["sort_order"] == 2


@pytest.mark.parametrize(
    "name, message",
    [("", "Choose a workstream"), ("Marketing", "Unknown workstream"), ("研發組", "already exists")],
)
def test_add_workstream_validation(store: MemoryStore, name, message):
    with pytest.raises(ActionError, match=message):
        actions.add_workstream(store, name, store.rows("workstreams"))
    assert store.writes() == []


# --- projects ---------------------------------------------------------------

def test_add_project_appends_within_its_workstream(store: MemoryStore):
    actions.add_project(store, "  Grants  ", "ws-b", store.rows("projects"))
    added = store.rows("projects")[-1]
    assert added["title"] == "Grants"
    assert added["status"] == "active"
    assert added["workstream_id"] == "ws-b"
    assert added["sort_order"] == 1


def test_first_project_in_a_workstream_gets_position_zero():
    store = MemoryStore()
    actions.add_project(store, "First", "ws-new", [])
    assert store.rows("projects")[0]["sort_order"] == 0


@pytest.mark.parametrize("title, ws, message", [("   ", "ws-a", "project name"), ("X", "", "workstream")])
def test_add_project_validation(store: MemoryStore, title, ws, message):
    with pytest.raises(ActionError, match=message):
        actions.add_project(store, title, ws, store.rows("projects"))
    assert store.writes() == []


def test_store_failure_surfaces_as_action_error(store: MemoryStore):
    store.fail_on("insert", "projects", "permission denied for table projects")
    with pytest.raises(ActionError) as excinfo:
        actions.add_project(store, "Grants", "ws-a", store.rows("projects"))
    assert str(excinfo.value) == "Add failed: permission denied for table projects"


def test_delete_project_removes_tasks_first(store: MemoryStore):
    actions.delete_project(store, "p1")
    assert [call[:2] for call in store.writes()] == [("delete_where", "tasks"), ("delete", "projects")]
    assert all(t["project_id"] != "p1" for t in store.rows("tasks"))
    assert all(p["id"] != "p1" for p in store.rows("projects"))


def test_delete_project_aborts_when_task_cleanup_fails(store: MemoryStore):
    store.fail_on("delete_where", "tasks")
    with pytest.raises(ActionError, match="Delete failed"):
        actions.delete_project(store, "p1")
    assert any(p["id"] == "p1" for p in store.rows("projects"))


# --- tasks ------------------------------------------------------------------

def test_add_task_inserts_open_task_after_siblings(store: MemoryStore):
    draft = DraftTask(title=" Print ", due_date="2026-02-01", assignee=" Lin ")
    actions.add_task(store, "p1", draft, store.rows("tasks"))
    added = store.rows("tasks")[-1]
    assert added["title"] == "Print"
    assert added["assignee"] == "Lin"
    assert added["due_date"] == "2026-02-01"
    assert added["done"] is False
    assert added["sort_order"] == 3


@pytest.mark.parametrize(
    "draft, message",
    [
        (DraftTask(title="", due_date="2026-02-01", assignee="Lin"), "task name"),
        (DraftTask(title="X", due_date="", assignee="Lin"), "due date"),
        (DraftTask(title="X", due_date="next week", assignee="Lin"), "Invalid due date"),
        (DraftTask(title="X", due_date="2026-02-01", assignee="  "), "assignee"),
    ],
)
def test_add_task_validation(store: MemoryStore, draft, message):
    with pytest.raises(ActionError, match=message):
        actions.add_task(store, "p1", draft, store.rows("tasks"))
    assert store.writes() == []


def test_toggle_done_flips_completion(store: MemoryStore):
    actions.toggle_done(store, store.get("tasks", "t1"))
    assert store.get("tasks", "t1")["done"] is True
    actions.toggle_done(store, store.get("tasks", "t1"))
    assert store.get("tasks", "t1")["done"] is False


def test_delete_task(store: MemoryStore):
    actions.delete_task(store, "t2")
    assert all(t["id"] != "t2" for t in store.rows("tasks"))


# --- reordering -------------------------------------------------------------

def test_move_task_stays_within_its_project(store: MemoryStore):
    # t4 is the first task in p3; p1's tasks are not its siblings
    assert actions.move_task(store, store.rows("tasks"), store.get("tasks", "t4"), -1) is None
    actions.move_task(store, store.rows("tasks"), store.get("tasks", "t4"), 1)
    assert store.get("tasks", "t4")["sort_order"] == 1
    assert store.get("tasks", "t5")["sort_order"] == 0


def test_move_project_swaps_with_neighbor(store: MemoryStore):
    actions.move_project(store, store.rows("projects"), store.get("projects", "p2"), -1)
    assert store.get("projects", "p2")["sort_order"] == 0
    assert store.get("projects", "p1")["sort_order"] == 1
    assert store.get("projects", "p3")["sort_order"] == 0


def test_move_workstream(store: MemoryStore):
    actions.move_workstream(store, store.rows("workstreams"), "ws-a", 1)
    assert store.get("workstreams", "ws-a")["sort_order"] == 1
    assert store.get("workstreams", "ws-b")["sort_order"] == 0


def test_failed_reorder_raises(store: MemoryStore):
    store.fail_on("update_many", "projects", "timeout")
    with pytest.raises(ActionError, match="Reorder failed: timeout"):
        actions.move_project(store, store.rows("projects"), store.get("projects", "p1"), 1)


def test_reorder_projects_ignores_drops_across_workstreams(store: MemoryStore):
    assert actions.reorder_projects(store, store.rows("projects"), "p1", "p3") is None
    assert store.writes() == []


def test_reorder_tasks_by_drag(store: MemoryStore):
    actions.reorder_tasks(store, store.rows("tasks"), "p1", "t1", "t3")
    order = sorted(
        (t for t in store.rows("tasks") if t["project_id"] == "p1"), key=lambda t: t["sort_order"]
    )
    assert [t["id"] for t in order] == ["t2", "t3", "t1"]
