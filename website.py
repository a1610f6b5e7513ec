from __future__ import annotations

from compat import apply_runtime_patches

apply_runtime_patches()

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Callable, Dict, List

from flask import Flask, jsonify, make_response, redirect, request
from reactpy import component, event, hooks, html
from reactpy.backend.flask import Options, configure, use_request

import actions
from actions import ActionError
from dashboard_data import (
    DRAFT_FIELDS,
    clear_draft,
    draft_for,
    load_dashboard_data,
    load_dashboard_data_safe,
    projects_by_workstream,
    tasks_by_project,
    with_draft_field,
)
from derived_views import (
    WEEKDAY_ABBR,
    WORKSTREAM_COLORS,
    MonthGrid,
    add_months,
    month_grid,
    parse_month,
    project_colors,
    start_of_month,
    weekly_digest,
    workstream_color,
)
from identity import load_session, sign_out
from settings import Settings, configure_logging, load_dotenv
from styles import DASHBOARD_CSS
from tracker_store import TableStore, init_db

load_dotenv()

SETTINGS = Settings.from_env()
configure_logging(SETTINGS.log_level)

app = Flask(__name__)

DATABASE_URL = SETTINGS.require_database_url()
STORE = TableStore(DATABASE_URL, maxconn=SETTINGS.db_pool_max)


def maybe_init_db_on_startup() -> None:
    """Create or upgrade the schema once when RUN_DB_INIT=1.

    Never runs on the request path. Set RUN_DB_INIT=1, restart, then set it
    back to 0.
    """
    if not SETTINGS.run_db_init:
        return
    with STORE.connection() as db:
        init_db(db)


def access_token_from(req) -> str | None:
    header = req.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return req.cookies.get(SETTINGS.auth_cookie) or None


def grid_payload(grid: MonthGrid) -> Dict[str, Any]:
    return {
        "label": grid.label,
        "weeks": [
            [
                None if cell is None else {"date": cell.key, "markers": cell.markers, "hidden": cell.hidden}
                for cell in week
            ]
            for week in grid.weeks
        ],
    }


@app.route("/api/data")
def api_data():
    data = load_dashboard_data(STORE)
    status = 200 if data["loaded"] else 503
    return jsonify(data), status


@app.route("/api/db-health")
def api_db_health():
    return jsonify({"ok": STORE.ping()})


@app.route("/api/calendar")
def api_calendar():
    cursor = parse_month(request.args.get("month")) if request.args.get("month") else start_of_month(date.today())
    if cursor is None:
        return jsonify({"error": "month must look like YYYY-MM"}), 400
    data = load_dashboard_data(STORE)
    colors = project_colors(data["projects"], data["workstreams"])
    grid = month_grid(data["tasks"], colors, cursor, SETTINGS.calendar_marker_cap)
    return jsonify(grid_payload(grid))


@app.route("/api/digest")
def api_digest():
    data = load_dashboard_data(STORE)
    rows = weekly_digest(data["tasks"], data["projects"], data["workstreams"], datetime.now())
    return jsonify([asdict(row) for row in rows])


@app.route("/logout")
def logout():
    sign_out(access_token_from(request), SETTINGS)
    response = make_response(redirect(SETTINGS.login_url))
    response.delete_cookie(SETTINGS.auth_cookie)
    return response


@event(prevent_default=True)
def allow_drop(event_data: Dict[str, Any]) -> None:
    return None


@component
def App():
    req = use_request()
    token = access_token_from(req)
    session, set_session = hooks.use_state(lambda: load_session(STORE, token, SETTINGS))
    data, set_data = hooks.use_state(lambda: load_dashboard_data_safe(STORE))
    alert, set_alert = hooks.use_state("")
    confirm, set_confirm = hooks.use_state(None)
    drafts, set_drafts = hooks.use_state({})
    new_project, set_new_project = hooks.use_state({"title": "", "workstream_id": ""})
    new_ws_name, set_new_ws_name = hooks.use_state("")
    month_cursor, set_month_cursor = hooks.use_state(lambda: start_of_month(date.today()))
    is_busy, set_is_busy = hooks.use_state(False)
    busy_ref = hooks.use_ref(False)
    drag_ref = hooks.use_ref(None)

    workstreams = data["workstreams"]
    projects = data["projects"]
    tasks = data["tasks"]
    is_admin = session.is_admin
    colors = project_colors(projects, workstreams)
    grouped_projects = projects_by_workstream(projects)
    grouped_tasks = tasks_by_project(tasks)

    def refresh() -> None:
        set_data(lambda prev: load_dashboard_data_safe(STORE, prev))

    def reload_all(event_data: Dict[str, Any] | None = None) -> None:
        set_session(load_session(STORE, token, SETTINGS))
        refresh()

    def run_mutation(action: Callable[[], Any]) -> None:
        if busy_ref.current:
            return
        busy_ref.current = True
        set_is_busy(True)
        try:
            action()
        except ActionError as exc:
            set_alert(str(exc))
        finally:
            refresh()
            busy_ref.current = False
            set_is_busy(False)

    def ask_confirm(message: str, action: Callable[[], Any]) -> None:
        if busy_ref.current:
            return
        set_confirm({"message": message, "action": action})

    def accept_confirm(event_data: Dict[str, Any] | None = None) -> None:
        pending = confirm
        set_confirm(None)
        if pending:
            run_mutation(pending["action"])

    def value_of(event_data: Dict[str, Any]) -> str:
        return str(event_data.get("target", {}).get("value", "") or "")

    def set_draft_field(project_id: str, name: str, event_data: Dict[str, Any]) -> None:
        value = value_of(event_data)
        set_drafts(lambda prev: with_draft_field(prev, project_id, name, value))

    def selected_workstream_id() -> str:
        chosen = new_project.get("workstream_id") or ""
        if chosen:
            return chosen
        return workstreams[0]["id"] if workstreams else ""

    def submit_project(event_data: Dict[str, Any] | None = None) -> None:
        def commit() -> None:
            actions.add_project(STORE, new_project.get("title", ""), selected_workstream_id(), projects)
            set_new_project(lambda prev: {**prev, "title": ""})

        run_mutation(commit)

    def submit_task(project_id: str) -> None:
        def commit() -> None:
            actions.add_task(STORE, project_id, draft_for(drafts, project_id), tasks)
            set_drafts(lambda prev: clear_draft(prev, project_id))

        run_mutation(commit)

    def submit_workstream(event_data: Dict[str, Any] | None = None) -> None:
        def commit() -> None:
            actions.add_workstream(STORE, new_ws_name, workstreams)
            set_new_ws_name("")

        run_mutation(commit)

    def start_drag(kind: str, parent_id: str, item_id: str) -> None:
        drag_ref.current = (kind, parent_id, item_id)

    def drop_on(kind: str, parent_id: str, over_id: str) -> None:
        dragged = drag_ref.current
        drag_ref.current = None
        if not dragged or dragged[0] != kind or dragged[1] != parent_id or dragged[2] == over_id:
            return
        if kind == "project":
            run_mutation(lambda: actions.reorder_projects(STORE, projects, dragged[2], over_id))
        else:
            run_mutation(lambda: actions.reorder_tasks(STORE, tasks, parent_id, dragged[2], over_id))

    def drag_props(kind: str, parent_id: str, item_id: str) -> Dict[str, Any]:
        if not is_admin:
            return {}
        # rows nest (tasks inside projects), so drag events must not bubble
        return {
            "draggable": True,
            "on_drag_start": event(lambda e: start_drag(kind, parent_id, item_id), stop_propagation=True),
            "on_drag_over": allow_drop,
            "on_drop": event(
                lambda e: drop_on(kind, parent_id, item_id), stop_propagation=True, prevent_default=True
            ),
        }

    def move_buttons(on_move: Callable[[int], Any]):
        if not is_admin:
            return None
        return html.span(
            {"class": "row"},
            html.button(
                {"class": "btn small", "type": "button", "title": "Move up", "disabled": is_busy,
                 "on_click": lambda e: run_mutation(lambda: on_move(-1))},
                "↑",
            ),
            html.button(
                {"class": "btn small", "type": "button", "title": "Move down", "disabled": is_busy,
                 "on_click": lambda e: run_mutation(lambda: on_move(1))},
                "↓",
            ),
        )

    def delete_button(title: str, message: str, action: Callable[[], Any]):
        if not is_admin:
            return None
        return html.button(
            {"class": "btn small", "type": "button", "title": title, "disabled": is_busy,
             "on_click": lambda e: ask_confirm(message, action)},
            "🗑️",
        )

    def render_modal():
        if alert:
            return html.div(
                {"class": "modal"},
                html.div(
                    {"class": "modal-card glass-surface"},
                    html.h3("Something went wrong"),
                    html.div(alert),
                    html.div(
                        {"class": "modal-actions"},
                        html.button({"class": "btn primary", "type": "button", "on_click": lambda e: set_alert("")}, "OK"),
                    ),
                ),
            )
        if confirm:
            return html.div(
                {"class": "modal"},
                html.div(
                    {"class": "modal-card glass-surface"},
                    html.h3("Please confirm"),
                    html.div(confirm["message"]),
                    html.div(
                        {"class": "modal-actions"},
                        html.button({"class": "btn", "type": "button", "on_click": lambda e: set_confirm(None)}, "Cancel"),
                        html.button({"class": "btn primary", "type": "button", "on_click": accept_confirm}, "Delete"),
                    ),
                ),
            )
        return None

    def render_workstreams():
        missing = [name for name in WORKSTREAM_COLORS if not any(ws.get("name") == name for ws in workstreams)]
        rows = [
            html.div(
                {"class": "row-between", "key": ws["id"]},
                html.div(
                    {"class": "row"},
                    html.span({"class": "dot", "style": {"background": workstream_color(ws)}}),
                    html.span({"style": {"fontWeight": 800}}, ws.get("name") or ""),
                ),
                html.span(
                    {"class": "row"},
                    move_buttons(lambda direction, ws_id=ws["id"]: actions.move_workstream(STORE, workstreams, ws_id, direction)),
                    delete_button(
                        "Delete workstream",
                        f"Delete workstream {ws.get('name')}? Its projects and tasks are deleted too.",
                        lambda ws_id=ws["id"]: actions.delete_workstream(STORE, ws_id),
                    ),
                ),
            )
            for ws in workstreams
        ]
        add_form = None
        if is_admin and missing:
            add_form = html.div(
                {"class": "row", "style": {"marginTop": "10px"}},
                html.select(
                    {"class": "input", "value": new_ws_name, "disabled": is_busy,
                     "on_change": lambda e: set_new_ws_name(value_of(e))},
                    html.option({"value": ""}, "Add workstream…"),
                    *[html.option({"value": name, "key": name}, name) for name in missing],
                ),
                html.button({"class": "btn", "type": "button", "disabled": is_busy, "on_click": submit_workstream}, "Add"),
            )
        return html.div(
            html.h2("Workstreams"),
            html.div({"class": "stack", "style": {"marginTop": "10px"}}, *rows),
            add_form,
        )

    def render_calendar():
        grid = month_grid(tasks, colors, month_cursor, SETTINGS.calendar_marker_cap)
        today = date.today()
        cells = []
        for index, cell in enumerate(grid.cells):
            if cell is None:
                cells.append(html.div({"class": "day blank", "key": f"blank-{index}"}))
                continue
            cells.append(
                html.div(
                    {"class": f"day {'today' if cell.day == today else ''}", "key": cell.key, "title": cell.key},
                    html.div({"class": "day-number"}, str(cell.day.day)),
                    html.div(
                        {"class": "markers"},
                        *[
                            html.span({"class": "dot small", "key": f"{cell.key}-{i}", "style": {"background": color}})
                            for i, color in enumerate(cell.markers)
                        ],
                        *([html.span({"class": "more"}, f"+{cell.hidden}")] if cell.hidden else []),
                    ),
                )
            )
        return html.div(
            {"style": {"marginTop": "18px"}},
            html.h2("Milestone calendar"),
            html.div({"class": "meta"}, "Open tasks on their due dates, coloured by workstream."),
            html.div(
                {"class": "row-between", "style": {"marginTop": "10px"}},
                html.button({"class": "btn", "type": "button", "on_click": lambda e: set_month_cursor(lambda d: add_months(d, -1))}, "← Prev"),
                html.div({"style": {"fontWeight": 900}}, grid.label),
                html.button({"class": "btn", "type": "button", "on_click": lambda e: set_month_cursor(lambda d: add_months(d, 1))}, "Next →"),
            ),
            html.div(
                {"class": "calendar"},
                *[html.div({"class": "calendar-head", "key": abbr}, abbr) for abbr in WEEKDAY_ABBR],
                *cells,
            ),
        )

    def render_digest():
        rows = weekly_digest(tasks, projects, workstreams, datetime.now())
        return html.div(
            {"style": {"marginTop": "18px"}},
            html.h2("This week"),
            html.div({"class": "meta"}, "Open tasks due this week, plus anything overdue."),
            html.div(
                {"class": "stack", "style": {"marginTop": "8px", "gap": "0"}},
                *[
                    html.div(
                        {"class": "digest-row", "key": row.task_id},
                        html.div(
                            {"class": "row-between"},
                            html.div(
                                {"class": "row"},
                                html.span({"class": "dot small", "style": {"background": row.color}}),
                                html.span({"style": {"fontWeight": 800}}, row.title),
                            ),
                            html.span({"class": f"pill {'pill-danger' if row.overdue else 'pill-muted'}"},
                                      "Overdue" if row.overdue else row.label),
                        ),
                        html.div({"class": "meta"}, f"{row.label} · {row.project_title} · {row.assignee or '—'}"),
                    )
                    for row in rows
                ]
                if rows
                else [html.div({"class": "meta"}, "Nothing due this week.")],
            ),
        )

    def render_task(project: Dict[str, Any], task: Dict[str, Any]):
        color = colors.get(project["id"])
        return html.div(
            {"class": f"task {'done' if task.get('done') else ''}", "key": task["id"],
             **drag_props("task", project["id"], task["id"])},
            html.div(
                {"class": "row-between"},
                html.div(
                    {"class": "row"},
                    html.span({"class": "dot handle", "style": {"background": color}, "title": "Drag to reorder"}),
                    html.input(
                        {"type": "checkbox", "checked": bool(task.get("done")), "disabled": is_busy,
                         "on_change": lambda e, task=task: run_mutation(lambda: actions.toggle_done(STORE, task))}
                    ),
                    html.div(
                        html.div({"class": "task-title"}, task.get("title") or ""),
                        html.div({"class": "meta"}, f"Due {task.get('due_date') or '—'} · {task.get('assignee') or '—'}"),
                    ),
                ),
                html.span(
                    {"class": "row"},
                    move_buttons(lambda direction, task=task: actions.move_task(STORE, tasks, task, direction)),
                    delete_button(
                        "Delete task",
                        f"Delete task {task.get('title')}?",
                        lambda task_id=task["id"]: actions.delete_task(STORE, task_id),
                    ),
                ),
            ),
        )

    def render_task_form(project_id: str):
        if not is_admin:
            return None
        draft = draft_for(drafts, project_id)
        placeholders = {"title": "New task", "due_date": "", "assignee": "Assignee"}
        inputs = [
            html.input(
                {
                    "class": "input",
                    "key": f"{project_id}-{name}",
                    "type": "date" if name == "due_date" else "text",
                    "value": getattr(draft, name),
                    "placeholder": placeholders[name],
                    "disabled": is_busy,
                    "on_change": lambda e, name=name: set_draft_field(project_id, name, e),
                }
            )
            for name in DRAFT_FIELDS
        ]
        return html.div(
            {"class": "task-form"},
            *inputs,
            html.button({"class": "btn", "type": "button", "disabled": is_busy,
                         "on_click": lambda e: submit_task(project_id)}, "Add task"),
        )

    def render_project(project: Dict[str, Any]):
        project_tasks = grouped_tasks.get(project["id"], [])
        return html.div(
            {"class": "project", "key": project["id"],
             **drag_props("project", project.get("workstream_id") or "", project["id"])},
            html.div(
                {"class": "row-between"},
                html.div(
                    {"class": "row"},
                    html.span({"class": "dot handle", "style": {"background": colors.get(project["id"])},
                               "title": "Drag to reorder"}),
                    html.div(
                        html.h3(project.get("title") or ""),
                        html.div({"class": "meta"}, project.get("status") or ""),
                    ),
                ),
                html.span(
                    {"class": "row"},
                    move_buttons(lambda direction, project=project: actions.move_project(STORE, projects, project, direction)),
                    delete_button(
                        "Delete project",
                        f"Delete project {project.get('title')}? Its tasks are deleted too.",
                        lambda project_id=project["id"]: actions.delete_project(STORE, project_id),
                    ),
                ),
            ),
            render_task_form(project["id"]),
            html.div(
                {"class": "stack", "style": {"marginTop": "10px"}},
                *[render_task(project, task) for task in project_tasks]
                if project_tasks
                else [html.div({"class": "meta"}, "No tasks yet.")],
            ),
        )

    def render_project_form():
        if not is_admin:
            return None
        return html.div(
            {"class": "row", "style": {"marginTop": "12px"}},
            html.input(
                {"class": "input", "style": {"flex": "1"}, "value": new_project.get("title", ""),
                 "placeholder": "New project", "disabled": is_busy,
                 "on_change": lambda e: set_new_project(lambda prev, value=value_of(e): {**prev, "title": value})}
            ),
            html.select(
                {"class": "input", "value": selected_workstream_id(), "disabled": is_busy,
                 "on_change": lambda e: set_new_project(lambda prev, value=value_of(e): {**prev, "workstream_id": value})},
                *[html.option({"value": ws["id"], "key": ws["id"]}, ws.get("name") or "") for ws in workstreams],
            ),
            html.button({"class": "btn primary", "type": "button", "disabled": is_busy, "on_click": submit_project}, "Add project"),
        )

    def render_projects():
        sections: List[Any] = []
        for ws in workstreams:
            ws_projects = grouped_projects.get(ws["id"], [])
            if not ws_projects:
                continue
            sections.append(
                html.div(
                    {"class": "stack", "key": ws["id"]},
                    html.div(
                        {"class": "row"},
                        html.span({"class": "dot", "style": {"background": workstream_color(ws)}}),
                        html.span({"class": "meta", "style": {"fontWeight": 800}}, ws.get("name") or ""),
                    ),
                    *[render_project(project) for project in ws_projects],
                )
            )
        return html.div(
            html.h2("Projects"),
            render_project_form(),
            html.div(
                {"class": "stack", "style": {"marginTop": "16px", "gap": "18px"}},
                *sections if sections else [html.div({"class": "meta"}, "No projects yet.")],
            ),
        )

    if not data.get("loaded") and data.get("errors"):
        return html.div(
            html.style(DASHBOARD_CSS),
            html.main(
                {"class": "page"},
                html.section(
                    {"class": "card glass-surface"},
                    html.h2("Dashboard unavailable"),
                    html.div({"class": "meta"}, "Data could not be loaded. Check DATABASE_URL and database connectivity."),
                    html.pre({"class": "meta", "style": {"whiteSpace": "pre-wrap"}}, "\n".join(data["errors"])),
                    html.button({"class": "btn primary", "type": "button", "on_click": reload_all}, "Retry"),
                ),
            ),
        )

    return html.div(
        html.style(DASHBOARD_CSS),
        html.main(
            {"class": "page"},
            html.header(
                {"class": "header"},
                html.div(
                    html.div({"class": "title"}, "Workstream Tracker"),
                    html.div(
                        {"class": "meta"},
                        f"Signed in: {session.email or '—'} · Role: {session.role or '—'} · Updated {data['updated']}",
                    ),
                ),
                html.div(
                    {"class": "row"},
                    *([html.span({"class": "pill pill-muted"}, "Syncing…")] if is_busy else []),
                    html.button({"class": "btn", "type": "button", "disabled": is_busy, "on_click": reload_all}, "Reload"),
                    html.a({"class": "btn", "href": "/logout"}, "Log out"),
                ),
            ),
            html.div(
                {"class": "layout"},
                html.section(
                    {"class": "card glass-surface"},
                    render_workstreams(),
                    render_calendar(),
                    render_digest(),
                ),
                html.section({"class": "card glass-surface"}, render_projects()),
            ),
        ),
        render_modal(),
    )


# One-time optional schema initialization at process startup (not per request)
maybe_init_db_on_startup()

configure(
    app,
    App,
    Options(
        head=(
            {"tagName": "title", "children": ["Workstream Tracker"]},
            {
                "tagName": "meta",
                "attributes": {"name": "viewport", "content": "width=device-width, initial-scale=1"},
            },
        )
    ),
)


if __name__ == "__main__":
    app.run(
        host="0.0.0.0",
        port=SETTINGS.port,
        debug=SETTINGS.debug,
    )
