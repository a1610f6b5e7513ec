from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from tracker_store import FIXED_WORKSTREAMS

WORKSTREAM_COLORS: Dict[str, str] = dict(FIXED_WORKSTREAMS)
DEFAULT_COLOR = "#111111"

WEEKDAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MARKER_CAP = 6

_MONTH_CALENDAR = calendar.Calendar(firstweekday=calendar.MONDAY)


def parse_due_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def start_of_month(value: date) -> date:
    return date(value.year, value.month, 1)


def add_months(value: date, diff: int) -> date:
    months = value.year * 12 + (value.month - 1) + diff
    return date(months // 12, months % 12 + 1, 1)


def month_label(value: date) -> str:
    return f"{value.year}/{value.month:02d}"


def parse_month(value: Any) -> date | None:
    """Parse ``YYYY-MM`` (or a full date) into the first day of that month."""
    text = str(value or "").strip()
    for fmt in ("%Y-%m", "%Y/%m"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    due = parse_due_date(text)
    return start_of_month(due) if due else None


def workstream_color(workstream: Mapping[str, Any] | None) -> str:
    if not workstream:
        return DEFAULT_COLOR
    return workstream.get("color") or WORKSTREAM_COLORS.get(workstream.get("name") or "", DEFAULT_COLOR)


def project_colors(
    projects: Iterable[Mapping[str, Any]], workstreams: Iterable[Mapping[str, Any]]
) -> Dict[str, str]:
    ws_by_id = {ws["id"]: ws for ws in workstreams}
    return {p["id"]: workstream_color(ws_by_id.get(p.get("workstream_id"))) for p in projects}


def is_open(task: Mapping[str, Any]) -> bool:
    return not task.get("done")


@dataclass
class DayCell:
    day: date
    markers: List[str] = field(default_factory=list)
    hidden: int = 0

    @property
    def key(self) -> str:
        return self.day.isoformat()


@dataclass
class MonthGrid:
    year: int
    month: int
    cells: List[DayCell | None]

    @property
    def label(self) -> str:
        return month_label(date(self.year, self.month, 1))

    @property
    def weeks(self) -> List[List[DayCell | None]]:
        return [self.cells[i:i + 7] for i in range(0, len(self.cells), 7)]


def month_grid(
    tasks: Sequence[Mapping[str, Any]],
    colors: Mapping[str, str],
    cursor: date,
    marker_cap: int = MARKER_CAP,
) -> MonthGrid:
    """Monday-first grid for the cursor's month.

    Blank cells are None. Every incomplete task due on a day adds one marker
    in its project's workstream colour; tasks whose project is unknown are
    skipped.
    """
    first = start_of_month(cursor)
    by_day: Dict[date, List[str]] = {}
    for task in tasks:
        if not is_open(task):
            continue
        due = parse_due_date(task.get("due_date"))
        if due is None or (due.year, due.month) != (first.year, first.month):
            continue
        color = colors.get(task.get("project_id"))
        if color is None:
            continue
        by_day.setdefault(due, []).append(color)

    cells: List[DayCell | None] = []
    for day_number in _MONTH_CALENDAR.itermonthdays(first.year, first.month):
        if day_number == 0:
            cells.append(None)
            continue
        day = date(first.year, first.month, day_number)
        markers = by_day.get(day, [])
        cells.append(DayCell(day=day, markers=markers[:marker_cap], hidden=max(0, len(markers) - marker_cap)))
    return MonthGrid(year=first.year, month=first.month, cells=cells)


def week_window(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 of now's week through the following Monday 00:00."""
    js_weekday = now.isoweekday() % 7
    start_day = now.date() - timedelta(days=(js_weekday + 6) % 7)
    start = datetime.combine(start_day, time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=7)


def due_label(due: date) -> str:
    return f"{due.isoformat()} ({WEEKDAY_ABBR[due.weekday()]})"


@dataclass
class DigestRow:
    task_id: str
    title: str
    project_title: str
    assignee: str
    due_date: str
    label: str
    overdue: bool
    color: str


def weekly_digest(
    tasks: Sequence[Mapping[str, Any]],
    projects: Sequence[Mapping[str, Any]],
    workstreams: Sequence[Mapping[str, Any]],
    now: datetime | None = None,
) -> List[DigestRow]:
    now = now or datetime.now()
    start, end = week_window(now)
    colors = project_colors(projects, workstreams)
    titles = {p["id"]: p.get("title") or "" for p in projects}

    rows: List[DigestRow] = []
    for task in tasks:
        if not is_open(task):
            continue
        due = parse_due_date(task.get("due_date"))
        if due is None or due >= end.date():
            continue
        rows.append(
            DigestRow(
                task_id=task["id"],
                title=task.get("title") or "",
                project_title=titles.get(task.get("project_id"), ""),
                assignee=task.get("assignee") or "",
                due_date=due.isoformat(),
                label=due_label(due),
                overdue=due < start.date(),
                color=colors.get(task.get("project_id"), DEFAULT_COLOR),
            )
        )
    rows.sort(key=lambda row: row.due_date)
    return rows
