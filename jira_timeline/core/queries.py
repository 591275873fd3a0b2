"""JQL builders for the standard status reports.

Each helper only assembles query text; pair it with
``TimelineService.count`` or ``TimelineService.contents``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

EPIC_JQL = "type=Epic"
CLOSED_STATUSES: tuple[str, ...] = ("Dead", "Closed")


def _jql_date(day: date) -> str:
    return day.strftime("%Y/%m/%d")


def append_project(jql: str, project: str) -> str:
    return f"{jql} and project={project}"


def status_on_date(status: str, day: date) -> str:
    """Issues that held ``status`` at some point during ``day``."""
    return f'status WAS "{status}" DURING ("{_jql_date(day)}", "{_jql_date(day + timedelta(days=1))}")'


def status_during(status: str, start: date, end: date) -> str:
    return f'status WAS "{status}" DURING ("{_jql_date(start)}", "{_jql_date(end)}")'


def created_on_day(day: date) -> str:
    return f'created > "{_jql_date(day)}" and created < "{_jql_date(day + timedelta(days=1))}"'


def updated_yesterday() -> str:
    return "updated >= -1d and updated < startOfDay()"


def epics(project: str) -> str:
    return append_project(EPIC_JQL, project)


def dead_issues(project: str | None = None) -> str:
    jql = "status=Dead"
    if project:
        jql = append_project(jql, project)
    return jql


def open_issues(project: str, closed_statuses: Iterable[str] = CLOSED_STATUSES) -> str:
    return f"status not in ({', '.join(closed_statuses)}) and project={project}"


def issues_by_status(project: str, statuses: str | Iterable[str]) -> str:
    if not isinstance(statuses, str):
        statuses = ", ".join(f'"{s}"' for s in statuses)
    return f"status in ({statuses}) and project={project}"


def changed_this_week(project: str, field: str = "status") -> str:
    return f"{field} changed after startOfWeek() and project={project}"


def changed_this_month(project: str, field: str = "status") -> str:
    return f"{field} changed after startOfMonth() and project={project}"


def done_this_month(project: str, done_status: str = "Done") -> str:
    return f'status changed after startOfMonth() and status changed to "{done_status}" and project={project}'
