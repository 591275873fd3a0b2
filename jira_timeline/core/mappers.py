"""Mapping raw Jira issue JSON into IssueRecord instances."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

from .config import ASSIGNEE_FIELD_ID, STATUS_FIELD_ID
from .models import ChangeItem, ChangeKind, HistoryEntry, IssueRecord, UserRef

_KIND_BY_FIELD: dict[str, ChangeKind] = {
    STATUS_FIELD_ID: ChangeKind.STATUS,
    ASSIGNEE_FIELD_ID: ChangeKind.ASSIGNEE,
}


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def map_user(raw: Any) -> UserRef | None:
    if not isinstance(raw, dict):
        return None
    return UserRef(
        account_id=raw.get("accountId") or raw.get("name") or raw.get("key"),
        display_name=raw.get("displayName"),
    )


def map_change_item(raw: Any) -> ChangeItem:
    """Tag a raw changelog item by the field it touches.

    ``fieldId`` is the stable identifier on Jira Cloud; older payloads only
    carry ``field``. Anything that is not a status or assignee change maps to
    ``ChangeKind.IGNORED``.
    """
    if not isinstance(raw, dict):
        return ChangeItem(kind=ChangeKind.IGNORED, field_id=None)
    field_id = raw.get("fieldId") or raw.get("field")
    kind = _KIND_BY_FIELD.get(str(field_id).lower(), ChangeKind.IGNORED) if field_id else ChangeKind.IGNORED
    return ChangeItem(
        kind=kind,
        field_id=field_id,
        from_value=raw.get("from"),
        to_value=raw.get("to"),
        from_string=raw.get("fromString"),
        to_string=raw.get("toString"),
    )


def map_history(raw: dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        author=map_user(raw.get("author")),
        created=parse_dt(raw.get("created")),
        created_raw=raw.get("created"),
        items=[map_change_item(it) for it in raw.get("items") or []],
    )


def map_issue(raw: dict[str, Any]) -> IssueRecord:
    fields = raw.get("fields") or {}
    issuetype = fields.get("issuetype") or {}
    histories = None
    changelog = raw.get("changelog")
    if isinstance(changelog, dict):
        histories = [map_history(h) for h in changelog.get("histories") or [] if isinstance(h, dict)]
    return IssueRecord(
        key=raw.get("key"),
        summary=fields.get("summary"),
        status=(fields.get("status") or {}).get("name") if fields.get("status") else None,
        issuetype=issuetype.get("name"),
        issuetype_id=issuetype.get("id"),
        issuetype_icon_url=issuetype.get("iconUrl"),
        assignee=map_user(fields.get("assignee")),
        created=parse_dt(fields.get("created")),
        aggregate_progress=fields.get("aggregateprogress") or None,
        histories=histories,
    )


def map_issues(raw_issues: Iterable[dict[str, Any]]) -> list[IssueRecord]:
    return [map_issue(r) for r in raw_issues]
