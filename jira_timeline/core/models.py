"""Domain data models for issues, change histories, timelines and indexes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .config import COMPILED_MARKER


class SearchMode(Enum):
    COUNT = "count"
    CONTENTS = "contents"


class ChangeKind(Enum):
    STATUS = "status"
    ASSIGNEE = "assignee"
    IGNORED = "ignored"


@dataclass(slots=True, frozen=True)
class UserRef:
    account_id: str | None
    display_name: str | None


@dataclass(slots=True)
class ChangeItem:
    kind: ChangeKind
    field_id: str | None
    from_value: str | None = None
    to_value: str | None = None
    from_string: str | None = None
    to_string: str | None = None


@dataclass(slots=True)
class HistoryEntry:
    author: UserRef | None
    created: datetime | None
    created_raw: str | None = None
    items: list[ChangeItem] = field(default_factory=list)


@dataclass(slots=True)
class IssueRecord:
    key: str
    summary: str | None
    status: str | None
    issuetype: str | None
    issuetype_id: str | None
    issuetype_icon_url: str | None
    assignee: UserRef | None
    created: datetime | None
    aggregate_progress: dict[str, Any] | None = None
    # None when the payload carried no changelog at all
    histories: list[HistoryEntry] | None = None


@dataclass(slots=True, frozen=True)
class CombinedResult:
    """Pagination-merged search result tagged with its provenance."""

    total: int
    issues: tuple[dict[str, Any], ...]
    query: str
    comment: str = COMPILED_MARKER

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "issues": list(self.issues),
            "query": self.query,
            "comment": self.comment,
        }


@dataclass(slots=True)
class ValidatedDataset:
    issues: list[IssueRecord]
    raw: list[dict[str, Any]]
    has_history: bool
    query: str | None = None
    record_count: int | None = None

    def __len__(self) -> int:
        return len(self.issues)

    def summary(self) -> dict[str, Any]:
        return {"issue_count": len(self.issues), "contains_history": self.has_history}


# ------------------ Derived timeline records ------------------
@dataclass(slots=True)
class AgeInfo:
    days: float = 0.0
    source: str = ""


@dataclass(slots=True)
class UpdateInfo:
    count: int = 0
    authors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AssigneeInfo:
    count: int = 0
    changes: int = 0
    names: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TimelineRecord:
    title: str = ""
    age: AgeInfo = field(default_factory=AgeInfo)
    age_status: float = 0.0
    age_assignee: float = 0.0
    updates: UpdateInfo = field(default_factory=UpdateInfo)
    status_changes: int = 0
    assignee: AssigneeInfo = field(default_factory=AssigneeInfo)
    msg: str | None = None


# ------------------ Aggregate indexes ------------------
@dataclass(slots=True)
class StatusStats:
    count: int = 0


@dataclass(slots=True)
class TypeStats:
    count: int = 0
    id: str | None = None
    icon_url: str | None = None


@dataclass(slots=True)
class UserStats:
    account_id: str | None = None
    assignee_count: int = 0
    assignee_list: list[str] = field(default_factory=list)
    change_count: int = 0
    change_list: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TimelineReport:
    timelines: dict[str, TimelineRecord]
    status_index: dict[str, StatusStats]
    type_index: dict[str, TypeStats]
    user_index: dict[str, UserStats]
    user_ids: dict[str, str] = field(default_factory=dict)
