"""Report-ready summaries: issue-type rollups and DataFrame views of a TimelineReport."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

import pandas as pd

from jira_timeline.analytics.metrics.aging import seconds_to_workdays
from jira_timeline.core.models import TimelineReport, ValidatedDataset

# Only stories carry progress into the rollup; epics and sub-tasks would
# double-count the same logged work.
PROGRESS_TYPES: tuple[str, ...] = ("Story",)

TIMELINE_COLUMNS: tuple[str, ...] = (
    "key",
    "title",
    "age_days",
    "age_source",
    "age_status",
    "age_assignee",
    "updates",
    "update_authors",
    "status_changes",
    "assignee_count",
    "assignee_changes",
    "assignees",
    "msg",
)


@dataclass(slots=True)
class TypeSummary:
    count: int = 0
    issues: list[str] = field(default_factory=list)
    progress_seconds: int = 0
    total_seconds: int = 0

    @property
    def progress_days(self) -> float:
        return seconds_to_workdays(self.progress_seconds)

    @property
    def total_days(self) -> float:
        return seconds_to_workdays(self.total_seconds)


def summarize_by_type(
    dataset: ValidatedDataset,
    progress_types: Iterable[str] = PROGRESS_TYPES,
) -> dict[str, TypeSummary]:
    """Count issues per type and sum aggregate progress for ``progress_types``.

    Issues without an ``aggregateprogress`` block contribute no time.
    """
    wanted = set(progress_types)
    out: dict[str, TypeSummary] = {}
    for issue in dataset.issues:
        name = issue.issuetype or "Unknown"
        entry = out.setdefault(name, TypeSummary())
        entry.count += 1
        entry.issues.append(issue.key)
        progress = issue.aggregate_progress
        if name in wanted and isinstance(progress, Mapping):
            entry.progress_seconds += int(progress.get("progress") or 0)
            entry.total_seconds += int(progress.get("total") or 0)
    return out


def timelines_to_dataframe(report: TimelineReport) -> pd.DataFrame:
    rows = []
    for key, tl in report.timelines.items():
        rows.append(
            {
                "key": key,
                "title": tl.title,
                "age_days": tl.age.days,
                "age_source": tl.age.source,
                "age_status": tl.age_status,
                "age_assignee": tl.age_assignee,
                "updates": tl.updates.count,
                "update_authors": ", ".join(tl.updates.authors),
                "status_changes": tl.status_changes,
                "assignee_count": tl.assignee.count,
                "assignee_changes": tl.assignee.changes,
                "assignees": ", ".join(n for n in tl.assignee.names if n),
                "msg": tl.msg or "",
            }
        )
    return pd.DataFrame(rows, columns=list(TIMELINE_COLUMNS))


def index_to_dataframe(index: Mapping[str, Any], key_name: str = "name") -> pd.DataFrame:
    """Flatten a status/type/user index into one row per key, largest first."""
    if not index:
        return pd.DataFrame(columns=[key_name])
    rows = []
    for name, stats in index.items():
        row: dict[str, Any] = {key_name: name}
        for col, value in asdict(stats).items():
            row[col] = len(value) if isinstance(value, list) else value
        rows.append(row)
    df = pd.DataFrame(rows)
    sort_col = "count" if "count" in df.columns else "assignee_count"
    return df.sort_values(by=[sort_col, key_name], ascending=[False, True]).reset_index(drop=True)
