"""Per-issue timeline reconstruction from changelog histories.

Histories must be ordered newest-first, which is how Jira returns an
expanded changelog for a single issue. The walk relies on it: the first
status (or assignee) change seen is the most recent one, and later
sightings never overwrite it. Out-of-order or undated entries raise
``HistoryOrderError`` unless the reconstructor is told to normalize the
order itself.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime

from jira_timeline.analytics.indexes import build_status_index, build_type_index, build_user_index
from jira_timeline.analytics.metrics.aging import elapsed_days, now_utc
from jira_timeline.core.config import NO_HISTORY_MESSAGE
from jira_timeline.core.errors import HistoryOrderError
from jira_timeline.core.models import (
    AgeInfo,
    ChangeKind,
    HistoryEntry,
    IssueRecord,
    TimelineRecord,
    TimelineReport,
    ValidatedDataset,
)

logger = logging.getLogger(__name__)


def resolve_user_name(user_ids: Mapping[str, str], account_id: str | None) -> str:
    """Account id -> display name; unknown ids resolve to an empty string."""
    if account_id and account_id in user_ids:
        return user_ids[account_id]
    logger.debug("No display name known for account id %r", account_id)
    return ""


class TimelineReconstructor:
    def __init__(self, *, now: datetime | None = None, normalize_order: bool = False):
        self.now = now
        self.normalize_order = normalize_order

    def build(self, dataset: ValidatedDataset) -> TimelineReport:
        now = self.now or now_utc()
        issues = dataset.issues
        expected = dataset.record_count if dataset.record_count is not None else len(issues)

        status_index = build_status_index(issues, expected)
        user_index, user_ids = build_user_index(issues, dataset.has_history)
        type_index = build_type_index(issues, expected)

        timelines = {
            issue.key: self.build_issue_timeline(issue, user_ids, now=now, has_history=dataset.has_history)
            for issue in issues
        }
        logger.debug("Built %s timelines (%s statuses, %s users)", len(timelines), len(status_index), len(user_index))
        return TimelineReport(
            timelines=timelines,
            status_index=status_index,
            type_index=type_index,
            user_index=user_index,
            user_ids=user_ids,
        )

    def ordered_histories(self, key: str, histories: Sequence[HistoryEntry]) -> list[HistoryEntry]:
        """Return ``histories`` newest-first or raise HistoryOrderError."""
        for pos, entry in enumerate(histories):
            if entry.created is None:
                raise HistoryOrderError(key, f"history entry {pos} has no usable timestamp")
        out_of_order = any(
            newer.created < older.created for newer, older in zip(histories, histories[1:], strict=False)
        )
        if not out_of_order:
            return list(histories)
        if not self.normalize_order:
            raise HistoryOrderError(key, "changelog is not ordered newest-first")
        return sorted(histories, key=lambda h: h.created, reverse=True)

    def build_issue_timeline(
        self,
        issue: IssueRecord,
        user_ids: Mapping[str, str],
        *,
        now: datetime,
        has_history: bool = True,
    ) -> TimelineRecord:
        timeline = TimelineRecord(title=issue.summary or "")

        if issue.created is not None:
            timeline.age = AgeInfo(days=elapsed_days(issue.created, now), source="created")

        if not has_history or issue.histories is None:
            timeline.msg = NO_HISTORY_MESSAGE
            return timeline

        histories = self.ordered_histories(issue.key, issue.histories)

        # No created field: fall back to the oldest changelog entry
        if not timeline.age.source and histories:
            timeline.age = AgeInfo(days=elapsed_days(histories[-1].created, now), source="changelog")

        timeline.updates.count = len(histories)
        for entry in histories:
            author = (entry.author.display_name if entry.author else None) or "Unknown"
            if author not in timeline.updates.authors:
                timeline.updates.authors.append(author)

        age_status: float | None = None
        age_assignee: float | None = None
        for entry in histories:
            for item in entry.items:
                if item.kind is ChangeKind.STATUS:
                    timeline.status_changes += 1
                    if age_status is None:
                        age_status = elapsed_days(entry.created, now)
                elif item.kind is ChangeKind.ASSIGNEE:
                    timeline.assignee.changes += 1
                    if age_assignee is None:
                        age_assignee = elapsed_days(entry.created, now)
                    name = resolve_user_name(user_ids, item.to_value)
                    if name not in timeline.assignee.names:
                        timeline.assignee.names.append(name)
                        timeline.assignee.count += 1

        timeline.age_status = timeline.age.days if age_status is None else age_status
        timeline.age_assignee = timeline.age.days if age_assignee is None else age_assignee
        return timeline
