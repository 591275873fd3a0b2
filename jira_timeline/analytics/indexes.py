"""Status, type and user aggregations over a validated dataset."""

from __future__ import annotations

from collections.abc import Sequence

from jira_timeline.core.errors import IntegrityError
from jira_timeline.core.models import IssueRecord, StatusStats, TypeStats, UserRef, UserStats

UNASSIGNED = "Unassigned"


def _check_total(name: str, counted: int, expected: int) -> None:
    if counted != expected:
        raise IntegrityError(f"{name} total count ({counted}) != issue count ({expected})")


def _expected(issues: Sequence[IssueRecord], expected: int | None) -> int:
    return len(issues) if expected is None else expected


def build_status_index(
    issues: Sequence[IssueRecord], expected: int | None = None
) -> dict[str, StatusStats]:
    """Count issues per status name.

    ``expected`` is the advertised issue total; it defaults to
    ``len(issues)``.
    """
    index: dict[str, StatusStats] = {}
    for issue in issues:
        index.setdefault(issue.status or "Unknown", StatusStats()).count += 1
    _check_total("status index", sum(s.count for s in index.values()), _expected(issues, expected))
    return index


def build_type_index(issues: Sequence[IssueRecord], expected: int | None = None) -> dict[str, TypeStats]:
    index: dict[str, TypeStats] = {}
    for issue in issues:
        name = issue.issuetype or "Unknown"
        stats = index.get(name)
        if stats is None:
            stats = index[name] = TypeStats(id=issue.issuetype_id, icon_url=issue.issuetype_icon_url)
        stats.count += 1
    _check_total("type index", sum(t.count for t in index.values()), _expected(issues, expected))
    return index


def _remember(user_ids: dict[str, str], user: UserRef | None) -> None:
    if user is None or not user.account_id or user.display_name is None:
        return
    user_ids.setdefault(user.account_id, user.display_name)


def build_user_index(
    issues: Sequence[IssueRecord],
    has_history: bool,
) -> tuple[dict[str, UserStats], dict[str, str]]:
    """Credit assignees with owned issues and changelog authors with edits.

    Returns the index keyed by display name plus the account id -> display
    name map collected on the way (first sighting wins). An author editing
    the same issue several times adds one entry to ``change_list`` but one
    ``change_count`` per history entry.
    """
    users: dict[str, UserStats] = {}
    user_ids: dict[str, str] = {}
    for issue in issues:
        assignee = issue.assignee
        name = (assignee.display_name if assignee else None) or UNASSIGNED
        stats = users.get(name)
        if stats is None:
            stats = users[name] = UserStats(account_id=assignee.account_id if assignee else None)
        stats.assignee_count += 1
        stats.assignee_list.append(issue.key)
        _remember(user_ids, assignee)

        if not has_history:
            continue
        for entry in issue.histories or ():
            author = entry.author
            author_name = (author.display_name if author else None) or "Unknown"
            editor = users.get(author_name)
            if editor is None:
                editor = users[author_name] = UserStats(account_id=author.account_id if author else None)
            editor.change_count += 1
            if issue.key not in editor.change_list:
                editor.change_list.append(issue.key)
            _remember(user_ids, author)
    return users, user_ids
