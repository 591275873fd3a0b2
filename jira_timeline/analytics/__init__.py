"""Validation, aggregation and timeline reconstruction over fetched issue data."""

from jira_timeline.analytics.dataset import validate
from jira_timeline.analytics.indexes import build_status_index, build_type_index, build_user_index
from jira_timeline.analytics.timeline import TimelineReconstructor, resolve_user_name

__all__ = [
    "TimelineReconstructor",
    "build_status_index",
    "build_type_index",
    "build_user_index",
    "resolve_user_name",
    "validate",
]
