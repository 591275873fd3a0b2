from datetime import UTC, datetime

from jira_timeline.analytics.dataset import validate
from jira_timeline.analytics.metrics.aging import elapsed_days, seconds_to_workdays
from jira_timeline.analytics.summary import (
    TIMELINE_COLUMNS,
    index_to_dataframe,
    summarize_by_type,
    timelines_to_dataframe,
)
from jira_timeline.analytics.timeline import TimelineReconstructor


def _sample_issues():
    def issue(key, itype, status, progress=None):
        fields = {
            "summary": f"Issue {key}",
            "created": "2024-09-01T00:00:00.000+0000",
            "status": {"name": status},
            "issuetype": {"name": itype},
            "assignee": {"accountId": "acc-1", "displayName": "Alice"},
        }
        if progress:
            fields["aggregateprogress"] = progress
        return {"key": key, "fields": fields}

    return [
        issue("OBS-1", "Story", "Done", {"progress": 28800, "total": 57600}),
        issue("OBS-2", "Story", "In Progress", {"progress": 14400, "total": 28800}),
        issue("OBS-3", "Epic", "In Progress", {"progress": 99999, "total": 99999}),
        issue("OBS-4", "Bug", "Done"),
    ]


def test_summarize_by_type_rolls_up_story_progress():
    summary = summarize_by_type(validate(_sample_issues()))
    assert summary["Story"].count == 2
    assert summary["Story"].issues == ["OBS-1", "OBS-2"]
    assert summary["Story"].progress_seconds == 43200
    assert summary["Story"].total_days == 3.0
    # Epics are counted but their progress is not summed
    assert summary["Epic"].count == 1 and summary["Epic"].total_seconds == 0
    assert summary["Bug"].progress_days == 0.0


def test_timelines_to_dataframe():
    report = TimelineReconstructor(now=datetime(2024, 9, 11, tzinfo=UTC)).build(validate(_sample_issues()))
    df = timelines_to_dataframe(report)
    assert list(df.columns) == list(TIMELINE_COLUMNS)
    assert len(df) == 4
    assert df.loc[0, "key"] == "OBS-1"
    assert df.loc[0, "age_days"] == 10.0
    assert df.loc[0, "msg"] != ""


def test_index_to_dataframe_sorts_largest_first():
    report = TimelineReconstructor().build(validate(_sample_issues()))
    status_df = index_to_dataframe(report.status_index, key_name="status")
    assert status_df["status"].tolist() == ["Done", "In Progress"]
    assert status_df["count"].sum() == 4
    users_df = index_to_dataframe(report.user_index)
    assert users_df.loc[0, "assignee_list"] == 4
    assert index_to_dataframe({}).empty


def test_elapsed_days_and_workdays():
    now = datetime(2024, 9, 3, 12, 0, tzinfo=UTC)
    assert elapsed_days("2024-09-01T00:00:00.000+0000", now) == 2.5
    assert elapsed_days(None, now) == 0.0
    assert elapsed_days("not a date", now) == 0.0
    assert seconds_to_workdays(28800) == 1.0
    assert seconds_to_workdays(None) == 0.0
