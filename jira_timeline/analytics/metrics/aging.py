"""Aging helpers (pure functions)."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytz

from jira_timeline.core.config import TIMEZONE, WORKDAY_SECONDS


def normalize_timestamp(value, target_tz=None) -> pd.Timestamp | None:
    """Normalize a timestamp-like value into ``target_tz`` (UTC by default).

    Returns None when the input cannot be parsed.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    try:
        if getattr(ts, "tzinfo", None) is None:
            ts = ts.tz_localize(pytz.UTC)
        return ts.tz_convert(target_tz or pytz.timezone(TIMEZONE))
    except (TypeError, ValueError):
        return None


def now_utc() -> datetime:
    return datetime.now(tz=pytz.UTC)


def elapsed_days(value, now: datetime | None = None) -> float:
    """Days between ``value`` and ``now``, rounded to two decimals.

    Unparseable input yields 0.0.
    """
    ts = normalize_timestamp(value)
    if ts is None:
        return 0.0
    ref = normalize_timestamp(now) if now is not None else pd.Timestamp(now_utc())
    return round((ref - ts).total_seconds() / 86400.0, 2)


def seconds_to_workdays(seconds: float | int | None) -> float:
    """Convert logged/estimated seconds into 8-hour workdays (two decimals)."""
    if not seconds:
        return 0.0
    return round(float(seconds) / WORKDAY_SECONDS, 2)
