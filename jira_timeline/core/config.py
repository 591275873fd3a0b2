"""Central configuration: paging, caching, timeouts and field projections."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# Jira Connection Settings
# =============================================================================
# REST API version used for the paged search endpoint. v2 still exposes
# startAt/total on /search, which the probe + fan-out protocol relies on.
JIRA_API_VERSION = "2"
TIMEZONE = "UTC"

# =============================================================================
# Paged Search
# =============================================================================
PAGE_SIZE: int = 99
FETCH_MAX_WORKERS: int = 8
REQUEST_TIMEOUT_SECONDS: float = 30.0  # per HTTP request
PAGE_TIMEOUT_SECONDS: float = 60.0  # per page future in the aggregator

# Tag marking a payload as merged by the paged search aggregator
COMPILED_MARKER = "Compiled by jira_timeline PagedSearchAggregator"

# =============================================================================
# Result Cache
# =============================================================================
CACHE_TTL_SECONDS: float = 600.0

# =============================================================================
# Changelog Field Identifiers
# =============================================================================
STATUS_FIELD_ID = "status"
ASSIGNEE_FIELD_ID = "assignee"

# Fields the timeline pass needs; `summary`, `status`, `issuetype`,
# `assignee` and `created` are read for every issue.
TIMELINE_FETCH_FIELDS: tuple[str, ...] = (
    "summary",
    "status",
    "issuetype",
    "assignee",
    "created",
    "aggregateprogress",
)
TIMELINE_EXPAND: tuple[str, ...] = ("changelog",)

# One reporting workday, used for aggregate progress estimates
WORKDAY_SECONDS: int = 28800

NO_HISTORY_MESSAGE = "No update history present"


@dataclass(slots=True, frozen=True)
class TimelineSettings:
    page_size: int = PAGE_SIZE
    cache_ttl: float = CACHE_TTL_SECONDS
    max_workers: int = FETCH_MAX_WORKERS
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    page_timeout: float = PAGE_TIMEOUT_SECONDS


SETTINGS = TimelineSettings()

# Environment variable -> (settings attribute, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "JIRA_TIMELINE_PAGE_SIZE": ("page_size", int),
    "JIRA_TIMELINE_CACHE_TTL": ("cache_ttl", float),
    "JIRA_TIMELINE_MAX_WORKERS": ("max_workers", int),
    "JIRA_TIMELINE_REQUEST_TIMEOUT": ("request_timeout", float),
    "JIRA_TIMELINE_PAGE_TIMEOUT": ("page_timeout", float),
}


def _coerce(name: str, raw, convert: type, fallback):
    try:
        value = convert(raw)
    except (TypeError, ValueError):
        logging.getLogger(__name__).warning("Ignoring invalid %s=%r; using %s", name, raw, fallback)
        return fallback
    if value <= 0:
        logging.getLogger(__name__).warning("Ignoring non-positive %s=%r; using %s", name, raw, fallback)
        return fallback
    return value


def load_settings(
    base_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TimelineSettings:
    """Build settings from defaults, an optional ``settings.yaml`` and the environment.

    Parameters
    ----------
    base_path : str | Path | None
        Directory holding ``settings.yaml``. Defaults to the package root.
    environ : Mapping[str, str] | None
        Environment mapping; ``os.environ`` when omitted.

    Returns
    -------
    TimelineSettings
        Effective settings. Environment values win over the YAML file.
    """
    env = os.environ if environ is None else environ
    settings = SETTINGS
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "settings.yaml"
    if yaml_path.exists():
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Ignoring unreadable %s: %s", yaml_path, exc)
            data = {}
        section = data.get("timeline", data) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            section = {}
        updates = {}
        for attr, convert in _ENV_OVERRIDES.values():
            if attr in section:
                updates[attr] = _coerce(attr, section[attr], convert, getattr(settings, attr))
        settings = replace(settings, **updates)

    updates = {}
    for env_name, (attr, convert) in _ENV_OVERRIDES.items():
        if env_name in env:
            updates[attr] = _coerce(env_name, env[env_name], convert, getattr(settings, attr))
    return replace(settings, **updates)
