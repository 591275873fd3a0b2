"""Exception taxonomy for fetching, validating and reconstructing issue data."""

from __future__ import annotations


class JiraTimelineError(Exception):
    """Base class for every error raised by jira_timeline."""


class TransportError(JiraTimelineError, RuntimeError):
    """A probe or page request failed or timed out. Never retried here."""


class IntegrityError(JiraTimelineError):
    """Merged or aggregated counts disagree with the advertised total."""


class ValidationError(JiraTimelineError, ValueError):
    """A raw payload does not have a recognized, well-formed shape."""


class HistoryOrderError(ValidationError):
    """A changelog is not ordered newest-first or has unusable timestamps."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key
