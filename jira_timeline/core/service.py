"""TimelineService: orchestrates cached fetching, validation and timeline reconstruction."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from jira_timeline.analytics.dataset import validate
from jira_timeline.analytics.timeline import TimelineReconstructor

from .aggregator import PagedSearchAggregator
from .cache import ResultCache
from .config import TIMELINE_EXPAND, TIMELINE_FETCH_FIELDS, TimelineSettings, load_settings
from .jira_client import JiraAPI
from .models import CombinedResult, SearchMode, TimelineReport, ValidatedDataset

DEFAULT_FIELDS: Sequence[str] = tuple(TIMELINE_FETCH_FIELDS)
ProgressCallback = Callable[[str, int | None, int | None], None]

logger = logging.getLogger(__name__)


class TimelineService:
    def __init__(
        self,
        api: JiraAPI,
        *,
        settings: TimelineSettings | None = None,
        cache: ResultCache | None = None,
        reconstructor: TimelineReconstructor | None = None,
    ):
        self.api = api
        self.settings = settings or load_settings()
        if cache is None:
            aggregator = PagedSearchAggregator.from_settings(api, self.settings)
            cache = ResultCache(aggregator, ttl=self.settings.cache_ttl)
        self.cache = cache
        self.reconstructor = reconstructor or TimelineReconstructor()

    # ------------------ Fetch Methods ------------------
    def count(self, jql: str) -> int:
        return self.cache.get_or_fetch(jql, None, SearchMode.COUNT)

    def contents(
        self,
        jql: str,
        fields: Sequence[str] = DEFAULT_FIELDS,
        expand: Sequence[str] | None = TIMELINE_EXPAND,
    ) -> CombinedResult:
        return self.cache.get_or_fetch(jql, list(fields), SearchMode.CONTENTS, expand)

    def dataset(self, jql: str, *, progress: ProgressCallback | None = None) -> ValidatedDataset:
        if progress:
            progress(f"Querying issues for {jql}", None, None)
        combined = self.contents(jql)
        if progress:
            progress("Validating issue data", None, combined.total)
        return validate(combined)

    def report(self, jql: str, *, progress: ProgressCallback | None = None) -> TimelineReport:
        """Fetch (through the cache), validate and reconstruct timelines for ``jql``.

        A query matching no issues raises ``ValidationError("Missing fields data")``;
        use ``count`` first when an empty result is expected.
        """
        data = self.dataset(jql, progress=progress)
        if progress:
            progress("Reconstructing issue timelines", 0, len(data))
        report = self.reconstructor.build(data)
        if progress:
            progress("Reconstructing issue timelines", len(data), len(data))
        logger.info("Report for %r: %s issues, history=%s", jql, len(data), data.has_history)
        return report

    def issue_report(self, issue_key: str) -> TimelineReport:
        """Timeline for a single issue fetched directly (never cached)."""
        raw = self.api.fetch_issue_raw(issue_key)
        return self.reconstructor.build(validate([raw]))

    def flush_cache(self) -> int:
        return self.cache.flush()
