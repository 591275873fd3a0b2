"""Paged search aggregation: probe for the total, fan out pages, merge in offset order."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any

from .config import FETCH_MAX_WORKERS, PAGE_SIZE, PAGE_TIMEOUT_SECONDS, TimelineSettings
from .errors import IntegrityError, TransportError
from .jira_client import JiraAPI
from .models import CombinedResult, SearchMode

logger = logging.getLogger(__name__)


def _advertised_total(page: dict[str, Any]) -> int:
    try:
        return int(page.get("total") or 0)
    except (TypeError, ValueError) as exc:
        raise TransportError(f"Non-numeric total in search page: {page.get('total')!r}") from exc


class PagedSearchAggregator:
    """Combine every page of a search into one result.

    CONTENTS mode probes with a single-record page to learn ``total``, then
    submits all ``ceil(total / page_size)`` page requests to a thread pool
    before waiting on any of them. Pages are merged by offset, so arrival
    order never leaks into the result. The first failing page aborts the
    whole fetch.
    """

    def __init__(
        self,
        api: JiraAPI,
        *,
        page_size: int = PAGE_SIZE,
        max_workers: int = FETCH_MAX_WORKERS,
        page_timeout: float = PAGE_TIMEOUT_SECONDS,
    ):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.api = api
        self.page_size = page_size
        self.max_workers = max(1, max_workers)
        self.page_timeout = page_timeout

    @classmethod
    def from_settings(cls, api: JiraAPI, settings: TimelineSettings) -> PagedSearchAggregator:
        return cls(
            api,
            page_size=settings.page_size,
            max_workers=settings.max_workers,
            page_timeout=settings.page_timeout,
        )

    def fetch(
        self,
        query: str,
        fields: Sequence[str] | None = None,
        mode: SearchMode = SearchMode.CONTENTS,
        expand: Sequence[str] | None = None,
    ) -> CombinedResult | int:
        if mode is SearchMode.COUNT:
            return self.count(query)
        if mode is SearchMode.CONTENTS:
            return self.contents(query, fields, expand)
        raise ValueError(f"Unknown search mode: {mode!r}")

    def count(self, query: str) -> int:
        probe = self.api.search_page(query, fields=["key"], max_results=1, start_at=0)
        total = _advertised_total(probe)
        logger.debug("Count probe for %r: %s", query, total)
        return total

    def contents(
        self,
        query: str,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
    ) -> CombinedResult:
        probe = self.api.search_page(query, fields=fields, max_results=1, start_at=0, expand=expand)
        total = _advertised_total(probe)
        if total == 0:
            logger.debug("No matches for %r; skipping fan-out", query)
            return CombinedResult(total=0, issues=(), query=query)

        page_count = math.ceil(total / self.page_size)
        logger.info("Fetching %s issues in %s pages for %r", total, page_count, query)
        pages = self._fetch_pages(query, fields, expand, page_count)

        merged = [issue for page in pages for issue in page.get("issues") or []]
        advertised = _advertised_total(pages[0])
        if len(merged) != advertised:
            raise IntegrityError(
                f"Merged {len(merged)} issues but first page advertised {advertised} for {query!r}"
            )
        return CombinedResult(total=advertised, issues=tuple(merged), query=query)

    def _fetch_pages(
        self,
        query: str,
        fields: Sequence[str] | None,
        expand: Sequence[str] | None,
        page_count: int,
    ) -> list[dict[str, Any]]:
        workers = min(self.max_workers, page_count)
        # Each wave of `workers` pages gets one page_timeout
        deadline = self.page_timeout * math.ceil(page_count / workers)
        pages: list[dict[str, Any] | None] = [None] * page_count
        pool = ThreadPoolExecutor(max_workers=workers)
        try:
            futures: dict[Future, int] = {
                pool.submit(
                    self.api.search_page,
                    query,
                    fields=fields,
                    max_results=self.page_size,
                    start_at=idx * self.page_size,
                    expand=expand,
                ): idx
                for idx in range(page_count)
            }
            try:
                for fut in as_completed(futures, timeout=deadline):
                    idx = futures[fut]
                    try:
                        pages[idx] = fut.result()
                    except Exception as exc:
                        logger.warning("Page %s of %s failed for %r: %s", idx + 1, page_count, query, exc)
                        raise
            except TimeoutError as exc:
                raise TransportError(
                    f"Timed out after {deadline:.0f}s waiting for {page_count} pages of {query!r}"
                ) from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return pages  # type: ignore[return-value]
