"""Jira API client wrapper (REST search pages + single-issue fetch)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests
from jira import JIRA, JIRAError

from .config import JIRA_API_VERSION, REQUEST_TIMEOUT_SECONDS
from .errors import TransportError

logger = logging.getLogger(__name__)


class JiraAPI:
    def __init__(
        self,
        server: str,
        email: str,
        token: str,
        *,
        api_version: str = JIRA_API_VERSION,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.server = server.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": api_version}
        )

    def search_page(
        self,
        jql: str,
        *,
        fields: Sequence[str] | None = None,
        max_results: int = 1,
        start_at: int = 0,
        expand: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of search results as raw JSON.

        The returned mapping carries at least ``total`` and ``issues``.
        """
        session = getattr(self.client, "_session", None)
        if session is None:
            raise TransportError("JIRA session unavailable")
        url = f"{self.server}/rest/api/{self.api_version}/search"
        params: dict[str, Any] = {"jql": jql, "startAt": start_at, "maxResults": max_results}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)
        try:
            resp = session.get(url, params=params, timeout=self.timeout)
        except (JIRAError, requests.RequestException) as exc:
            raise TransportError(f"Search failed at startAt={start_at}: {exc}") from exc
        if resp.status_code >= 400:
            raise TransportError(f"Search failed {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError(f"Search returned a non-JSON body at startAt={start_at}") from exc
        if not isinstance(data, dict) or "total" not in data:
            raise TransportError(f"Unexpected search payload at startAt={start_at}")
        logger.debug("Fetched %s issues at startAt=%s", len(data.get("issues") or []), start_at)
        return data

    def fetch_issue_raw(self, issue_key: str, expand: str = "changelog") -> dict[str, Any]:
        try:
            issue = self.client.issue(issue_key, expand=expand)
        except (JIRAError, requests.RequestException) as exc:  # pragma: no cover - network error path
            raise TransportError(f"Failed to fetch issue {issue_key}: {exc}") from exc
        if hasattr(issue, "raw"):
            return issue.raw
        if isinstance(issue, dict):
            return issue
        raise TransportError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")
