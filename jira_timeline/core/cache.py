"""Time-bounded result cache in front of the paged search aggregator."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from dataclasses import dataclass

from .aggregator import PagedSearchAggregator
from .config import CACHE_TTL_SECONDS
from .models import CombinedResult, SearchMode

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CacheEntry:
    value: CombinedResult | int
    created: float
    expires: float

    def is_live(self, now: float) -> bool:
        return now < self.expires


def normalize_query(query: str) -> str:
    return " ".join(str(query).split())


def fingerprint(
    query: str,
    fields: Sequence[str] | None,
    mode: SearchMode,
    expand: Sequence[str] | None = None,
) -> str:
    payload = {
        "query": normalize_query(query),
        "fields": sorted(set(fields or ())),
        "mode": mode.value,
        "expand": sorted(set(expand or ())),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()


class ResultCache:
    """Memoize aggregator results per (query, fields, mode) fingerprint.

    Staleness is only checked when a fingerprint is requested again; there is
    no background sweep. Failed fetches leave the cache untouched.

    With ``single_flight`` enabled, concurrent misses on one fingerprint
    share a single in-flight fetch. Disabled, overlapping callers each fetch
    and the last write wins.
    """

    def __init__(
        self,
        aggregator: PagedSearchAggregator,
        *,
        ttl: float = CACHE_TTL_SECONDS,
        single_flight: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.aggregator = aggregator
        self.ttl = float(ttl)
        self.single_flight = single_flight
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def flush(self) -> int:
        """Drop every entry. Returns how many were removed.

        Fetches still in flight complete for their callers but are not stored.
        """
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info("Result cache flushed (%s entries)", removed)
        return removed

    def get_or_fetch(
        self,
        query: str,
        fields: Sequence[str] | None = None,
        mode: SearchMode = SearchMode.CONTENTS,
        expand: Sequence[str] | None = None,
    ) -> CombinedResult | int:
        key = fingerprint(query, fields, mode, expand)
        entry = self._entries.get(key)
        if entry is not None and entry.is_live(self._clock()):
            self.hits += 1
            logger.debug("Cache hit %s for %r", key[:12], query)
            return entry.value
        self.misses += 1

        if not self.single_flight:
            return self._fetch_and_store(key, query, fields, mode, expand)

        with self._lock:
            pending = self._pending.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._pending[key] = pending
        if not owner:
            logger.debug("Joining in-flight fetch %s for %r", key[:12], query)
            return pending.result()

        try:
            value = self._fetch_and_store(key, query, fields, mode, expand)
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(value)
            return value
        finally:
            with self._lock:
                self._pending.pop(key, None)

    def _fetch_and_store(self, key, query, fields, mode, expand) -> CombinedResult | int:
        generation = self._generation
        value = self.aggregator.fetch(query, fields, mode, expand)
        now = self._clock()
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping %s fetched before a flush", key[:12])
                return value
            self._entries[key] = CacheEntry(value=value, created=now, expires=now + self.ttl)
        logger.debug("Cached %s for %r (ttl=%ss)", key[:12], query, self.ttl)
        return value
