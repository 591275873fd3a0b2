import threading
import time

import pytest

from jira_timeline.core.cache import ResultCache, fingerprint
from jira_timeline.core.errors import TransportError
from jira_timeline.core.models import CombinedResult, SearchMode


class CountingAggregator:
    def __init__(self, *, fail=False, started=None, gate=None, barrier=None):
        self.calls = 0
        self.fail = fail
        self.started = started
        self.gate = gate
        self.barrier = barrier
        self._lock = threading.Lock()

    def fetch(self, query, fields=None, mode=SearchMode.CONTENTS, expand=None):
        with self._lock:
            self.calls += 1
        if self.started is not None:
            self.started.set()
        if self.barrier is not None:
            self.barrier.wait(timeout=2)
        if self.gate is not None:
            self.gate.wait(timeout=2)
        if self.fail:
            raise TransportError("remote down")
        if mode is SearchMode.COUNT:
            return 7
        return CombinedResult(total=1, issues=({"key": "OBS-1"},), query=query)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_second_call_within_ttl_is_served_from_cache():
    agg = CountingAggregator()
    cache = ResultCache(agg, ttl=60)
    first = cache.get_or_fetch("project = OBS", ["summary"], SearchMode.CONTENTS)
    second = cache.get_or_fetch("project = OBS", ["summary"], SearchMode.CONTENTS)
    assert first == second
    assert agg.calls == 1
    assert cache.hits == 1 and cache.misses == 1


def test_expired_entry_is_refetched_lazily():
    agg = CountingAggregator()
    clock = FakeClock()
    cache = ResultCache(agg, ttl=60, clock=clock)
    cache.get_or_fetch("project = OBS", ["summary"])
    entry = cache.peek(fingerprint("project = OBS", ["summary"], SearchMode.CONTENTS))
    assert entry.created == 1000.0 and entry.expires == 1060.0

    clock.now = 1059.0
    cache.get_or_fetch("project = OBS", ["summary"])
    assert agg.calls == 1

    clock.now = 1060.0
    cache.get_or_fetch("project = OBS", ["summary"])
    assert agg.calls == 2


def test_fingerprint_normalizes_query_and_fields():
    a = fingerprint("project = OBS  AND status = Done", ["summary", "status"], SearchMode.CONTENTS)
    b = fingerprint(" project = OBS AND\nstatus = Done ", ["status", "summary"], SearchMode.CONTENTS)
    assert a == b
    assert a != fingerprint("project = OBS AND status = Done", ["summary", "status"], SearchMode.COUNT)
    assert a != fingerprint("project = OBS AND status = Done", ["summary"], SearchMode.CONTENTS)


def test_count_and_contents_are_cached_separately():
    agg = CountingAggregator()
    cache = ResultCache(agg)
    assert cache.get_or_fetch("project = OBS", None, SearchMode.COUNT) == 7
    assert isinstance(cache.get_or_fetch("project = OBS", None, SearchMode.CONTENTS), CombinedResult)
    assert agg.calls == 2
    assert len(cache) == 2


def test_failed_fetch_is_not_cached():
    agg = CountingAggregator(fail=True)
    cache = ResultCache(agg)
    with pytest.raises(TransportError):
        cache.get_or_fetch("project = OBS", ["summary"])
    assert len(cache) == 0

    agg.fail = False
    cache.get_or_fetch("project = OBS", ["summary"])
    assert agg.calls == 2
    assert len(cache) == 1


def test_flush_drops_all_entries():
    agg = CountingAggregator()
    cache = ResultCache(agg)
    cache.get_or_fetch("project = OBS", ["summary"])
    cache.get_or_fetch("project = DM", ["summary"])
    assert cache.flush() == 2
    assert len(cache) == 0
    cache.get_or_fetch("project = OBS", ["summary"])
    assert agg.calls == 3


def test_concurrent_misses_share_one_fetch():
    started = threading.Event()
    gate = threading.Event()
    agg = CountingAggregator(started=started, gate=gate)
    cache = ResultCache(agg)
    results = []

    def worker():
        results.append(cache.get_or_fetch("project = OBS", ["summary"]))

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(timeout=2)
    second = threading.Thread(target=worker)
    second.start()
    gate.set()
    first.join(timeout=2)
    second.join(timeout=2)

    assert agg.calls == 1
    assert len(results) == 2 and results[0] == results[1]


def test_concurrent_misses_without_single_flight_both_fetch():
    agg = CountingAggregator(barrier=threading.Barrier(2))
    cache = ResultCache(agg, single_flight=False)
    threads = [threading.Thread(target=cache.get_or_fetch, args=("project = OBS", ["summary"])) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=2)
    assert agg.calls == 2
    assert len(cache) == 1


def test_joined_caller_sees_owner_failure():
    started = threading.Event()
    gate = threading.Event()
    agg = CountingAggregator(fail=True, started=started, gate=gate)
    cache = ResultCache(agg)
    errors = []

    def worker():
        try:
            cache.get_or_fetch("project = OBS", ["summary"])
        except TransportError as exc:
            errors.append(exc)

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(timeout=2)
    second = threading.Thread(target=worker)
    second.start()
    time.sleep(0.1)
    gate.set()
    first.join(timeout=2)
    second.join(timeout=2)

    assert agg.calls == 1
    assert len(errors) == 2 and errors[0] is errors[1]
    assert len(cache) == 0


def test_fetch_in_flight_during_flush_is_not_stored():
    started = threading.Event()
    gate = threading.Event()
    agg = CountingAggregator(started=started, gate=gate)
    cache = ResultCache(agg)
    results = []
    worker = threading.Thread(target=lambda: results.append(cache.get_or_fetch("project = OBS", ["summary"])))
    worker.start()
    assert started.wait(timeout=2)
    cache.flush()
    gate.set()
    worker.join(timeout=2)

    assert isinstance(results[0], CombinedResult)
    assert len(cache) == 0
    cache.get_or_fetch("project = OBS", ["summary"])
    assert agg.calls == 2
    assert len(cache) == 1
