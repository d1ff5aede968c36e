"""Unit tests for the read-only candidate cache."""

import threading
from unittest.mock import patch

import pytest

from concept_linking.cache import CandidateCache
from concept_linking.errors import QueryExecutionError
from concept_linking.types import Handle


def make_handles():
    return [
        Handle(iri="http://example.org/a", label="A"),
        Handle(iri="http://example.org/b", label="B"),
    ]


class TestCandidateCache:
    """Tests for cache hits, misses and isolation."""

    def test_miss_then_hit(self):
        cache = CandidateCache()
        calls = []

        def loader():
            calls.append(1)
            return make_handles()

        first = cache.get_or_load("kb", "key", loader)
        second = cache.get_or_load("kb", "key", loader)

        assert len(calls) == 1
        assert [h.iri for h in first] == [h.iri for h in second]
        assert cache.hits == 1
        assert cache.misses == 1

    def test_keys_are_scoped_per_kb(self):
        cache = CandidateCache()
        cache.get_or_load("kb1", "key", make_handles)
        calls = []
        cache.get_or_load("kb2", "key", lambda: calls.append(1) or [])
        assert calls == [1]

    def test_returned_handles_are_copies(self):
        cache = CandidateCache()
        first = cache.get_or_load("kb", "key", make_handles)
        first[0].rank = 5
        first[0].label = "changed"

        second = cache.get_or_load("kb", "key", make_handles)
        assert second[0].rank == 0
        assert second[0].label == "A"

    def test_loader_result_is_copied_before_storing(self):
        cache = CandidateCache()
        original = make_handles()
        cache.get_or_load("kb", "key", lambda: original)
        original[0].rank = 9
        assert cache.get_or_load("kb", "key", make_handles)[0].rank == 0

    def test_failed_load_is_not_stored(self):
        cache = CandidateCache()

        def failing():
            raise QueryExecutionError("endpoint down")

        with pytest.raises(QueryExecutionError):
            cache.get_or_load("kb", "key", failing)
        assert len(cache) == 0

        # The next request retries the backend
        result = cache.get_or_load("kb", "key", make_handles)
        assert len(result) == 2

    def test_lru_eviction(self):
        cache = CandidateCache(max_entries=2)
        cache.get_or_load("kb", "a", make_handles)
        cache.get_or_load("kb", "b", make_handles)
        cache.get_or_load("kb", "a", make_handles)  # a is now most recent
        cache.get_or_load("kb", "c", make_handles)

        calls = []
        cache.get_or_load("kb", "a", lambda: calls.append("a") or [])
        cache.get_or_load("kb", "b", lambda: calls.append("b") or [])
        assert calls == ["b"]

    def test_ttl_expiry(self):
        cache = CandidateCache(ttl_seconds=10)
        with patch("concept_linking.cache.time.monotonic", return_value=100.0):
            cache.get_or_load("kb", "key", make_handles)
        calls = []
        with patch("concept_linking.cache.time.monotonic", return_value=105.0):
            cache.get_or_load("kb", "key", lambda: calls.append(1) or [])
        assert calls == []
        with patch("concept_linking.cache.time.monotonic", return_value=111.0):
            cache.get_or_load("kb", "key", lambda: calls.append(1) or [])
        assert calls == [1]

    def test_invalidate(self):
        cache = CandidateCache()
        cache.get_or_load("kb1", "a", make_handles)
        cache.get_or_load("kb1", "b", make_handles)
        cache.get_or_load("kb2", "a", make_handles)
        assert cache.invalidate("kb1") == 2
        assert len(cache) == 1

    def test_clear(self):
        cache = CandidateCache()
        cache.get_or_load("kb", "a", make_handles)
        cache.clear()
        assert len(cache) == 0


class TestCandidateCacheConcurrency:
    def test_concurrent_identical_queries_load_once(self):
        cache = CandidateCache()
        release = threading.Event()
        started = threading.Event()
        calls = []

        def slow_loader():
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return make_handles()

        results = []

        def worker():
            results.append(cache.get_or_load("kb", "key", slow_loader))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        assert started.wait(timeout=5)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert len(results) == 8
        assert all([h.iri for h in r] == [h.iri for h in results[0]] for r in results)

    def test_failed_loads_do_not_accumulate_key_locks(self):
        cache = CandidateCache(max_entries=10)

        def failing():
            raise QueryExecutionError("endpoint down")

        for i in range(50):
            with pytest.raises(QueryExecutionError):
                cache.get_or_load("kb", f"query-{i}", failing)

        assert len(cache) == 0
        assert len(cache._key_locks) == 0

    def test_key_locks_bounded_by_entries(self):
        cache = CandidateCache(max_entries=3)
        for i in range(20):
            cache.get_or_load("kb", f"query-{i}", make_handles)
        assert len(cache._key_locks) <= 3
