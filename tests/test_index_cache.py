"""Tests for the per-date index cache and its state machine."""

from __future__ import annotations

from datetime import date

import pytest

from chronofact.index import IndexCache
from chronofact.ledger import FactLedger
from chronofact.reference import ReferenceQueryEngine

D = date.fromisoformat


@pytest.fixture
def ledger() -> FactLedger:
    ledger = FactLedger()
    ledger.append("alice", {"role": "engineer", "location": "Tokyo"}, "2025-01-01")
    ledger.append("alice", {"role": "manager"}, "2025-01-10")
    ledger.append("bob", {"role": "engineer"}, "2025-01-05")
    return ledger


@pytest.fixture
def cache(ledger: FactLedger) -> IndexCache:
    return IndexCache(ledger)


class TestBuildIndex:
    def test_buckets(self, cache: IndexCache):
        index = cache.build_index(D("2025-01-06"))
        assert index.at == D("2025-01-06")
        assert index.buckets == {
            "role": {"engineer": {"alice", "bob"}},
            "location": {"Tokyo": {"alice"}},
        }
        assert index.entity_ids == frozenset({"alice", "bob"})

    def test_buckets_after_change(self, cache: IndexCache):
        index = cache.build_index(D("2025-01-10"))
        assert index.lookup("role", "manager") == {"alice"}
        assert index.lookup("role", "engineer") == {"bob"}

    def test_entities_without_state_still_known(self, cache: IndexCache):
        index = cache.build_index(D("2025-01-02"))
        assert index.entity_ids == frozenset({"alice", "bob"})
        assert index.lookup("role", "engineer") == {"alice"}

    def test_lookup_missing(self, cache: IndexCache):
        index = cache.build_index(D("2025-01-10"))
        assert index.lookup("salary", 1) == set()
        assert index.lookup("role", "ceo") == set()

    def test_index_equals_resolving_every_entity(self, ledger: FactLedger, cache: IndexCache):
        at = D("2025-01-10")
        index = cache.build_index(at)
        ref = ReferenceQueryEngine(ledger)
        for name, values in index.buckets.items():
            for value, ids in values.items():
                assert ids == ref.query({name: value}, at)

    def test_build_does_not_replace_cache(self, cache: IndexCache):
        cache.build_index(D("2025-01-10"))
        assert cache.state == "absent"


class TestStateMachine:
    def test_starts_absent(self, cache: IndexCache):
        assert cache.state == "absent"
        assert cache.cached_date is None
        assert cache.rebuild_count == 0

    def test_first_access_builds(self, cache: IndexCache):
        cache.get_or_build(D("2025-01-10"))
        assert cache.state == "fresh"
        assert cache.cached_date == D("2025-01-10")
        assert cache.rebuild_count == 1

    def test_same_date_is_a_hit(self, cache: IndexCache):
        first = cache.get_or_build(D("2025-01-10"))
        second = cache.get_or_build(D("2025-01-10"))
        assert first is second
        assert cache.rebuild_count == 1
        assert cache.hits == 1

    def test_other_date_replaces(self, cache: IndexCache):
        cache.get_or_build(D("2025-01-10"))
        cache.get_or_build(D("2025-01-02"))
        assert cache.cached_date == D("2025-01-02")
        assert cache.rebuild_count == 2
        cache.get_or_build(D("2025-01-10"))
        assert cache.rebuild_count == 3

    def test_invalidate_then_rebuild(self, cache: IndexCache):
        cache.get_or_build(D("2025-01-10"))
        cache.invalidate_index()
        assert cache.state == "stale"
        assert cache.cached_date is None
        cache.get_or_build(D("2025-01-10"))
        assert cache.state == "fresh"
        assert cache.rebuild_count == 2

    def test_invalidate_is_idempotent(self, cache: IndexCache):
        cache.invalidate_index()
        assert cache.state == "absent"
        cache.get_or_build(D("2025-01-10"))
        cache.invalidate_index()
        cache.invalidate_index()
        assert cache.state == "stale"

    def test_writes_do_not_change_state(self, ledger: FactLedger, cache: IndexCache):
        index = cache.get_or_build(D("2025-01-10"))
        ledger.append("carol", {"role": "manager"}, "2025-01-01")
        assert cache.state == "fresh"
        assert cache.get_or_build(D("2025-01-10")) is index
        assert "carol" not in index.entity_ids


class TestAutoInvalidate:
    def test_rebuilds_after_write(self, ledger: FactLedger):
        cache = IndexCache(ledger, auto_invalidate=True)
        cache.get_or_build(D("2025-01-10"))
        ledger.append("carol", {"role": "manager"}, "2025-01-01")
        index = cache.get_or_build(D("2025-01-10"))
        assert cache.rebuild_count == 2
        assert index.lookup("role", "manager") == {"alice", "carol"}

    def test_hit_without_write(self, ledger: FactLedger):
        cache = IndexCache(ledger, auto_invalidate=True)
        cache.get_or_build(D("2025-01-10"))
        cache.get_or_build(D("2025-01-10"))
        assert cache.rebuild_count == 1
