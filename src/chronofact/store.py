"""Temporal fact store — dated attribute patches + two query paths.

The ledger is the only source of truth. `query` always recomputes from raw
history; `query_fast` answers from a per-date index cached on first use.

Index freshness is the caller's job:

    store.set("alice", {"role": "manager"}, "2025-01-10")
    store.query_fast({"role": "manager"}, "2025-01-15")   # may be pre-write
    store.invalidate_index()
    store.query_fast({"role": "manager"}, "2025-01-15")   # reflects the write

Callers that can tolerate a stale answer may skip invalidation to save the
rebuild. Set `StoreConfig.auto_invalidate` to have the cache notice ledger
writes on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from chronofact.config import StoreConfig
from chronofact.dates import parse_date
from chronofact.guard import ReadWriteGuard
from chronofact.index import CacheState, IndexCache
from chronofact.indexed import IndexedQueryEngine
from chronofact.ledger import AttributePatch, FactLedger, LedgerStats
from chronofact.reference import ReferenceQueryEngine
from chronofact.resolver import TimelinePoint, matches, normalize_filter, resolve, timeline

logger = logging.getLogger(__name__)

DateArg = str | date | datetime | None


@dataclass
class StoreStats:
    """Ledger summary plus index cache state."""

    ledger: LedgerStats
    index_state: CacheState
    index_date: date | None
    rebuild_count: int
    index_hits: int


class TemporalStore:
    """One ledger, one index cache, one guard. Instances share nothing."""

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or StoreConfig()
        self._today = today
        self._guard = ReadWriteGuard()
        self.ledger = FactLedger()
        self.cache = IndexCache(self.ledger, auto_invalidate=self.config.auto_invalidate)
        self.reference = ReferenceQueryEngine(self.ledger)
        self.indexed = IndexedQueryEngine(self.cache)

    # ── Writes ────────────────────────────────────────────────

    def set(
        self,
        entity_id: str,
        attributes: Mapping[str, Any],
        effective_date: str | date | datetime,
    ) -> AttributePatch:
        """Append a partial update. Does not invalidate the index."""
        with self._guard.write():
            patch = self.ledger.append(entity_id, attributes, effective_date)
        logger.info(
            "Recorded %s @ %s: %s",
            entity_id,
            patch.effective_date,
            ", ".join(sorted(patch.attributes)) or "(no attributes)",
        )
        return patch

    def invalidate_index(self) -> None:
        with self._guard.write():
            self.cache.invalidate_index()

    def reset(self) -> None:
        """Drop every patch and the cached index."""
        with self._guard.write():
            self.ledger.clear()
            self.cache.invalidate_index()
        logger.info("Store reset")

    # ── Queries ───────────────────────────────────────────────

    def query(self, filter: Mapping[str, Any] | None = None, at: DateArg = None) -> list[str]:
        """Authoritative query: resolve every entity from raw history."""
        when = self._resolve_date(at)
        with self._guard.read():
            return sorted(self.reference.query(filter, when))

    def query_fast(
        self, filter: Mapping[str, Any] | None = None, at: DateArg = None
    ) -> list[str]:
        """Indexed query. Matches `query` whenever the index is fresh."""
        when = self._resolve_date(at)
        # A miss rebuilds the cache, so this takes the write side.
        with self._guard.write():
            return sorted(self.indexed.query_fast(filter, when))

    def snapshot(self, entity_id: str, at: DateArg = None) -> dict[str, Any]:
        when = self._resolve_date(at)
        with self._guard.read():
            return resolve(self.ledger, entity_id, when)

    def history(
        self, entity_id: str, since: DateArg = None, until: DateArg = None
    ) -> tuple[AttributePatch, ...]:
        """Patches in effective order, optionally limited to [since, until]."""
        start = parse_date(since) if since is not None else None
        end = parse_date(until) if until is not None else None
        with self._guard.read():
            patches = self.ledger.history_of(entity_id)
        return tuple(
            p
            for p in patches
            if (start is None or p.effective_date >= start)
            and (end is None or p.effective_date <= end)
        )

    def has_state(
        self, entity_id: str, filter: Mapping[str, Any], at: DateArg = None
    ) -> bool:
        """Whether the entity's snapshot at `at` satisfies `filter`."""
        normalized = normalize_filter(filter)
        return matches(self.snapshot(entity_id, at), normalized)

    def timeline(self, entity_id: str) -> list[TimelinePoint]:
        with self._guard.read():
            return timeline(self.ledger, entity_id)

    def patches(self) -> list[AttributePatch]:
        """Every patch in insertion order."""
        with self._guard.read():
            return list(self.ledger.patches())

    def entity_ids(self) -> list[str]:
        with self._guard.read():
            return sorted(self.ledger.all_entity_ids())

    def stats(self) -> StoreStats:
        with self._guard.read():
            return StoreStats(
                ledger=self.ledger.stats(),
                index_state=self.cache.state,
                index_date=self.cache.cached_date,
                rebuild_count=self.cache.rebuild_count,
                index_hits=self.cache.hits,
            )

    def _resolve_date(self, at: DateArg) -> date:
        return self._today() if at is None else parse_date(at)
