"""Per-date inverted index over resolved snapshots.

The index is a cached projection of the ledger, built for exactly one date:

    absent ──build──▶ fresh(D) ──same date──▶ fresh(D)          (hit)
                      fresh(D1) ──other date──▶ fresh(D2)        (rebuild)
                      fresh(D) ──invalidate_index()──▶ stale
                      stale ──next access──▶ fresh(D)            (rebuild)

Writes to the ledger do NOT move the cache between states. After a write
whose effective date could affect a cached date, the caller must call
`invalidate_index()`; until then the fast path may return pre-write
results. With `auto_invalidate=True` the cache compares the ledger version
recorded at build time and rebuilds on mismatch instead.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from chronofact.ledger import FactLedger
from chronofact.resolver import resolve

logger = logging.getLogger(__name__)

CacheState = Literal["absent", "fresh", "stale"]


@dataclass
class QueryIndex:
    """attribute -> value -> entity ids, valid only for `at`."""

    at: date
    buckets: dict[str, dict[Any, set[str]]] = field(default_factory=dict)
    entity_ids: frozenset[str] = frozenset()
    ledger_version: int = 0

    def lookup(self, attribute: str, value: Any) -> set[str]:
        return self.buckets.get(attribute, {}).get(value, set())


class IndexCache:
    """Holds at most one QueryIndex; rebuilt wholesale, never patched."""

    def __init__(self, ledger: FactLedger, *, auto_invalidate: bool = False) -> None:
        self.ledger = ledger
        self.auto_invalidate = auto_invalidate
        self._index: QueryIndex | None = None
        self._stale = False
        self.rebuild_count = 0
        self.hits = 0

    @property
    def state(self) -> CacheState:
        if self._index is None:
            return "stale" if self._stale else "absent"
        return "fresh"

    @property
    def cached_date(self) -> date | None:
        return self._index.at if self._index is not None else None

    def build_index(self, at: date) -> QueryIndex:
        """Resolve every known entity at `at` and bucket its attribute values."""
        buckets: dict[str, dict[Any, set[str]]] = defaultdict(lambda: defaultdict(set))
        entity_ids = self.ledger.all_entity_ids()
        for entity_id in entity_ids:
            for name, value in resolve(self.ledger, entity_id, at).items():
                buckets[name][value].add(entity_id)

        index = QueryIndex(
            at=at,
            buckets={name: dict(values) for name, values in buckets.items()},
            entity_ids=entity_ids,
            ledger_version=self.ledger.version,
        )
        self.rebuild_count += 1
        logger.debug(
            "Built index @ %s: %d entities, %d attributes (rebuild #%d)",
            at,
            len(entity_ids),
            len(index.buckets),
            self.rebuild_count,
        )
        return index

    def get_or_build(self, at: date) -> QueryIndex:
        index = self._index
        if index is not None and index.at == at and not self._is_outdated(index):
            self.hits += 1
            return index

        index = self.build_index(at)
        self._index = index
        self._stale = False
        return index

    def invalidate_index(self) -> None:
        """Discard the cached index. Idempotent."""
        if self._index is not None:
            logger.info("Invalidated index @ %s", self._index.at)
            self._index = None
            self._stale = True

    def _is_outdated(self, index: QueryIndex) -> bool:
        return self.auto_invalidate and index.ledger_version != self.ledger.version
