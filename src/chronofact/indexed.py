"""Fast query path over the cached per-date index."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from chronofact.index import IndexCache
from chronofact.resolver import normalize_filter


class IndexedQueryEngine:
    """Answers filters by bucket lookups instead of resolving histories.

    For a fresh index this returns exactly what ReferenceQueryEngine.query
    returns for the same (filter, date).
    """

    def __init__(self, cache: IndexCache) -> None:
        self.cache = cache

    def query_fast(self, filter: Mapping[str, Any] | None, at: date) -> set[str]:
        normalized = normalize_filter(filter)
        index = self.cache.get_or_build(at)
        if not normalized:
            return set(index.entity_ids)

        result: set[str] | None = None
        for name, allowed in normalized.items():
            candidates: set[str] = set()
            for value in allowed:
                candidates |= index.lookup(name, value)
            result = candidates if result is None else result & candidates
            if not result:
                break
        return result or set()
