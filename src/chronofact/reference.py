"""Authoritative query path: scan every entity, resolve, test.

This is ground truth. Any disagreement with the indexed path is a defect in
the indexed path.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from chronofact.ledger import FactLedger
from chronofact.resolver import matches, normalize_filter, resolve


class ReferenceQueryEngine:
    """Recomputes every answer from raw history. O(entities x history)."""

    def __init__(self, ledger: FactLedger) -> None:
        self.ledger = ledger

    def query(self, filter: Mapping[str, Any] | None, at: date) -> set[str]:
        normalized = normalize_filter(filter)
        return {
            entity_id
            for entity_id in self.ledger.all_entity_ids()
            if matches(resolve(self.ledger, entity_id, at), normalized)
        }
