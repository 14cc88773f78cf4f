"""Append-only ledger of dated, partial attribute updates.

Each entity keeps its own history ordered by (effective_date, sequence).
Patches are immutable once recorded and are never deleted. The ledger knows
nothing about indexes; a write never touches a cached projection.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any

from chronofact.dates import parse_date
from chronofact.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributePatch:
    """A partial update to one entity, effective from a given date."""

    entity: str
    attributes: Mapping[str, Any]
    effective_date: date
    sequence: int

    @property
    def order_key(self) -> tuple[date, int]:
        return (self.effective_date, self.sequence)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "attributes": dict(self.attributes),
            "effective_date": self.effective_date.isoformat(),
        }


@dataclass
class LedgerStats:
    """Summary of what the ledger holds."""

    total_patches: int = 0
    entity_count: int = 0
    oldest: date | None = None
    newest: date | None = None


@dataclass
class _History:
    patches: list[AttributePatch] = field(default_factory=list)

    def add(self, patch: AttributePatch) -> None:
        # In-order appends are the common case and stay O(1).
        if not self.patches or self.patches[-1].order_key <= patch.order_key:
            self.patches.append(patch)
        else:
            bisect.insort(self.patches, patch, key=lambda p: p.order_key)


class FactLedger:
    """Append-only store of attribute patches, grouped per entity."""

    def __init__(self) -> None:
        self._histories: dict[str, _History] = {}
        self._log: list[AttributePatch] = []
        self._sequence = 0
        self._version = 0

    @property
    def version(self) -> int:
        """Monotonic counter bumped by every append and by clear()."""
        return self._version

    def append(
        self,
        entity_id: str,
        attributes: Mapping[str, Any],
        effective_date: str | date | datetime,
    ) -> AttributePatch:
        """Record a new patch. Validation happens before anything is mutated."""
        when = parse_date(effective_date)
        frozen = _validate_patch(entity_id, attributes)

        patch = AttributePatch(
            entity=entity_id,
            attributes=frozen,
            effective_date=when,
            sequence=self._sequence,
        )
        self._sequence += 1
        self._histories.setdefault(entity_id, _History()).add(patch)
        self._log.append(patch)
        self._version += 1
        logger.debug("Appended patch #%d for %s @ %s", patch.sequence, entity_id, when)
        return patch

    def history_of(self, entity_id: str) -> tuple[AttributePatch, ...]:
        history = self._histories.get(entity_id)
        if history is None:
            return ()
        return tuple(history.patches)

    def all_entity_ids(self) -> frozenset[str]:
        return frozenset(self._histories)

    def patches(self) -> Iterator[AttributePatch]:
        """All patches in insertion order."""
        return iter(self._log)

    def stats(self) -> LedgerStats:
        if not self._log:
            return LedgerStats()
        dates = [p.effective_date for p in self._log]
        return LedgerStats(
            total_patches=len(self._log),
            entity_count=len(self._histories),
            oldest=min(dates),
            newest=max(dates),
        )

    def clear(self) -> None:
        self._histories.clear()
        self._log.clear()
        self._sequence = 0
        self._version += 1

    def __len__(self) -> int:
        return len(self._log)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._histories


def _validate_patch(entity_id: Any, attributes: Any) -> Mapping[str, Any]:
    if not isinstance(entity_id, str) or not entity_id:
        raise ValidationError(f"Entity id must be a non-empty string, got {entity_id!r}")
    if not isinstance(attributes, Mapping):
        raise ValidationError(
            f"Attributes must be a mapping, got {type(attributes).__name__}"
        )
    for name, value in attributes.items():
        if not isinstance(name, str) or not name:
            raise ValidationError(f"Attribute names must be non-empty strings, got {name!r}")
        try:
            hash(value)
        except TypeError:
            raise ValidationError(
                f"Value of {entity_id}.{name} is not hashable: {type(value).__name__}"
            ) from None
    return MappingProxyType(dict(attributes))
