"""Snapshot resolution — the one place where history is folded into state.

Both query engines go through `resolve` and `matches`; neither re-implements
temporal folding or filter semantics.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any

from chronofact.errors import ValidationError

if TYPE_CHECKING:
    from chronofact.ledger import FactLedger

# Filter values of these types are one-of sets; anything else is a scalar.
_SET_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class TimelinePoint:
    """Resolved state of an entity as of one effective date."""

    at: date
    state: Mapping[str, Any]


def resolve(ledger: FactLedger, entity_id: str, at: date) -> dict[str, Any]:
    """Fold the entity's patches effective on or before `at`, oldest first.

    Later patches override earlier ones key by key; a never-written entity
    resolves to an empty snapshot.
    """
    snapshot: dict[str, Any] = {}
    for patch in ledger.history_of(entity_id):
        if patch.effective_date > at:
            break
        snapshot.update(patch.attributes)
    return snapshot


def normalize_filter(filter: Mapping[str, Any] | None) -> dict[str, frozenset]:
    """Turn a filter into field -> allowed values."""
    if filter is None:
        return {}
    if not isinstance(filter, Mapping):
        raise ValidationError(f"Filter must be a mapping, got {type(filter).__name__}")

    normalized: dict[str, frozenset] = {}
    for name, value in filter.items():
        if not isinstance(name, str) or not name:
            raise ValidationError(f"Filter fields must be non-empty strings, got {name!r}")
        allowed = value if isinstance(value, _SET_TYPES) else (value,)
        try:
            normalized[name] = frozenset(allowed)
        except TypeError:
            raise ValidationError(f"Filter values for {name!r} must be hashable") from None
    return normalized


def matches(snapshot: Mapping[str, Any], normalized: Mapping[str, frozenset]) -> bool:
    for name, allowed in normalized.items():
        if name not in snapshot or snapshot[name] not in allowed:
            return False
    return True


def timeline(ledger: FactLedger, entity_id: str) -> list[TimelinePoint]:
    """State after each distinct effective date in the entity's history."""
    dates = dict.fromkeys(patch.effective_date for patch in ledger.history_of(entity_id))
    return [TimelinePoint(at, resolve(ledger, entity_id, at)) for at in dates]
