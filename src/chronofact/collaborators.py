"""Boundary types for the text parser and question-intent collaborators.

The store never imports a parser or an LLM. Calling code implements these
protocols and uses `record_triple` / `answer_intent` to drive the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from chronofact.errors import ValidationError

if TYPE_CHECKING:
    from chronofact.ledger import AttributePatch
    from chronofact.resolver import TimelinePoint
    from chronofact.store import TemporalStore

IntentAction = Literal["query", "count", "timeline"]


@dataclass
class Triple:
    """Subject/verb/object extracted from one sentence."""

    subject: str
    verb: str
    object: Any


@runtime_checkable
class Parser(Protocol):
    """Turns free text into a fact triple, or None if nothing was found."""

    def parse(self, text: str) -> Triple | None: ...


@dataclass
class QueryIntent:
    """A classified question: what to do, over which filter, as of when."""

    action: IntentAction = "query"
    filters: dict[str, Any] = field(default_factory=dict)
    at: str | date | None = None
    entity: str | None = None


@runtime_checkable
class IntentParser(Protocol):
    """Classifies a natural-language question into a QueryIntent."""

    def parse_intent(self, question: str) -> QueryIntent: ...


def record_triple(
    store: TemporalStore, triple: Triple, effective_date: str | date | datetime
) -> AttributePatch:
    """Store `subject.verb = object` effective from `effective_date`."""
    return store.set(triple.subject, {triple.verb: triple.object}, effective_date)


def answer_intent(
    store: TemporalStore, intent: QueryIntent, *, fast: bool = True
) -> list[str] | int | list[TimelinePoint]:
    if intent.action == "timeline":
        if not intent.entity:
            raise ValidationError("A timeline intent needs an entity")
        return store.timeline(intent.entity)

    run = store.query_fast if fast else store.query
    if intent.action == "query":
        return run(intent.filters, intent.at)
    if intent.action == "count":
        return len(run(intent.filters, intent.at))
    raise ValidationError(f"Unsupported intent action: {intent.action!r}")
