"""Tests for the parser and intent boundary adapters."""

from __future__ import annotations

import pytest

from chronofact import TemporalStore, ValidationError
from chronofact.collaborators import (
    IntentParser,
    Parser,
    QueryIntent,
    Triple,
    answer_intent,
    record_triple,
)


class MockParser:
    """Splits 'subject verb object' sentences."""

    def parse(self, text: str) -> Triple | None:
        parts = text.split()
        if len(parts) != 3:
            return None
        return Triple(*parts)


class MockIntentParser:
    def parse_intent(self, question: str) -> QueryIntent:
        if question.startswith("how many"):
            return QueryIntent(action="count", filters={"role": "manager"}, at="2025-01-15")
        if question.startswith("history of"):
            return QueryIntent(action="timeline", entity=question.split()[-1])
        return QueryIntent(action="query", filters={"role": "manager"}, at="2025-01-15")


@pytest.fixture
def store() -> TemporalStore:
    s = TemporalStore()
    parser = MockParser()
    for text, when in [
        ("alice role engineer", "2025-01-01"),
        ("alice role manager", "2025-01-10"),
        ("bob role manager", "2025-01-01"),
    ]:
        record_triple(s, parser.parse(text), when)
    s.invalidate_index()
    return s


class TestProtocols:
    def test_mocks_satisfy_protocols(self):
        assert isinstance(MockParser(), Parser)
        assert isinstance(MockIntentParser(), IntentParser)


class TestRecordTriple:
    def test_maps_verb_to_attribute(self, store: TemporalStore):
        assert store.snapshot("alice", "2025-01-05") == {"role": "engineer"}
        assert store.snapshot("alice", "2025-01-10") == {"role": "manager"}

    def test_bad_date_propagates(self, store: TemporalStore):
        with pytest.raises(ValidationError):
            record_triple(store, Triple("carol", "role", "intern"), "later")


class TestAnswerIntent:
    def test_query(self, store: TemporalStore):
        intent = MockIntentParser().parse_intent("who are the managers?")
        assert answer_intent(store, intent) == ["alice", "bob"]
        assert answer_intent(store, intent, fast=False) == ["alice", "bob"]

    def test_count(self, store: TemporalStore):
        intent = MockIntentParser().parse_intent("how many managers?")
        assert answer_intent(store, intent) == 2

    def test_timeline(self, store: TemporalStore):
        intent = MockIntentParser().parse_intent("history of alice")
        points = answer_intent(store, intent)
        assert [p.state["role"] for p in points] == ["engineer", "manager"]

    def test_timeline_needs_entity(self, store: TemporalStore):
        with pytest.raises(ValidationError):
            answer_intent(store, QueryIntent(action="timeline"))

    def test_unknown_action(self, store: TemporalStore):
        with pytest.raises(ValidationError):
            answer_intent(store, QueryIntent(action="compare"))  # type: ignore[arg-type]
