"""Tests for intent types and outcome serialization."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from taskparse.services.intent import (
    STRATEGY_CONFIDENCE,
    Event,
    ParseOutcome,
    Priority,
    StrategyTag,
    Task,
    fallback_intent,
    intent_from_dict,
)

NOW = datetime(2025, 1, 15, 10, 30, tzinfo=ZoneInfo("UTC"))


class TestPriority:
    def test_ordering(self):
        assert Priority.LOW < Priority.MEDIUM < Priority.HIGH < Priority.URGENT
        assert Priority.URGENT >= Priority.HIGH
        assert max([Priority.HIGH, Priority.LOW, Priority.URGENT]) is Priority.URGENT

    def test_from_label_is_case_insensitive(self):
        assert Priority.from_label("HIGH") is Priority.HIGH
        assert Priority.from_label(" urgent ") is Priority.URGENT

    def test_from_label_defaults_to_medium(self):
        assert Priority.from_label(None) is Priority.MEDIUM
        assert Priority.from_label("") is Priority.MEDIUM
        assert Priority.from_label("critical") is Priority.MEDIUM


class TestStrategyConfidence:
    def test_confidence_ordering(self):
        """Local strategies outrank inference, which outranks the fallback."""
        assert STRATEGY_CONFIDENCE[StrategyTag.FIXED_PATTERN] == 0.95
        assert STRATEGY_CONFIDENCE[StrategyTag.RULE_ENGINE] == 0.95
        assert STRATEGY_CONFIDENCE[StrategyTag.INFERENCE] == 0.85
        assert STRATEGY_CONFIDENCE[StrategyTag.FALLBACK] == 0.50

    def test_cached_strategies_have_no_fixed_confidence(self):
        assert StrategyTag.CACHED_EXACT not in STRATEGY_CONFIDENCE
        assert StrategyTag.CACHED_FUZZY not in STRATEGY_CONFIDENCE


class TestTask:
    def test_defaults(self):
        task = Task(title="Buy milk")
        assert task.due_date is None
        assert task.tags == ()
        assert task.priority is Priority.MEDIUM
        assert task.is_scheduled is False
        assert task.kind == "task"

    def test_is_immutable(self):
        task = Task(title="Buy milk")
        with pytest.raises(AttributeError):
            task.title = "Buy bread"

    def test_to_dict(self):
        task = Task(
            title="Submit report",
            due_date=NOW,
            tags=("work",),
            priority=Priority.HIGH,
            is_scheduled=True,
        )
        assert task.to_dict() == {
            "type": "task",
            "title": "Submit report",
            "due_date": "2025-01-15T10:30:00+00:00",
            "tags": ["work"],
            "priority": "high",
            "is_scheduled": True,
        }


class TestEvent:
    def test_duration_minutes(self):
        event = Event(title="Team sync", start_time=NOW, end_time=NOW + timedelta(hours=2))
        assert event.duration_minutes == 120

    def test_duration_without_end(self):
        assert Event(title="Team sync", start_time=NOW).duration_minutes is None

    def test_to_dict(self):
        event = Event(title="Team sync", start_time=NOW, location="Room 4")
        data = event.to_dict()
        assert data["type"] == "event"
        assert data["start_time"] == "2025-01-15T10:30:00+00:00"
        assert data["end_time"] is None
        assert data["location"] == "Room 4"


class TestIntentFromDict:
    def test_rebuilds_task(self):
        task = Task(title="Pay rent", due_date=NOW, tags=("home",), is_scheduled=True)
        assert intent_from_dict(task.to_dict()) == task

    def test_rebuilds_event(self):
        event = Event(
            title="Standup",
            start_time=NOW,
            end_time=NOW + timedelta(minutes=15),
            tags=("team",),
        )
        assert intent_from_dict(event.to_dict()) == event

    def test_event_without_start_rejected(self):
        with pytest.raises(ValueError):
            intent_from_dict({"type": "event", "title": "Standup"})

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown intent type"):
            intent_from_dict({"type": "note", "title": "Idea"})


class TestFallbackIntent:
    def test_raw_text_becomes_title(self):
        task = fallback_intent("uhh that thing you know")
        assert task == Task(title="uhh that thing you know")
        assert task.is_scheduled is False


class TestParseOutcome:
    def test_round_trip(self):
        outcome = ParseOutcome(
            intent=Event(title="Team sync", start_time=NOW, end_time=NOW + timedelta(hours=1)),
            strategy=StrategyTag.RULE_ENGINE,
            confidence=0.95,
            elapsed_ms=3,
        )
        assert ParseOutcome.from_dict(outcome.to_dict()) == outcome

    def test_to_dict_uses_strategy_value(self):
        outcome = ParseOutcome(
            intent=Task(title="Buy milk"), strategy=StrategyTag.FALLBACK, confidence=0.5
        )
        data = outcome.to_dict()
        assert data["strategy"] == "fallback"
        assert data["elapsed_ms"] == 0
