"""Structured intents produced by the interpretation pipeline.

An intent is either a ``Task`` or an ``Event``. Both are immutable and carry
timezone-aware datetimes. ``ParseOutcome`` wraps the intent with the strategy
that produced it, a confidence score and the time spent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal


class Priority(str, Enum):
    """Task priority, ordered LOW < MEDIUM < HIGH < URGENT."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def from_label(cls, label: str | None) -> Priority:
        """Map a case-insensitive label to a priority, defaulting to MEDIUM."""
        if not label:
            return cls.MEDIUM
        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.MEDIUM


_PRIORITY_ORDER = [Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.URGENT]


class StrategyTag(str, Enum):
    """Which stage of the cascade produced an outcome."""

    CACHED_EXACT = "cached_exact"
    CACHED_FUZZY = "cached_fuzzy"
    FIXED_PATTERN = "fixed_pattern"
    RULE_ENGINE = "rule_engine"
    INFERENCE = "inference"
    FALLBACK = "fallback"


# Fixed confidence per producing strategy. Cached strategies derive theirs
# from the stored entry.
STRATEGY_CONFIDENCE: dict[StrategyTag, float] = {
    StrategyTag.FIXED_PATTERN: 0.95,
    StrategyTag.RULE_ENGINE: 0.95,
    StrategyTag.INFERENCE: 0.85,
    StrategyTag.FALLBACK: 0.50,
}


@dataclass(frozen=True)
class Task:
    title: str
    due_date: datetime | None = None
    tags: tuple[str, ...] = ()
    priority: Priority = Priority.MEDIUM
    is_scheduled: bool = False

    kind: Literal["task"] = field(default="task", init=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "title": self.title,
            "due_date": _iso(self.due_date),
            "tags": list(self.tags),
            "priority": self.priority.value,
            "is_scheduled": self.is_scheduled,
        }


@dataclass(frozen=True)
class Event:
    title: str
    start_time: datetime
    end_time: datetime | None = None
    location: str | None = None
    tags: tuple[str, ...] = ()

    kind: Literal["event"] = field(default="event", init=False, repr=False)

    @property
    def duration_minutes(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "title": self.title,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "location": self.location,
            "tags": list(self.tags),
        }


Intent = Task | Event


def intent_from_dict(data: dict[str, Any]) -> Intent:
    """Rebuild an intent from ``Task.to_dict``/``Event.to_dict`` output."""
    kind = data.get("type")
    tags = tuple(data.get("tags") or ())
    if kind == "task":
        return Task(
            title=data["title"],
            due_date=_parse_iso(data.get("due_date")),
            tags=tags,
            priority=Priority(data.get("priority", Priority.MEDIUM.value)),
            is_scheduled=bool(data.get("is_scheduled", False)),
        )
    if kind == "event":
        start = _parse_iso(data.get("start_time"))
        if start is None:
            raise ValueError("Event requires start_time")
        return Event(
            title=data["title"],
            start_time=start,
            end_time=_parse_iso(data.get("end_time")),
            location=data.get("location"),
            tags=tags,
        )
    raise ValueError(f"Unknown intent type: {kind!r}")


def fallback_intent(text: str) -> Task:
    """The intent of last resort: the raw text as an unscheduled task."""
    return Task(title=text, due_date=None, tags=(), priority=Priority.MEDIUM, is_scheduled=False)


@dataclass(frozen=True)
class ParseOutcome:
    """Result of one ``parse`` call."""

    intent: Intent
    strategy: StrategyTag
    confidence: float
    elapsed_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "strategy": self.strategy.value,
            "confidence": self.confidence,
            "elapsed_ms": self.elapsed_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParseOutcome:
        return cls(
            intent=intent_from_dict(data["intent"]),
            strategy=StrategyTag(data["strategy"]),
            confidence=float(data["confidence"]),
            elapsed_ms=int(data.get("elapsed_ms", 0)),
        )


@dataclass(frozen=True)
class CacheEntry:
    intent: Intent
    strategy: StrategyTag
    confidence: float
    created_at: datetime


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)
