"""Segment types and the small combinator toolkit the rule engine is built from.

A rule is a plain function ``rule(text) -> (value, rest) | None``. It either
consumes a prefix of ``text`` and returns the produced value with the
unconsumed remainder, or returns ``None`` without consuming anything. Rules
compose by ordered alternation: the first rule that matches wins, and a
rejected rule leaves the input untouched for the next one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Tuple, TypeVar

from taskparse.services.intent import Priority

T = TypeVar("T")
U = TypeVar("U")

Rule = Callable[[str], Optional[Tuple[T, str]]]


# ─────────────────────────────────────────────────────────────────────────────
# Segments
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Point:
    """A resolved instant (tomorrow 9am, eod, in 2 hours)."""

    at: datetime


@dataclass(frozen=True)
class Span:
    """A bare duration ("for 2 hours") waiting for a start to extend."""

    length: timedelta


@dataclass(frozen=True)
class Range:
    """An explicit start and end ("2-4pm")."""

    start: datetime
    end: datetime


TemporalContext = Point | Span | Range


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Tag:
    name: str


@dataclass(frozen=True)
class PrioritySegment:
    priority: Priority


@dataclass(frozen=True)
class Temporal:
    context: TemporalContext


Segment = Text | Tag | PrioritySegment | Temporal


# ─────────────────────────────────────────────────────────────────────────────
# Combinators
# ─────────────────────────────────────────────────────────────────────────────


def pattern(regex: str, flags: int = re.IGNORECASE) -> Rule[re.Match[str]]:
    """Match ``regex`` anchored at the start of the input."""
    compiled = re.compile(regex, flags)

    def rule(text: str) -> tuple[re.Match[str], str] | None:
        match = compiled.match(text)
        if match is None or match.end() == 0:
            return None
        return match, text[match.end() :]

    return rule


def keyword(*words: str) -> Rule[str]:
    """Match one of ``words`` case-insensitively, only as a whole word.

    Longer alternatives are tried first so "minutes" wins over "min".
    """
    ordered = sorted(words, key=len, reverse=True)
    return transform(
        pattern(r"(?:" + "|".join(re.escape(w) for w in ordered) + r")\b"),
        lambda match: match.group(0),
    )


def transform(rule: Rule[T], fn: Callable[[T], U | None]) -> Rule[U]:
    """Apply ``fn`` to the value of ``rule``; a ``None`` result rejects the match."""

    def mapped(text: str) -> tuple[U, str] | None:
        result = rule(text)
        if result is None:
            return None
        value, rest = result
        converted = fn(value)
        if converted is None:
            return None
        return converted, rest

    return mapped


def first_of(*rules: Rule[Any]) -> Rule[Any]:
    """Ordered alternation: the first rule that matches wins."""

    def alternation(text: str) -> tuple[Any, str] | None:
        for rule in rules:
            result = rule(text)
            if result is not None:
                return result
        return None

    return alternation


def many(rule: Rule[T], text: str) -> tuple[list[T], str]:
    """Apply ``rule`` after stripping leading whitespace until it stops matching."""
    values: list[T] = []
    rest = text.lstrip()
    while rest:
        result = rule(rest)
        if result is None:
            break
        value, remaining = result
        if len(remaining) >= len(rest):
            # A rule that consumes nothing would loop forever.
            break
        values.append(value)
        rest = remaining.lstrip()
    return values, rest


# ─────────────────────────────────────────────────────────────────────────────
# Non-temporal segment rules
# ─────────────────────────────────────────────────────────────────────────────

BANG_PRIORITIES = {
    "!!!": Priority.URGENT,
    "!!": Priority.HIGH,
    "!": Priority.MEDIUM,
}

tag_rule: Rule[Segment] = transform(
    pattern(r"#([\w-]+)"), lambda match: Tag(match.group(1))
)

bang_priority_rule: Rule[Segment] = transform(
    pattern(r"!{1,3}"), lambda match: PrioritySegment(BANG_PRIORITIES[match.group(0)])
)

named_priority_rule: Rule[Segment] = transform(
    pattern(r"priority:?\s*(low|medium|high|urgent)\b"),
    lambda match: PrioritySegment(Priority(match.group(1).lower())),
)

priority_rule: Rule[Segment] = first_of(bang_priority_rule, named_priority_rule)

text_rule: Rule[Segment] = transform(pattern(r"\S+", 0), lambda match: Text(match.group(0)))
