"""Segment/rule engine.

Single pass over the input: strip leading whitespace, then try, in order, a
tag, a priority marker, a temporal phrase and finally a plain word. Tags and
``!`` markers go first because their syntax is unambiguous and must never be
swallowed into a date or the title. The collected segments are then
assembled into a ``Task`` or an ``Event``.
"""

import logging
from datetime import datetime, timedelta

from taskparse.services.intent import Event, Intent, Priority, Task
from taskparse.services.segments import (
    Point,
    PrioritySegment,
    Range,
    Segment,
    Span,
    Tag,
    Temporal,
    Text,
    first_of,
    many,
    priority_rule,
    tag_rule,
    text_rule,
)
from taskparse.services.temporal import temporal_rule
from taskparse.services.timezone import get_timezone_service

logger = logging.getLogger(__name__)


def segment(text: str, now: datetime) -> list[Segment]:
    """Split ``text`` into classified segments."""
    rule = first_of(tag_rule, priority_rule, temporal_rule(now), text_rule)
    segments, rest = many(rule, text)
    if rest.strip():
        segments.append(Text(rest.strip()))
    return segments


class RuleEngine:
    """Deterministic decomposition of free text into an intent."""

    def try_parse(self, text: str, now: datetime | None = None) -> Intent | None:
        """Return an intent, or ``None`` when the input carries nothing usable."""
        now = now or get_timezone_service().now()
        segments = segment(text, now)
        logger.debug("Segmented %r into %d segments", text, len(segments))
        return self.assemble(segments)

    def assemble(self, segments: list[Segment]) -> Intent | None:
        title_parts: list[str] = []
        tags: list[str] = []
        priority = Priority.MEDIUM

        start: datetime | None = None
        end: datetime | None = None
        span: timedelta | None = None

        for item in segments:
            if isinstance(item, Text):
                title_parts.append(item.value)
            elif isinstance(item, Tag):
                tags.append(item.name)
            elif isinstance(item, PrioritySegment):
                priority = item.priority
            elif isinstance(item, Temporal):
                context = item.context
                if isinstance(context, Point):
                    # First point is the start, a later one the end.
                    # TODO: reject chronologically inverted pairs once we see them in real input
                    if start is None:
                        start = context.at
                    else:
                        end = context.at
                elif isinstance(context, Span):
                    span = context.length
                elif isinstance(context, Range):
                    start, end = context.start, context.end

        title = " ".join(title_parts)

        if start is not None:
            if end is None and span is not None:
                end = start + span
            if end is not None:
                return Event(title=title, start_time=start, end_time=end, tags=tuple(tags))
            return Task(
                title=title, due_date=start, tags=tuple(tags), priority=priority, is_scheduled=True
            )

        if not title and not tags:
            return None

        return Task(title=title, tags=tuple(tags), priority=priority, is_scheduled=False)
