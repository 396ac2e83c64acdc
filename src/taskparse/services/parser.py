"""Fixed-pattern fast path.

A handful of literal phrasings ("tomorrow at 3pm", "today at 9:30am",
"next friday") plus tag and priority stripping. Cheap enough to run before
anything else; it only claims inputs that carry a date or a tag so plain text
keeps flowing down the cascade.
"""

import re
from datetime import date, datetime, timedelta

from taskparse.services.intent import Priority, Task
from taskparse.services.timezone import get_timezone_service, to_24_hour, wall_clock

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

# Hour used when a phrase names a day but no time.
DEFAULT_HOUR = 9


class FixedPatternParser:
    TOMORROW_TIME = re.compile(
        r"\btomorrow\s+(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE
    )
    TODAY_TIME = re.compile(
        r"\btoday\s+(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE
    )
    NEXT_WEEKDAY = re.compile(r"\bnext\s+(" + "|".join(WEEKDAYS) + r")\b", re.IGNORECASE)
    # End of a range after the matched start ("tomorrow 9-10am")
    RANGE_TAIL = re.compile(r"\s*[-–]\s*\d{1,2}(?::\d{2})?\s*(?:am|pm)?\b", re.IGNORECASE)
    TAG_PATTERN = re.compile(r"#(\w+)")
    PRIORITY_PATTERN = re.compile(r"(!{1,3})|\bpriority:\s*(low|medium|high|urgent)\b", re.IGNORECASE)

    # Stripped from every title; temporal text only goes when it produced the due date
    MARKER_NOISE = [TAG_PATTERN, PRIORITY_PATTERN]

    def try_parse(self, text: str, now: datetime | None = None) -> Task | None:
        """Return a task when the input has a recognizable date or a tag."""
        now = now or get_timezone_service().now()

        due_date, date_match = self._extract_datetime(text, now)
        tags = tuple(self.TAG_PATTERN.findall(text))

        if due_date is None and not tags:
            return None

        return Task(
            title=self._clean_title(text, date_match),
            due_date=due_date,
            tags=tags,
            priority=self._extract_priority(text),
            is_scheduled=due_date is not None,
        )

    def _extract_datetime(
        self, text: str, now: datetime
    ) -> tuple[datetime | None, re.Match | None]:
        """The due date and the match it came from, or ``(None, None)``."""
        match = self.TOMORROW_TIME.search(text)
        if match:
            due = self._at_time(now.date() + timedelta(days=1), match, now)
            return (due, match) if due else (None, None)

        match = self.TODAY_TIME.search(text)
        if match:
            due = self._at_time(now.date(), match, now)
            return (due, match) if due else (None, None)

        match = self.NEXT_WEEKDAY.search(text)
        if match:
            target = WEEKDAYS[match.group(1).lower()]
            days_ahead = (target - now.weekday() + 7) % 7 or 7
            return wall_clock(now.date() + timedelta(days=days_ahead), DEFAULT_HOUR, 0, now), match

        return None, None

    def _at_time(self, day: date, match: re.Match, now: datetime) -> datetime | None:
        hour = int(match.group(1))
        minute = int(match.group(2)) if match.group(2) else 0
        hour = to_24_hour(hour, match.group(3))
        if hour > 23 or minute > 59:
            return None
        return wall_clock(day, hour, minute, now)

    def _extract_priority(self, text: str) -> Priority:
        match = self.PRIORITY_PATTERN.search(text)
        if not match:
            return Priority.MEDIUM
        if match.group(1):
            return {
                3: Priority.URGENT,
                2: Priority.HIGH,
                1: Priority.MEDIUM,
            }[len(match.group(1))]
        return Priority.from_label(match.group(2))

    def _clean_title(self, text: str, date_match: re.Match | None) -> str:
        title = text
        if date_match is not None:
            end = date_match.end()
            tail = self.RANGE_TAIL.match(text, end)
            if tail:
                end = tail.end()
            title = text[: date_match.start()] + " " + text[end:]
        for pattern in self.MARKER_NOISE:
            title = pattern.sub("", title)
        return re.sub(r"\s+", " ", title).strip()
