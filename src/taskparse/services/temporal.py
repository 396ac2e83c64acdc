"""Temporal sub-grammar of the rule engine.

Rules are tried in a fixed order and the first match wins:

1. "day after tomorrow"
2. explicit ranges ("2-4pm", "from 9am-5pm")
3. business terms (eod, cob, eow, eom)
4. relative durations ("in 20 mins", "for 2 hours")
5. date candidates ("tomorrow at 3pm", "friday", "next friday", "jan 5th", "at 9:30")

Date candidates are recognized structurally before being resolved, so an
ordinary title word is never mistaken for a date: if resolution fails the
rule rejects and the word falls through to plain text.
"""

from __future__ import annotations

import calendar
import re
from datetime import UTC, date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from taskparse.services.segments import (
    Point,
    Range,
    Rule,
    Span,
    Temporal,
    first_of,
    keyword,
    pattern,
    transform,
)
from taskparse.services.timezone import to_24_hour, wall_clock

# Hour used when a phrase names a day but no time.
DEFAULT_HOUR = 9
# Business deadlines (eod, cob, eow, eom) land at this hour.
BUSINESS_HOUR = 17
# "in <N> <unit>" deadlines snap up to this grid.
QUANTIZE_MINUTES = 15

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

WEEKDAYS = {
    "monday": MO,
    "mon": MO,
    "tuesday": TU,
    "tue": TU,
    "tues": TU,
    "wednesday": WE,
    "wed": WE,
    "thursday": TH,
    "thu": TH,
    "thurs": TH,
    "friday": FR,
    "fri": FR,
    "saturday": SA,
    "sat": SA,
    "sunday": SU,
    "sun": SU,
}

# Weekday words recognized on their own ("dinner friday"). Abbreviations that
# double as ordinary words (mon, wed, sat, sun) only count after next/last/this.
STANDALONE_WEEKDAYS = sorted(
    (word for word in WEEKDAYS if word not in ("mon", "wed", "sat", "sun")),
    key=len,
    reverse=True,
)

MONTHS = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
    "jan",
    "feb",
    "mar",
    "apr",
    "jun",
    "jul",
    "aug",
    "sept",
    "sep",
    "oct",
    "nov",
    "dec",
]

UNITS = {
    "minutes": "minutes",
    "minute": "minutes",
    "mins": "minutes",
    "min": "minutes",
    "hours": "hours",
    "hour": "hours",
    "hrs": "hours",
    "hr": "hours",
    "days": "days",
    "day": "days",
    "weeks": "weeks",
    "week": "weeks",
}

DAY_OFFSETS = {"yesterday": -1, "today": 0, "tomorrow": 1}


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def clock_time(hour: int, minute: int, ampm: str | None) -> tuple[int, int] | None:
    """Validate and convert a loose clock reading, or ``None`` if impossible."""
    if minute > 59:
        return None
    if ampm is not None:
        if not 1 <= hour <= 12:
            return None
    elif hour > 23:
        return None
    return to_24_hour(hour, ampm), minute


def quantize_up(dt: datetime, grid_minutes: int = QUANTIZE_MINUTES) -> datetime:
    """Round ``dt`` up to the next multiple of ``grid_minutes`` since the epoch.

    An instant already on the grid is returned unchanged.
    """
    grid = grid_minutes * 60
    elapsed = dt - EPOCH
    seconds = elapsed // timedelta(seconds=1)
    remainder = seconds % grid
    if remainder == 0 and elapsed.microseconds == 0:
        return dt
    return dt.replace(microsecond=0) + timedelta(seconds=grid - remainder)


def end_of_week(now: datetime) -> datetime:
    """Upcoming Friday (today, on a Friday) at the business hour."""
    days_until_friday = (calendar.FRIDAY - now.weekday()) % 7
    return wall_clock(now.date() + timedelta(days=days_until_friday), BUSINESS_HOUR, 0, now)


def end_of_month(now: datetime) -> datetime:
    last_day = calendar.monthrange(now.year, now.month)[1]
    return wall_clock(now.date().replace(day=last_day), BUSINESS_HOUR, 0, now)


# ─────────────────────────────────────────────────────────────────────────────
# Date-string resolution
# ─────────────────────────────────────────────────────────────────────────────

TIME_SUFFIX = re.compile(
    r"(?:^|\s)(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$",
    re.IGNORECASE,
)
ORDINAL = re.compile(r"(\d)(st|nd|rd|th)\b", re.IGNORECASE)


def _resolve_day(text: str, now: datetime) -> date | None:
    if not text:
        return now.date()
    if text in DAY_OFFSETS:
        return now.date() + timedelta(days=DAY_OFFSETS[text])
    if text in WEEKDAYS:
        # Upcoming occurrence, today included.
        return now.date() + relativedelta(weekday=WEEKDAYS[text](+1))

    parts = text.split()
    if len(parts) == 2 and parts[0] in ("next", "last", "this"):
        direction, word = parts
        if word in WEEKDAYS:
            weekday = WEEKDAYS[word]
            if direction == "next":
                delta = relativedelta(days=+1, weekday=weekday(+1))
            elif direction == "last":
                delta = relativedelta(days=-1, weekday=weekday(-1))
            else:
                delta = relativedelta(weekday=weekday(+1))
            return now.date() + delta
        if direction != "this" and word in ("week", "month", "year"):
            sign = 1 if direction == "next" else -1
            return now.date() + relativedelta(**{word + "s": sign})
        return None

    try:
        default = now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
        return dateutil_parser.parse(ORDINAL.sub(r"\1", text), default=default).date()
    except (ValueError, OverflowError):
        return None


def resolve_date_string(text: str, now: datetime) -> datetime | None:
    """Resolve a recognized date phrase against ``now``.

    Handles keyword days, weekday names, "next/last/this <weekday>", "next/last
    week|month|year", month-and-day dates and an optional trailing clock time
    ("tomorrow at 3pm", "jan 5 10:30"). Date-only phrases land at 09:00.
    Returns ``None`` when the phrase cannot be resolved.
    """
    phrase = " ".join(text.lower().split())
    hour, minute = DEFAULT_HOUR, 0

    match = TIME_SUFFIX.search(phrase)
    # A bare trailing number is a day of month ("jan 5"), not a time.
    if match and (match.group(2) or match.group(3) or "at " in match.group(0)):
        clock = clock_time(int(match.group(1)), int(match.group(2) or 0), match.group(3))
        if clock is None:
            return None
        hour, minute = clock
        phrase = phrase[: match.start()].strip()
    elif not phrase:
        return None

    day = _resolve_day(phrase, now)
    if day is None:
        return None
    return wall_clock(day, hour, minute, now)


# ─────────────────────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────────────────────

_TIME = r"\d{1,2}(?::\d{2})?(?!\d)(?:\s*(?:am|pm)\b)?"
_STRICT_TIME = r"(?:\d{1,2}(?::\d{2})?\s*(?:am|pm)\b|\d{1,2}:\d{2}(?!\d))"
_DATE_WORDS = (
    r"(?:today|tomorrow|yesterday|"
    + "|".join(STANDALONE_WEEKDAYS)
    + r"|(?:next|last|this)\s+[a-z]+"
    + r"|(?:" + "|".join(MONTHS) + r")\.?\s+\d{1,2}(?:st|nd|rd|th)?)\b"
)


def _range_time(name: str) -> str:
    return rf"(?P<{name}_h>\d{{1,2}})(?::(?P<{name}_m>\d{{2}}))?(?!\d)(?:\s*(?P<{name}_ap>am|pm)\b)?"


def day_after_tomorrow_rule(now: datetime) -> Rule[Temporal]:
    def resolve(_match: re.Match[str]) -> Temporal:
        return Temporal(Point(wall_clock(now.date() + timedelta(days=2), DEFAULT_HOUR, 0, now)))

    return transform(pattern(r"day\s+after\s+tomorrow\b"), resolve)


def time_range_rule(now: datetime) -> Rule[Temporal]:
    """Ranges such as "2-4pm", "9am - 5pm", "tomorrow 10:30-11am", "from 1pm-2:30".

    At least one side needs an am/pm marker; a side without one inherits it.
    """
    regex = (
        r"(?:(?P<day>today|tomorrow)\s+)?(?:(?:at|from)\s+)?"
        + _range_time("start")
        + r"\s*[-–]\s*"
        + _range_time("end")
        + r"(?![\w:])"
    )

    def resolve(match: re.Match[str]) -> Temporal | None:
        start_ap = match.group("start_ap")
        end_ap = match.group("end_ap")
        if start_ap is None and end_ap is None:
            return None
        start = clock_time(int(match.group("start_h")), int(match.group("start_m") or 0), start_ap or end_ap)
        end = clock_time(int(match.group("end_h")), int(match.group("end_m") or 0), end_ap or start_ap)
        if start is None or end is None:
            return None
        day = now.date() + timedelta(days=DAY_OFFSETS[(match.group("day") or "today").lower()])
        return Temporal(Range(wall_clock(day, *start, now), wall_clock(day, *end, now)))

    return transform(pattern(regex), resolve)


def business_time_rule(now: datetime) -> Rule[Temporal]:
    def resolve(token: str) -> Temporal:
        token = token.lower()
        if token in ("eod", "cob"):
            return Temporal(Point(wall_clock(now.date(), BUSINESS_HOUR, 0, now)))
        if token == "eow":
            return Temporal(Point(end_of_week(now)))
        return Temporal(Point(end_of_month(now)))

    return transform(keyword("eod", "cob", "eow", "eom"), resolve)


def relative_duration_rule(now: datetime) -> Rule[Temporal]:
    """An "in <N> <unit>" phrase is a quantized deadline, "for <N> <unit>" a bare span."""
    regex = r"(in|for)\s+(\d+)\s+(" + "|".join(sorted(UNITS, key=len, reverse=True)) + r")\b"

    def resolve(match: re.Match[str]) -> Temporal | None:
        try:
            length = timedelta(**{UNITS[match.group(3).lower()]: int(match.group(2))})
            if match.group(1).lower() == "for":
                return Temporal(Span(length))
            return Temporal(Point(quantize_up(now + length)))
        except OverflowError:
            return None

    return transform(pattern(regex), resolve)


def date_candidate_rule(now: datetime) -> Rule[Temporal]:
    """Structurally recognized date phrases handed to ``resolve_date_string``.

    The longest form (date plus trailing time) is tried first, then the bare
    date, then "at <time>" on its own.
    """

    def resolve(match: re.Match[str]) -> Temporal | None:
        resolved = resolve_date_string(match.group(0), now)
        if resolved is None:
            return None
        return Temporal(Point(resolved))

    with_time = pattern(_DATE_WORDS + r"\s+(?:at\s+" + _TIME + "|" + _STRICT_TIME + r")(?![\w:])")
    bare_date = pattern(_DATE_WORDS)
    at_time = pattern(r"at\s+" + _TIME + r"(?![\w:])")

    return first_of(
        transform(with_time, resolve),
        transform(bare_date, resolve),
        transform(at_time, resolve),
    )


def temporal_rule(now: datetime) -> Rule[Temporal]:
    """All temporal rules bound to ``now``, in priority order."""
    return first_of(
        day_after_tomorrow_rule(now),
        time_range_rule(now),
        business_time_rule(now),
        relative_duration_rule(now),
        date_candidate_rule(now),
    )
