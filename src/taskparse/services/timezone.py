"""Timezone handling for temporal resolution.

All intents carry timezone-aware datetimes in the user's configured IANA
timezone. The rule engine, the fixed-pattern extractor and the inference
prompt all resolve relative phrases ("today", "tomorrow") against the same
clock provided here.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskparse.config import settings


def to_24_hour(hour: int, ampm: str | None) -> int:
    """Convert a 12-hour clock reading to 24-hour.

    Without a marker the hour is taken as already being 24-hour.
    "12am" is midnight and "12pm" is noon.
    """
    if ampm is None:
        return hour
    ampm = ampm.lower()
    if ampm == "pm" and hour < 12:
        return hour + 12
    if ampm == "am" and hour == 12:
        return 0
    return hour


class TimezoneService:
    """Clock and localization helpers bound to one timezone."""

    def __init__(self, default_timezone: str | None = None):
        """Initialize timezone service.

        Args:
            default_timezone: IANA timezone name. Defaults to settings.user_timezone.
        """
        self._tz_name = default_timezone or settings.user_timezone
        try:
            self._tz = ZoneInfo(self._tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            # Fallback to UTC if invalid timezone
            self._tz_name = "UTC"
            self._tz = ZoneInfo("UTC")

    @property
    def timezone_name(self) -> str:
        return self._tz_name

    @property
    def tzinfo(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        """Current time in the service timezone."""
        return datetime.now(self._tz)

    def localize(self, dt: datetime) -> datetime:
        """Attach the service timezone to a naive datetime, or convert an aware one."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self._tz)
        return dt.astimezone(self._tz)


def wall_clock(day: date, hour: int, minute: int, reference: datetime) -> datetime:
    """Wall-clock time on ``day`` in the timezone of ``reference``."""
    return datetime.combine(day, time(hour, minute), tzinfo=reference.tzinfo)


# Module-level singleton
_timezone_service: TimezoneService | None = None


def get_timezone_service(default_timezone: str | None = None) -> TimezoneService:
    """Get the singleton TimezoneService instance.

    Args:
        default_timezone: Optional timezone to use. Only used on first call.
    """
    global _timezone_service
    if _timezone_service is None:
        _timezone_service = TimezoneService(default_timezone)
    return _timezone_service


def reset_timezone_service() -> None:
    """Reset the singleton (useful for testing)."""
    global _timezone_service
    _timezone_service = None


def now() -> datetime:
    """Get current time in user's timezone."""
    return get_timezone_service().now()
