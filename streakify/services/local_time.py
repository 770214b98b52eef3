from datetime import date
from datetime import datetime
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from streakify.core.errors import ConfigurationError


def resolve_timezone(name: str | None) -> ZoneInfo:
    if not name:
        raise ConfigurationError("timezone is not set")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"unknown timezone {name!r}") from exc


def local_today(timezone_name: str | None, now: datetime | None = None) -> date:
    """Return today's date in the given IANA timezone."""

    zone = resolve_timezone(timezone_name)
    if now is None:
        return datetime.now(zone).date()
    return now.astimezone(zone).date()


def parse_clock_time(raw: str | None) -> tuple[int, int]:
    """Parse "HH:MM" (seconds tolerated) into an (hour, minute) pair."""

    if not raw:
        raise ConfigurationError("check time is not set")
    parts = raw.strip().split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except (IndexError, ValueError) as exc:
        raise ConfigurationError(f"invalid time of day {raw!r}") from exc
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ConfigurationError(f"invalid time of day {raw!r}")
    return hour, minute
