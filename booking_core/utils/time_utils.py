# booking_core/utils/time_utils.py
"""HH:MM, weekday and business timezone helpers"""
import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. Raises ValueError on anything else."""
    if not isinstance(value, str):
        raise ValueError(f"Expected HH:MM string, got {value!r}")
    # Postgres TIME columns serialise as HH:MM:SS
    if len(value) == 8 and value.endswith(":00"):
        value = value[:5]
    match = _HHMM.match(value)
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_name(day: date) -> str:
    return DAYS_OF_WEEK[day.weekday()]


def normalize_day_name(value: str) -> str:
    """Accept "mon" or "Monday" and return "monday"."""
    lowered = (value or "").strip().lower()
    for name in DAYS_OF_WEEK:
        if lowered == name or lowered == name[:3]:
            return name
    raise ValueError(f"Unknown day of week {value!r}")


def business_zone(tz_name: Optional[str]) -> ZoneInfo:
    """IANA zone for a business; unknown names fall back to UTC"""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown business timezone {tz_name!r}, using UTC")
        return ZoneInfo("UTC")


def business_now(tz_name: Optional[str], now: datetime) -> datetime:
    """Aware `now` converted to the business's wall clock"""
    return now.astimezone(business_zone(tz_name))
