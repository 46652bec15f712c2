"""Wall-clock and calendar helpers shared by the scheduling engine.

Times are compared as minutes since midnight (0-1439). The "h:mm AM/PM"
form is only produced when a value leaves the engine.
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")


def parse_time(value: Optional[str]) -> Optional[int]:
    """Parse "9:00 AM", "12:30 pm" or "09:00" into minutes since midnight.

    Returns None for anything malformed so callers can degrade to
    "no slots" instead of failing.
    """
    if not value or not isinstance(value, str):
        return None
    match = _TIME_RE.match(value)
    if not match:
        return None
    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if minutes > 59:
        return None
    if period:
        if hours < 1 or hours > 12:
            return None
        period = period.upper()
        if period == "PM" and hours != 12:
            hours += 12
        if period == "AM" and hours == 12:
            hours = 0
    elif hours > 23:
        return None
    return hours * 60 + minutes


def format_12h(minutes: int) -> str:
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{mins:02d} {period}"


def format_24h(minutes: int) -> str:
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    return f"{hours:02d}:{mins:02d}"


def normalize_time(value: Optional[str]) -> Optional[str]:
    minutes = parse_time(value)
    if minutes is None:
        return None
    return format_12h(minutes)


def same_time(left: Optional[str], right: Optional[str]) -> bool:
    left_minutes = parse_time(left)
    right_minutes = parse_time(right)
    if left_minutes is None or right_minutes is None:
        return left is not None and left == right
    return left_minutes == right_minutes


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def weekday_name(value: str) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.strftime("%A") if parsed else None


def clinic_now(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in the clinic's timezone.

    A naive ``now`` is taken to be UTC.
    """
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown clinic timezone {tz_name!r}, falling back to UTC")
        tz = timezone.utc
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps; SQLite hands stored values back without tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def sort_timestamp(value: Optional[datetime]) -> float:
    """Orderable value for an optional timestamp; missing ones sort last."""
    if value is None:
        return float("inf")
    return as_utc(value).timestamp()
