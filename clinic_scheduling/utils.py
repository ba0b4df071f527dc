"""Shared date and time-of-day parsing used across the scheduling core."""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from clinic_scheduling.config import settings

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

DateLike = Union[str, date]
TimeLike = Union[str, time]


def parse_clock_minutes(value: Optional[TimeLike]) -> Optional[int]:
    """Parse an ``HH:MM`` 24h string into minutes since midnight.

    Returns None for anything that is not a valid clock time.

    Examples:
        >>> parse_clock_minutes("08:30")
        510
        >>> parse_clock_minutes("8:5") is None
        True
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string into a date, or None when malformed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_booking_datetime(
    date_value: Optional[DateLike], time_value: Optional[TimeLike] = None
) -> Optional[datetime]:
    """Combine a date and an optional time of day into a local datetime.

    A missing time means start of day. Returns None when either part is
    present but malformed.
    """
    day = parse_date(date_value)
    if day is None:
        return None
    if time_value is None or time_value == "":
        return datetime.combine(day, time.min)
    minutes = parse_clock_minutes(time_value)
    if minutes is None:
        return None
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def shift_months(moment: datetime, months: int) -> datetime:
    """Move a datetime by whole calendar months, clamping to month end."""
    return moment + relativedelta(months=months)


def clinic_timezone() -> Optional[tzinfo]:
    """The configured CLINIC_TIMEZONE, or None for the host's local zone."""
    name = settings.clinic.timezone
    return ZoneInfo(name) if name else None


def to_local_wall_clock(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an instant to a naive clinic wall-clock datetime.

    Aware datetimes are converted to ``tz``, falling back to the clinic
    timezone and then to the host's local zone. Naive datetimes are taken
    as already local.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(tz or clinic_timezone()).replace(tzinfo=None)


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Current naive wall-clock time in ``tz`` or the clinic timezone."""
    return to_local_wall_clock(datetime.now(timezone.utc), tz)
