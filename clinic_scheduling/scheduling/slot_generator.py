"""Canonical slot grid for a working day.

Slots tile ``[start_hour, end_hour)`` with no gaps or overlaps. The upper
bound is exclusive: with the default 08:00-20:00 window and a 30-minute
interval the last slot starts at 19:30.
"""

from typing import Iterator

from clinic_scheduling.schemas.schedule_schema import TimeSlot

DEFAULT_START_HOUR = 8
DEFAULT_END_HOUR = 20
DEFAULT_INTERVAL_MINUTES = 30


class SlotConfigurationError(ValueError):
    """Raised for a working window the interval cannot tile exactly."""


def _validate(start_hour: int, end_hour: int, interval_minutes: int) -> None:
    if not 0 <= start_hour < end_hour <= 24:
        raise SlotConfigurationError(
            f"Working window must satisfy 0 <= start < end <= 24, got {start_hour}-{end_hour}"
        )
    if interval_minutes <= 0:
        raise SlotConfigurationError(
            f"Slot interval must be positive, got {interval_minutes}"
        )
    window = (end_hour - start_hour) * 60
    if window % interval_minutes:
        raise SlotConfigurationError(
            f"Slot interval of {interval_minutes} minutes does not evenly divide "
            f"the {window}-minute working window"
        )


def iter_slots(
    start_hour: int = DEFAULT_START_HOUR,
    end_hour: int = DEFAULT_END_HOUR,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> Iterator[TimeSlot]:
    """Yield slots lazily. Validation happens before the first slot."""
    _validate(start_hour, end_hour, interval_minutes)
    return _slots(start_hour * 60, end_hour * 60, interval_minutes)


def _slots(start: int, end: int, interval: int) -> Iterator[TimeSlot]:
    for minute in range(start, end, interval):
        yield TimeSlot(start_minute=minute, duration_minutes=interval)


def generate_slots(
    start_hour: int = DEFAULT_START_HOUR,
    end_hour: int = DEFAULT_END_HOUR,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> list[TimeSlot]:
    """Return the ordered slot grid for the working window.

    Raises:
        SlotConfigurationError: If the window is invalid or the interval
            does not divide it evenly.
    """
    return list(iter_slots(start_hour, end_hour, interval_minutes))
