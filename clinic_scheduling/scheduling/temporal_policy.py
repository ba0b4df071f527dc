"""
Temporal booking policy: business hours, no past bookings, bounded horizons.

Every predicate takes ``now`` explicitly and never reads the wall clock.
Malformed dates or times make a predicate return False; nothing here raises
for bad input. ``check_temporal_policy`` runs the predicates in the order the
booking forms report them and returns the first failure with its own reason.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from clinic_scheduling.config import ScheduleConfig, settings
from clinic_scheduling.schemas.schedule_schema import RejectionReason
from clinic_scheduling.utils import (
    DateLike,
    TimeLike,
    format_minutes,
    parse_booking_datetime,
    parse_clock_minutes,
    shift_months,
)

logger = logging.getLogger(__name__)

DEFAULT_OPEN_MINUTE = 8 * 60
DEFAULT_CLOSE_MINUTE = 20 * 60
DEFAULT_HORIZON_MONTHS = 3


@dataclass(frozen=True)
class SchedulingPolicy:
    """Working-hours grid, business hours and horizon limits in one place."""

    work_start_hour: int = 8
    work_end_hour: int = 20
    slot_interval_minutes: int = 30
    open_minute: int = DEFAULT_OPEN_MINUTE
    close_minute: int = DEFAULT_CLOSE_MINUTE
    months_ahead: int = DEFAULT_HORIZON_MONTHS
    months_back: int = DEFAULT_HORIZON_MONTHS

    @classmethod
    def from_config(cls, config: Optional[ScheduleConfig] = None) -> "SchedulingPolicy":
        config = config or settings.schedule
        return cls(
            work_start_hour=config.work_start_hour,
            work_end_hour=config.work_end_hour,
            slot_interval_minutes=config.slot_interval_minutes,
            open_minute=config.business_open_minute,
            close_minute=config.business_close_minute,
            months_ahead=config.months_ahead,
            months_back=config.months_back,
        )


@dataclass(frozen=True)
class TemporalCheck:
    """Outcome of the combined temporal policy."""

    passed: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None


def is_within_business_hours(
    time_value: Optional[TimeLike],
    open_minute: int = DEFAULT_OPEN_MINUTE,
    close_minute: int = DEFAULT_CLOSE_MINUTE,
) -> bool:
    """True iff ``open <= time <= close``, both bounds inclusive."""
    minutes = parse_clock_minutes(time_value)
    if minutes is None:
        return False
    return open_minute <= minutes <= close_minute


def is_not_in_past(
    date_value: Optional[DateLike], time_value: Optional[TimeLike], now: datetime
) -> bool:
    candidate = parse_booking_datetime(date_value, time_value)
    if candidate is None:
        return False
    return candidate >= now


def is_within_future_horizon(
    date_value: Optional[DateLike],
    time_value: Optional[TimeLike],
    now: datetime,
    months_ahead: int = DEFAULT_HORIZON_MONTHS,
) -> bool:
    """True iff the candidate is no later than ``now`` plus whole calendar months."""
    candidate = parse_booking_datetime(date_value, time_value)
    if candidate is None:
        return False
    return candidate <= shift_months(now, months_ahead)


def is_not_too_far_in_past(
    date_value: Optional[DateLike],
    time_value: Optional[TimeLike],
    now: datetime,
    months_back: int = DEFAULT_HORIZON_MONTHS,
) -> bool:
    candidate = parse_booking_datetime(date_value, time_value)
    if candidate is None:
        return False
    return candidate >= shift_months(now, -months_back)


def check_temporal_policy(
    date_value: Optional[DateLike],
    time_value: Optional[TimeLike],
    now: datetime,
    policy: Optional[SchedulingPolicy] = None,
) -> TemporalCheck:
    """Run every temporal predicate and report the first failure.

    Order: malformed input, business hours, too far in the past, in the
    past, too far in the future. A date beyond the past horizon is also in
    the past; checking the horizon first keeps its reason reachable.
    """
    policy = policy or SchedulingPolicy.from_config()

    if parse_booking_datetime(date_value, time_value) is None or parse_clock_minutes(
        time_value
    ) is None:
        return TemporalCheck(
            passed=False,
            reason=RejectionReason.MALFORMED_INPUT,
            message=f"Unreadable date or time: {date_value!r} {time_value!r}.",
        )

    if not is_within_business_hours(time_value, policy.open_minute, policy.close_minute):
        return TemporalCheck(
            passed=False,
            reason=RejectionReason.OUTSIDE_BUSINESS_HOURS,
            message=(
                "Clinic working hours are "
                f"{format_minutes(policy.open_minute)} - {format_minutes(policy.close_minute)}."
            ),
        )

    if not is_not_too_far_in_past(date_value, time_value, now, policy.months_back):
        return TemporalCheck(
            passed=False,
            reason=RejectionReason.TOO_FAR_IN_PAST,
            message=f"Appointment date cannot be more than {policy.months_back} months ago.",
        )

    if not is_not_in_past(date_value, time_value, now):
        return TemporalCheck(
            passed=False,
            reason=RejectionReason.IN_PAST,
            message="Appointment date and time cannot be in the past.",
        )

    if not is_within_future_horizon(date_value, time_value, now, policy.months_ahead):
        return TemporalCheck(
            passed=False,
            reason=RejectionReason.TOO_FAR_IN_FUTURE,
            message=(
                f"Appointments cannot be booked more than {policy.months_ahead} months ahead."
            ),
        )

    return TemporalCheck(passed=True)
