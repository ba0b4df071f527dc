"""
Availability lookup for one dentist on one day.

Takes the day's appointment records as fetched from the store, rebuilds the
slot grid from scratch and packages it for rendering. Live updates are
handled by calling this again with the changed records.
"""

import logging
from datetime import datetime, tzinfo
from typing import Any, Iterable, Optional, TypedDict, Union

from clinic_scheduling.schemas.schedule_schema import DaySchedule, RecordId, ScheduleRecord
from clinic_scheduling.scheduling.conflict_detector import (
    build_slot_grid,
    next_available,
    summarize_grid,
)
from clinic_scheduling.scheduling.slot_generator import generate_slots
from clinic_scheduling.scheduling.temporal_policy import SchedulingPolicy
from clinic_scheduling.utils import parse_date

logger = logging.getLogger(__name__)


class SlotCell(TypedDict, total=False):
    """A single slot as consumed by rendering code."""

    time: str
    available: bool
    reason: str
    appointment_id: RecordId
    appointment_status: str


class AvailabilityResult(TypedDict):
    """Result from check_availability."""

    available: bool
    slots: list[SlotCell]
    available_count: int
    busy_count: int
    next_available: Optional[str]
    message: str


def check_availability(
    dentist_id: RecordId,
    date: str,
    records: Iterable[Union[ScheduleRecord, dict[str, Any]]],
    now: datetime,
    policy: Optional[SchedulingPolicy] = None,
    tz: Optional[tzinfo] = None,
    exclude_statuses: Iterable[str] = (),
) -> AvailabilityResult:
    """
    Build the slot grid for ``dentist_id`` on ``date``.

    Returns a structured dict with every slot, free/busy counts and the
    first free slot, or an empty grid when the date cannot be read.
    Record instants and an aware ``now`` are both read in ``tz``, falling
    back to CLINIC_TIMEZONE.
    """
    day = parse_date(date)
    if day is None:
        return {
            "available": False,
            "slots": [],
            "available_count": 0,
            "busy_count": 0,
            "next_available": None,
            "message": f"Unreadable date: {date!r}.",
        }

    policy = policy or SchedulingPolicy.from_config()
    schedule = DaySchedule.from_records(day, records, dentist_id=dentist_id, tz=tz)
    slots = generate_slots(
        policy.work_start_hour, policy.work_end_hour, policy.slot_interval_minutes
    )
    grid = build_slot_grid(schedule, now, slots, exclude_statuses, tz)
    counts = summarize_grid(grid)
    first_free = next_available(grid)

    cells: list[SlotCell] = []
    for view in grid:
        cell: SlotCell = {"time": view.time, "available": view.available}
        if view.reason is not None:
            cell["reason"] = view.reason.value
        if view.conflicting_window is not None:
            if view.conflicting_window.appointment_id is not None:
                cell["appointment_id"] = view.conflicting_window.appointment_id
            if view.conflicting_window.status:
                cell["appointment_status"] = view.conflicting_window.status
        cells.append(cell)

    if first_free is None:
        message = f"No free slots for dentist {dentist_id} on {date}."
    else:
        message = f"{counts['available']} free slots on {date}, first at {first_free}."
    logger.debug(message)

    return {
        "available": first_free is not None,
        "slots": cells,
        "available_count": counts["available"],
        "busy_count": counts["busy"],
        "next_available": first_free,
        "message": message,
    }
