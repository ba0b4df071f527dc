"""
Slot classification against a dentist's day schedule.

Overlap is half-open: ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap
iff ``a_start < b_end and a_end > b_start``, so touching endpoints are free.
Windows are scanned in the order the schedule supplies them and the first
overlapping window is the one reported. The scan is O(slots x windows),
which for one dentist-day is a few dozen comparisons.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable, Optional, Sequence

from clinic_scheduling.schemas.schedule_schema import (
    AppointmentWindow,
    DaySchedule,
    SlotUnavailableReason,
    SlotView,
    TimeSlot,
)
from clinic_scheduling.scheduling.status_normalizer import normalize_status
from clinic_scheduling.utils import to_local_wall_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotClassification:
    """Free, or occupied by the first overlapping window."""

    slot: TimeSlot
    occupied: bool
    conflicting_window: Optional[AppointmentWindow] = None


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def find_conflict(
    start: datetime, end: datetime, windows: Iterable[AppointmentWindow]
) -> Optional[AppointmentWindow]:
    """Return the first window overlapping ``[start, end)``, in input order."""
    for window in windows:
        if overlaps(start, end, window.start, window.end):
            return window
    return None


def active_windows(
    schedule: DaySchedule, exclude_statuses: Iterable[str] = ()
) -> list[AppointmentWindow]:
    """Windows whose normalized status is not in ``exclude_statuses``."""
    excluded = {normalize_status(s) for s in exclude_statuses}
    if not excluded:
        return list(schedule.windows)
    return [w for w in schedule.windows if normalize_status(w.status) not in excluded]


def classify(slot: TimeSlot, schedule: DaySchedule) -> SlotClassification:
    """Classify one slot of ``schedule.day`` as free or occupied."""
    window = find_conflict(slot.start_on(schedule.day), slot.end_on(schedule.day), schedule.windows)
    return SlotClassification(slot=slot, occupied=window is not None, conflicting_window=window)


def build_slot_grid(
    schedule: DaySchedule,
    now: datetime,
    slots: Sequence[TimeSlot],
    exclude_statuses: Iterable[str] = (),
    tz: Optional[tzinfo] = None,
) -> list[SlotView]:
    """
    Annotate every slot with its availability.

    An aware ``now`` is read on the clinic wall clock (``tz``, else
    CLINIC_TIMEZONE), the same clock the windows are on.

    A slot that starts before ``now`` is unavailable with reason ``past``
    whatever its conflict status; the overlapping window, if any, is still
    attached. Otherwise an overlapping window makes it ``conflict``.
    """
    now = to_local_wall_clock(now, tz)
    considered = schedule.model_copy(
        update={"windows": active_windows(schedule, exclude_statuses)}
    )

    grid: list[SlotView] = []
    for slot in slots:
        result = classify(slot, considered)
        if slot.start_on(schedule.day) < now:
            reason: Optional[SlotUnavailableReason] = SlotUnavailableReason.PAST
        elif result.occupied:
            reason = SlotUnavailableReason.CONFLICT
        else:
            reason = None
        grid.append(
            SlotView(
                time=slot.time,
                available=reason is None,
                reason=reason,
                conflicting_window=result.conflicting_window,
            )
        )

    logger.debug(
        "Slot grid for dentist %s on %s: %d/%d available",
        schedule.dentist_id, schedule.day, sum(1 for s in grid if s.available), len(grid),
    )
    return grid


def summarize_grid(grid: Iterable[SlotView]) -> dict[str, int]:
    """Free and busy counts for a computed grid."""
    available = busy = 0
    for view in grid:
        if view.available:
            available += 1
        else:
            busy += 1
    return {"available": available, "busy": busy}


def next_available(grid: Iterable[SlotView]) -> Optional[str]:
    for view in grid:
        if view.available:
            return view.time
    return None
