"""Side-by-side lane assignment for overlapping appointments on a day timeline.

Windows are sorted by start and split into groups of continuously
overlapping windows. Inside a group each window takes the first lane whose
previous occupant has already ended, opening a new lane when none is free.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from clinic_scheduling.schemas.schedule_schema import DaySchedule, RecordId

DEFAULT_BLOCK_MINUTES = 30


@dataclass(frozen=True)
class TimelineItem:
    item_id: RecordId
    start: datetime
    end: Optional[datetime] = None

    def resolved_end(self) -> datetime:
        if self.end is None or self.end <= self.start:
            return self.start + timedelta(minutes=DEFAULT_BLOCK_MINUTES)
        return self.end


@dataclass(frozen=True)
class LaneAssignment:
    item_id: RecordId
    lane: int
    lane_count: int
    group: int


def _overlap_groups(items: Sequence[TimelineItem]) -> list[list[TimelineItem]]:
    groups: list[list[TimelineItem]] = []
    current: list[TimelineItem] = []
    group_end: Optional[datetime] = None
    for item in sorted(items, key=lambda i: i.start):
        if current and group_end is not None and item.start < group_end:
            current.append(item)
            group_end = max(group_end, item.resolved_end())
        else:
            if current:
                groups.append(current)
            current = [item]
            group_end = item.resolved_end()
    if current:
        groups.append(current)
    return groups


def assign_lanes(items: Sequence[TimelineItem]) -> list[LaneAssignment]:
    """Assign each item a lane; ``lane_count`` is the width of its overlap group."""
    assignments: list[LaneAssignment] = []
    for group_index, group in enumerate(_overlap_groups(items)):
        lane_ends: list[datetime] = []
        placed: list[tuple[RecordId, int]] = []
        for item in group:
            for lane, lane_end in enumerate(lane_ends):
                if item.start >= lane_end:
                    lane_ends[lane] = item.resolved_end()
                    placed.append((item.item_id, lane))
                    break
            else:
                lane_ends.append(item.resolved_end())
                placed.append((item.item_id, len(lane_ends) - 1))

        lane_count = max(1, len(lane_ends))
        assignments.extend(
            LaneAssignment(item_id=item_id, lane=lane, lane_count=lane_count, group=group_index)
            for item_id, lane in placed
        )
    return assignments


def layout_schedule(schedule: DaySchedule) -> list[LaneAssignment]:
    """Lane layout for a day schedule; windows without an id are keyed by position."""
    items = [
        TimelineItem(
            item_id=w.appointment_id if w.appointment_id is not None else index,
            start=w.start,
            end=w.end,
        )
        for index, w in enumerate(schedule.windows)
    ]
    return assign_lanes(items)
