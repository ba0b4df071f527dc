"""Scheduling data models: slots, appointment windows, day schedules and requests."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Iterable, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from clinic_scheduling.config import settings
from clinic_scheduling.utils import format_minutes, parse_booking_datetime, to_local_wall_clock

logger = logging.getLogger(__name__)

RecordId = Union[int, str]


class AppointmentStatus(str, Enum):
    """Canonical appointment lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


class SlotUnavailableReason(str, Enum):
    CONFLICT = "conflict"
    PAST = "past"


class RejectionReason(str, Enum):
    """Why a booking request was not admitted."""

    MALFORMED_INPUT = "malformed_input"
    OUTSIDE_BUSINESS_HOURS = "outside_business_hours"
    TOO_FAR_IN_PAST = "too_far_in_past"
    IN_PAST = "in_past"
    TOO_FAR_IN_FUTURE = "too_far_in_future"
    SLOT_CONFLICT = "slot_conflict"


@dataclass(frozen=True)
class TimeSlot:
    """A fixed-length interval of the working day, keyed by its start time."""

    start_minute: int
    duration_minutes: int

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes

    @property
    def time(self) -> str:
        return format_minutes(self.start_minute)

    def start_on(self, day: date) -> datetime:
        return datetime(day.year, day.month, day.day) + timedelta(minutes=self.start_minute)

    def end_on(self, day: date) -> datetime:
        return datetime(day.year, day.month, day.day) + timedelta(minutes=self.end_minute)


class ScheduleRecord(BaseModel):
    """One appointment as supplied by the appointment store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[RecordId] = Field(
        default=None, validation_alias=AliasChoices("id", "appointmentId", "appointment_id")
    )
    scheduled_time: datetime = Field(
        validation_alias=AliasChoices("scheduledTime", "scheduled_time")
    )
    end_time: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("endTime", "end_time")
    )
    estimated_minutes: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("estimatedMinutes", "estimated_minutes", "serviceDuration"),
    )
    status: Optional[str] = Field(default=None, validation_alias=AliasChoices("status", "state"))
    dentist_id: Optional[RecordId] = Field(
        default=None, validation_alias=AliasChoices("dentistId", "dentist_id", "dentistRefId")
    )

    def local_bounds(self, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
        """Start and end as clinic wall-clock time.

        A missing or non-positive end falls back to ``estimatedMinutes``,
        then to the default appointment length, so one bad record cannot
        break a whole day.
        """
        start = to_local_wall_clock(self.scheduled_time, tz)
        if self.end_time is not None:
            end = to_local_wall_clock(self.end_time, tz)
            if end > start:
                return start, end
        if self.estimated_minutes is not None and self.estimated_minutes > 0:
            return start, start + timedelta(minutes=self.estimated_minutes)

        minutes = settings.schedule.default_appointment_minutes
        logger.warning(
            "Appointment %s at %s has no usable end, assuming %d minutes",
            self.id, start, minutes,
        )
        return start, start + timedelta(minutes=minutes)

    def resolved_end(self, tz: Optional[tzinfo] = None) -> datetime:
        return self.local_bounds(tz)[1]


class AppointmentWindow(BaseModel):
    """The interval ``[start, end)`` occupied by one real appointment."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    appointment_id: Optional[RecordId] = None
    dentist_id: Optional[RecordId] = None
    status: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _to_wall_clock(cls, value: datetime) -> datetime:
        return to_local_wall_clock(value)

    @model_validator(mode="after")
    def _check_order(self) -> "AppointmentWindow":
        if self.end <= self.start:
            raise ValueError(f"window end {self.end} must be after start {self.start}")
        return self

    @classmethod
    def from_record(
        cls, record: Union[ScheduleRecord, dict[str, Any]], tz: Optional[tzinfo] = None
    ) -> "AppointmentWindow":
        """Build a window from a store record, resolving instants to local time."""
        if not isinstance(record, ScheduleRecord):
            record = ScheduleRecord.model_validate(record)
        start, end = record.local_bounds(tz)
        return cls(
            start=start,
            end=end,
            appointment_id=record.id,
            dentist_id=record.dentist_id,
            status=record.status,
        )

    def describe(self) -> str:
        label = f"#{self.appointment_id}" if self.appointment_id is not None else "appointment"
        status = f" ({self.status})" if self.status else ""
        return f"{label} {self.start:%H:%M}-{self.end:%H:%M}{status}"


class DaySchedule(BaseModel):
    """All appointment windows for one dentist on one local calendar day."""

    model_config = ConfigDict(frozen=True)

    day: date
    dentist_id: Optional[RecordId] = None
    windows: list[AppointmentWindow] = Field(default_factory=list)

    @classmethod
    def from_records(
        cls,
        day: date,
        records: Iterable[Union[ScheduleRecord, dict[str, Any]]],
        dentist_id: Optional[RecordId] = None,
        tz: Optional[tzinfo] = None,
    ) -> "DaySchedule":
        windows = [AppointmentWindow.from_record(r, tz) for r in records]
        return cls(day=day, dentist_id=dentist_id, windows=windows)

    def upsert(self, window: AppointmentWindow) -> "DaySchedule":
        """Return a copy with ``window`` replacing the one sharing its id, or appended."""
        windows = list(self.windows)
        if window.appointment_id is not None:
            for i, existing in enumerate(windows):
                if existing.appointment_id == window.appointment_id:
                    windows[i] = window
                    return self.model_copy(update={"windows": windows})
        windows.append(window)
        return self.model_copy(update={"windows": windows})

    def remove(self, appointment_id: RecordId) -> "DaySchedule":
        windows = [w for w in self.windows if w.appointment_id != appointment_id]
        return self.model_copy(update={"windows": windows})


class BookingRequest(BaseModel):
    """A candidate booking submitted for admission.

    ``date`` and ``time`` stay raw strings so malformed input surfaces as a
    rejection from the evaluator rather than a validation error here.
    """

    dentist_id: RecordId
    date: str
    time: str
    duration_minutes: int = Field(
        default_factory=lambda: settings.schedule.default_appointment_minutes
    )

    def start(self) -> Optional[datetime]:
        return parse_booking_datetime(self.date, self.time)

    def end(self) -> Optional[datetime]:
        start = self.start()
        if start is None or self.duration_minutes <= 0:
            return None
        return start + timedelta(minutes=self.duration_minutes)


class SlotView(BaseModel):
    """One cell of the rendered slot grid."""

    time: str
    available: bool
    reason: Optional[SlotUnavailableReason] = None
    conflicting_window: Optional[AppointmentWindow] = None
