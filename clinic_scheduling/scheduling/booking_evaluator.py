"""
Booking admission: temporal policy first, conflict detection last.

``evaluate_booking`` is pure. An ``Admitted`` decision is advisory: two
callers can both see a slot as free, so the reservation store owns the
atomicity boundary and its answer is the one that counts.

Usage:
    decision = evaluate_booking(request, schedule, now=datetime.now())
    if decision.admitted:
        result = store.reserve(request)
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, Iterable, Optional, Protocol

from clinic_scheduling.logging_context import get_request_logger, new_request_id
from clinic_scheduling.schemas.schedule_schema import (
    AppointmentWindow,
    BookingRequest,
    DaySchedule,
    RejectionReason,
    SlotView,
)
from clinic_scheduling.scheduling.conflict_detector import build_slot_grid, find_conflict
from clinic_scheduling.scheduling.slot_generator import generate_slots
from clinic_scheduling.scheduling.temporal_policy import SchedulingPolicy, check_temporal_policy
from clinic_scheduling.utils import clinic_timezone, local_now, parse_date, to_local_wall_clock

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class BookingDecision:
    """Admitted, or rejected with a reason the caller must branch on."""

    admitted: bool
    reason: Optional[RejectionReason] = None
    message: str = ""
    conflicting_window: Optional[AppointmentWindow] = None

    @classmethod
    def admit(cls) -> "BookingDecision":
        return cls(admitted=True, message="Slot is available.")

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        message: str,
        conflicting_window: Optional[AppointmentWindow] = None,
    ) -> "BookingDecision":
        return cls(
            admitted=False, reason=reason, message=message, conflicting_window=conflicting_window
        )


@dataclass(frozen=True)
class ReservationResult:
    """The store's authoritative answer to a reservation attempt."""

    confirmed: bool
    reservation_ref: Optional[str] = None
    message: str = ""
    conflicting_window: Optional[AppointmentWindow] = None


class ReservationStore(Protocol):
    """Persistence boundary that must make check-and-reserve atomic."""

    def reserve(self, request: BookingRequest) -> ReservationResult:
        ...


def _check_schedule_matches(request: BookingRequest, schedule: DaySchedule) -> None:
    if schedule.dentist_id is not None and str(schedule.dentist_id) != str(request.dentist_id):
        raise ValueError(
            f"Schedule belongs to dentist {schedule.dentist_id}, "
            f"request is for dentist {request.dentist_id}"
        )
    requested_day = parse_date(request.date)
    if requested_day is not None and requested_day != schedule.day:
        raise ValueError(f"Schedule is for {schedule.day}, request is for {request.date}")


def evaluate_booking(
    request: BookingRequest,
    schedule: DaySchedule,
    now: datetime,
    policy: Optional[SchedulingPolicy] = None,
    tz: Optional[tzinfo] = None,
) -> BookingDecision:
    """
    Decide whether ``request`` may be booked against ``schedule``.

    An aware ``now`` is converted to the clinic wall clock (``tz``, else
    CLINIC_TIMEZONE) before any comparison.

    Raises:
        ValueError: If the schedule is for another dentist or day.
    """
    _check_schedule_matches(request, schedule)
    now = to_local_wall_clock(now, tz)

    temporal = check_temporal_policy(request.date, request.time, now, policy)
    if not temporal.passed:
        logger.info(
            "Booking rejected for dentist %s at %s %s: %s",
            request.dentist_id, request.date, request.time, temporal.reason.value,
        )
        return BookingDecision.reject(temporal.reason, temporal.message or "")

    start, end = request.start(), request.end()
    if start is None or end is None:
        logger.info("Booking rejected: bad duration %s", request.duration_minutes)
        return BookingDecision.reject(
            RejectionReason.MALFORMED_INPUT,
            f"Duration must be a positive number of minutes, got {request.duration_minutes}.",
        )

    window = find_conflict(start, end, schedule.windows)
    if window is not None:
        logger.info(
            "Booking rejected for dentist %s at %s %s: conflicts with %s",
            request.dentist_id, request.date, request.time, window.describe(),
        )
        return BookingDecision.reject(
            RejectionReason.SLOT_CONFLICT,
            f"Already booked: {window.describe()}.",
            conflicting_window=window,
        )

    logger.info(
        "Booking admitted for dentist %s at %s %s", request.dentist_id, request.date, request.time
    )
    return BookingDecision.admit()


class SchedulingService:
    """Composition root: policy, clinic timezone, clock and an optional reservation store.

    The default clock reads the current time on the clinic wall clock, not
    the host's.
    """

    def __init__(
        self,
        policy: Optional[SchedulingPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        store: Optional[ReservationStore] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.policy = policy or SchedulingPolicy.from_config()
        self.tz = tz or clinic_timezone()
        self.clock = clock or (lambda: local_now(self.tz))
        self.store = store

    def slot_grid(
        self, schedule: DaySchedule, exclude_statuses: Iterable[str] = ()
    ) -> list[SlotView]:
        slots = generate_slots(
            self.policy.work_start_hour,
            self.policy.work_end_hour,
            self.policy.slot_interval_minutes,
        )
        return build_slot_grid(schedule, self.clock(), slots, exclude_statuses, self.tz)

    def evaluate(self, request: BookingRequest, schedule: DaySchedule) -> BookingDecision:
        return evaluate_booking(request, schedule, self.clock(), self.policy, self.tz)

    def book(
        self, request: BookingRequest, schedule: DaySchedule
    ) -> tuple[BookingDecision, Optional[ReservationResult]]:
        """Evaluate, then ask the store to reserve when admitted.

        Returns the decision and the store's result (None when rejected
        before reaching the store).
        """
        if self.store is None:
            raise RuntimeError("SchedulingService.book needs a reservation store")
        new_request_id()
        decision = self.evaluate(request, schedule)
        if not decision.admitted:
            return decision, None
        result = self.store.reserve(request)
        if not result.confirmed:
            logger.warning(
                "Admitted booking lost the race for dentist %s at %s %s: %s",
                request.dentist_id, request.date, request.time, result.message,
            )
        return decision, result
