"""
In-memory reservation store.

In production this role belongs to the clinic's appointment API, which must
make "check for overlap, then insert" atomic (a uniqueness constraint or a
serializable transaction). This store does the same with a lock so that an
Admitted decision from the evaluator is confirmed or refused here.
"""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, TypedDict

from clinic_scheduling.logging_context import get_request_logger
from clinic_scheduling.schemas.schedule_schema import (
    AppointmentStatus,
    AppointmentWindow,
    BookingRequest,
    RecordId,
    RejectionReason,
)
from clinic_scheduling.scheduling.booking_evaluator import ReservationResult
from clinic_scheduling.scheduling.conflict_detector import find_conflict
from clinic_scheduling.scheduling.status_machine import check_edit, check_transition
from clinic_scheduling.scheduling.status_normalizer import status_label
from clinic_scheduling.scheduling.temporal_policy import SchedulingPolicy, check_temporal_policy
from clinic_scheduling.utils import local_now, to_local_wall_clock

logger = get_request_logger(__name__)


class ReservationRecord(TypedDict):
    """Full reservation record held by the store."""

    reservation_ref: str
    dentist_id: RecordId
    start: datetime
    end: datetime
    status: str
    created_at: str


class StoreResult(TypedDict, total=False):
    """Result from set_status, cancel or reschedule."""

    success: bool
    message: str
    reason: str
    details: ReservationRecord


def _window(record: ReservationRecord) -> AppointmentWindow:
    return AppointmentWindow(
        start=record["start"],
        end=record["end"],
        appointment_id=record["reservation_ref"],
        dentist_id=record["dentist_id"],
        status=record["status"],
    )


class InMemoryReservationStore:
    """Thread-safe reservation store keyed by reference number.

    Records handed out are copies; every change goes through the store.
    """

    def __init__(
        self,
        release_cancelled: bool = True,
        policy: Optional[SchedulingPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._reservations: dict[str, ReservationRecord] = {}
        self._lock = threading.Lock()
        self.release_cancelled = release_cancelled
        self.policy = policy or SchedulingPolicy.from_config()
        self.clock = clock or local_now

    def _blocking_windows(
        self, dentist_id: RecordId, skip_ref: Optional[str] = None
    ) -> list[AppointmentWindow]:
        windows = []
        for record in self._reservations.values():
            if str(record["dentist_id"]) != str(dentist_id) or record["reservation_ref"] == skip_ref:
                continue
            if self.release_cancelled and record["status"] == AppointmentStatus.CANCELLED.value:
                continue
            windows.append(_window(record))
        return windows

    def reserve(self, request: BookingRequest) -> ReservationResult:
        """Atomically re-check overlap for the dentist and insert."""
        start, end = request.start(), request.end()
        if start is None or end is None:
            return ReservationResult(
                confirmed=False, message="Cannot reserve - unreadable date, time or duration."
            )

        with self._lock:
            clash = find_conflict(start, end, self._blocking_windows(request.dentist_id))
            if clash is not None:
                logger.info(
                    "Reservation refused for dentist %s at %s: overlaps %s",
                    request.dentist_id, start, clash.describe(),
                )
                return ReservationResult(
                    confirmed=False,
                    message=f"Slot was taken in the meantime: {clash.describe()}.",
                    conflicting_window=clash,
                )

            ref = f"AP-{uuid.uuid4().hex[:6].upper()}"
            self._reservations[ref] = {
                "reservation_ref": ref,
                "dentist_id": request.dentist_id,
                "start": start,
                "end": end,
                "status": AppointmentStatus.PENDING.value,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }

        logger.info("Reservation created: %s for dentist %s at %s", ref, request.dentist_id, start)
        return ReservationResult(
            confirmed=True,
            reservation_ref=ref,
            message=f"Appointment reserved. Reference number: {ref}.",
        )

    def set_status(self, reservation_ref: str, status: Optional[str]) -> StoreResult:
        """Change status after normalizing and checking the transition."""
        with self._lock:
            record = self._reservations.get(reservation_ref)
            if record is None:
                return {"success": False, "message": f"Appointment {reservation_ref} not found."}

            check = check_transition(record["status"], status)
            if not check.allowed:
                return {
                    "success": False,
                    "message": check.message or "",
                    "reason": check.reason.value if check.reason else "",
                }
            record["status"] = status_label(check.target)
            snapshot = record.copy()

        logger.info("Appointment %s status set to %s", reservation_ref, snapshot["status"])
        return {
            "success": True,
            "message": f"Appointment {reservation_ref} is now {snapshot['status']}.",
            "details": snapshot,
        }

    def cancel(self, reservation_ref: str) -> StoreResult:
        return self.set_status(reservation_ref, AppointmentStatus.CANCELLED)

    def reschedule(
        self, reservation_ref: str, new_start: datetime, duration_minutes: Optional[int] = None
    ) -> StoreResult:
        """Move an appointment.

        Completed appointments cannot move. The new time must pass the same
        temporal policy as a fresh booking and must not overlap another
        appointment of the same dentist. An aware ``new_start`` is read on
        the clinic wall clock.
        """
        new_start = to_local_wall_clock(new_start)
        if duration_minutes is not None and duration_minutes <= 0:
            return {
                "success": False,
                "message": f"Duration must be a positive number of minutes, got {duration_minutes}.",
                "reason": RejectionReason.MALFORMED_INPUT.value,
            }

        with self._lock:
            record = self._reservations.get(reservation_ref)
            if record is None:
                return {"success": False, "message": f"Appointment {reservation_ref} not found."}

            editable = check_edit(record["status"])
            if not editable.allowed:
                return {
                    "success": False,
                    "message": editable.message or "",
                    "reason": editable.reason.value if editable.reason else "",
                }

            temporal = check_temporal_policy(
                new_start.date(), new_start.time(), to_local_wall_clock(self.clock()), self.policy
            )
            if not temporal.passed:
                return {
                    "success": False,
                    "message": temporal.message or "",
                    "reason": temporal.reason.value if temporal.reason else "",
                }

            length = record["end"] - record["start"]
            new_end = new_start + (
                timedelta(minutes=duration_minutes) if duration_minutes else length
            )
            clash = find_conflict(
                new_start, new_end, self._blocking_windows(record["dentist_id"], reservation_ref)
            )
            if clash is not None:
                return {
                    "success": False,
                    "message": f"New time overlaps {clash.describe()}.",
                    "reason": RejectionReason.SLOT_CONFLICT.value,
                }
            record.update(start=new_start, end=new_end)
            snapshot = record.copy()

        logger.info("Appointment %s rescheduled to %s", reservation_ref, new_start)
        return {
            "success": True,
            "message": f"Appointment {reservation_ref} moved to {new_start:%Y-%m-%d %H:%M}.",
            "details": snapshot,
        }

    def get(self, reservation_ref: str) -> Optional[ReservationRecord]:
        """A copy of the stored record, or None."""
        with self._lock:
            record = self._reservations.get(reservation_ref)
            return record.copy() if record is not None else None

    def windows_for(self, dentist_id: RecordId) -> list[AppointmentWindow]:
        """Current windows for a dentist, in insertion order."""
        with self._lock:
            return [
                _window(r)
                for r in self._reservations.values()
                if str(r["dentist_id"]) == str(dentist_id)
            ]

    def reset(self) -> None:
        """Clear all reservations. Used by test fixtures for isolation."""
        with self._lock:
            self._reservations.clear()
