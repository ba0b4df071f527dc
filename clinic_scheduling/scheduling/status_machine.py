"""
Appointment lifecycle state machine shared by every caller that mutates a booking.

PENDING -> CONFIRMED -> COMPLETE, with CANCELLED and reset-to-PENDING paths.
COMPLETE is terminal: no edit, cancel or status change is accepted once an
appointment is finalized. Statuses only change on explicit request.

Usage:
    if can_edit(normalize_status(record["status"])):
        ...  # offer edit / cancel controls

    machine = AppointmentStatusMachine(record["status"])
    machine.transition(AppointmentStatus.CONFIRMED)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from clinic_scheduling.schemas.schedule_schema import AppointmentStatus
from clinic_scheduling.scheduling.status_normalizer import StatusValue, normalize_status, status_label

logger = logging.getLogger(__name__)

S = AppointmentStatus

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED, S.PENDING}),
    S.CONFIRMED: frozenset({S.COMPLETE, S.PENDING, S.CANCELLED}),
    S.COMPLETE: frozenset(),
    S.CANCELLED: frozenset({S.PENDING}),
}

# Statuses outside the table can only be reset.
_FALLBACK_TARGETS: frozenset[AppointmentStatus] = frozenset({S.PENDING})


class TransitionRejection(str, Enum):
    APPOINTMENT_FINALIZED = "appointment_finalized"
    ILLEGAL_TRANSITION = "illegal_transition"


@dataclass(frozen=True)
class TransitionCheck:
    """Outcome of a status-change or edit check."""

    allowed: bool
    source: StatusValue
    target: Optional[StatusValue] = None
    reason: Optional[TransitionRejection] = None
    message: Optional[str] = None
    noop: bool = False


class StatusTransitionError(Exception):
    """Base class for rejected writes raised by AppointmentStatusMachine."""

    def __init__(self, check: TransitionCheck) -> None:
        super().__init__(check.message)
        self.check = check


class AppointmentFinalizedError(StatusTransitionError):
    """Raised on any mutation of a COMPLETE appointment."""


class IllegalTransitionError(StatusTransitionError):
    """Raised when the requested status change is not in the transition table."""


def _targets_for(source: StatusValue) -> frozenset[AppointmentStatus]:
    if isinstance(source, AppointmentStatus) and source in TRANSITIONS:
        return TRANSITIONS[source]
    return _FALLBACK_TARGETS


def check_transition(source: Optional[str], target: Optional[str]) -> TransitionCheck:
    """Decide whether ``source -> target`` is a legal status change."""
    src = normalize_status(source)
    dst = normalize_status(target)

    if src == S.COMPLETE and dst == S.COMPLETE:
        return TransitionCheck(allowed=True, source=src, target=dst, noop=True)

    if src == S.COMPLETE or (dst == S.COMPLETE and src != S.CONFIRMED):
        return TransitionCheck(
            allowed=False,
            source=src,
            target=dst,
            reason=TransitionRejection.APPOINTMENT_FINALIZED,
            message=(
                "Appointment is already complete and cannot be changed."
                if src == S.COMPLETE
                else f"Only a confirmed appointment can be completed, not {src}."
            ),
        )

    if dst in _targets_for(src):
        return TransitionCheck(allowed=True, source=src, target=dst, noop=src == dst)

    return TransitionCheck(
        allowed=False,
        source=src,
        target=dst,
        reason=TransitionRejection.ILLEGAL_TRANSITION,
        message=f"Cannot change status from {src} to {dst}.",
    )


def can_transition(source: Optional[str], target: Optional[str]) -> bool:
    """Whether a status-change control for ``target`` should be offered."""
    return check_transition(source, target).allowed


def check_edit(status: Optional[str]) -> TransitionCheck:
    """Decide whether generic edit/cancel operations are allowed."""
    src = normalize_status(status)
    if src == S.COMPLETE:
        return TransitionCheck(
            allowed=False,
            source=src,
            reason=TransitionRejection.APPOINTMENT_FINALIZED,
            message="Completed appointments cannot be edited.",
        )
    return TransitionCheck(allowed=True, source=src)


def can_edit(status: Optional[str]) -> bool:
    """False only for COMPLETE."""
    return check_edit(status).allowed


def valid_targets(status: Optional[str]) -> list[AppointmentStatus]:
    """All targets reachable from ``status``, in declaration order."""
    src = normalize_status(status)
    if src == S.COMPLETE:
        return []
    return [s for s in AppointmentStatus if s != S.UNKNOWN and can_transition(src, s)]


@dataclass
class StatusEntry:
    """Recorded history entry for a status change."""

    status: StatusValue
    entered_at: datetime


class AppointmentStatusMachine:
    """
    Tracks one appointment's status and rejects illegal writes.

    Meant for the persistence call site: a rejected transition raises
    before anything reaches the store.
    """

    def __init__(self, status: Optional[str] = AppointmentStatus.PENDING) -> None:
        self._status = normalize_status(status)
        self._history: list[StatusEntry] = [
            StatusEntry(status=self._status, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def status(self) -> StatusValue:
        return self._status

    def transition(self, target: Optional[str]) -> StatusValue:
        """
        Move to ``target``.

        Returns:
            The new status.

        Raises:
            AppointmentFinalizedError: The appointment is (or would be illegally made) COMPLETE.
            IllegalTransitionError: The change is not in the transition table.
        """
        check = check_transition(self._status, target)
        if not check.allowed:
            if check.reason == TransitionRejection.APPOINTMENT_FINALIZED:
                raise AppointmentFinalizedError(check)
            raise IllegalTransitionError(check)
        if check.noop:
            return self._status

        old = self._status
        self._status = check.target
        self._history.append(
            StatusEntry(status=self._status, entered_at=datetime.now(timezone.utc))
        )
        logger.debug("Status transition: %s -> %s", old, self._status)
        return self._status

    def ensure_editable(self) -> None:
        """Raise AppointmentFinalizedError if the appointment can no longer be edited."""
        check = check_edit(self._status)
        if not check.allowed:
            raise AppointmentFinalizedError(check)

    def get_valid_targets(self) -> list[AppointmentStatus]:
        return valid_targets(self._status)

    def get_history(self) -> list[StatusEntry]:
        return list(self._history)

    def get_status_trace(self) -> list[str]:
        return [status_label(e.status) for e in self._history]

    def is_terminal(self) -> bool:
        return self._status == S.COMPLETE
