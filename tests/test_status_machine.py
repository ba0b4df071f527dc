"""Tests for the appointment lifecycle state machine."""

import pytest

from clinic_scheduling.schemas.schedule_schema import AppointmentStatus
from clinic_scheduling.scheduling.status_machine import (
    AppointmentFinalizedError,
    AppointmentStatusMachine,
    IllegalTransitionError,
    StatusTransitionError,
    TransitionRejection,
    can_edit,
    can_transition,
    check_edit,
    check_transition,
    valid_targets,
)

S = AppointmentStatus


class TestTransitionTable:
    @pytest.mark.parametrize(
        "source, target",
        [
            (S.PENDING, S.CONFIRMED),
            (S.PENDING, S.CANCELLED),
            (S.CONFIRMED, S.COMPLETE),
            (S.CONFIRMED, S.CANCELLED),
            (S.CONFIRMED, S.PENDING),
            (S.CANCELLED, S.PENDING),
        ],
    )
    def test_allowed(self, source, target):
        assert can_transition(source, target)

    @pytest.mark.parametrize(
        "source, target",
        [
            (S.CANCELLED, S.CONFIRMED),
            (S.CANCELLED, S.CANCELLED),
            (S.CONFIRMED, S.CONFIRMED),
            (S.PENDING, S.UNKNOWN),
        ],
    )
    def test_illegal(self, source, target):
        check = check_transition(source, target)
        assert not check.allowed
        assert check.reason == TransitionRejection.ILLEGAL_TRANSITION

    def test_pending_reset_is_noop(self):
        check = check_transition(S.PENDING, S.PENDING)
        assert check.allowed
        assert check.noop

    def test_raw_spellings_accepted(self):
        assert can_transition("pend", "confirm")
        assert can_transition("Confirmed", "completed")


class TestCompleteIsTerminal:
    @pytest.mark.parametrize("target", [S.PENDING, S.CONFIRMED, S.CANCELLED])
    def test_no_change_out_of_complete(self, target):
        check = check_transition(S.COMPLETE, target)
        assert not check.allowed
        assert check.reason == TransitionRejection.APPOINTMENT_FINALIZED

    def test_complete_to_complete_is_noop(self):
        check = check_transition(S.COMPLETE, S.COMPLETE)
        assert check.allowed
        assert check.noop

    @pytest.mark.parametrize("source", [S.PENDING, S.CANCELLED, "NO_SHOW", None])
    def test_only_confirmed_can_complete(self, source):
        check = check_transition(source, S.COMPLETE)
        assert not check.allowed
        assert check.reason == TransitionRejection.APPOINTMENT_FINALIZED

    def test_cannot_reset_complete(self):
        assert can_transition(S.COMPLETE, S.PENDING) is False

    def test_cannot_edit_complete(self):
        assert can_edit(S.COMPLETE) is False
        assert check_edit("completed").message == "Completed appointments cannot be edited."

    @pytest.mark.parametrize("status", [S.PENDING, S.CONFIRMED, S.CANCELLED, "NO_SHOW", None])
    def test_everything_else_is_editable(self, status):
        assert can_edit(status)


class TestUnknownStatuses:
    @pytest.mark.parametrize("source", ["NO_SHOW", None, S.UNKNOWN])
    def test_can_only_reset_to_pending(self, source):
        assert can_transition(source, S.PENDING)
        assert not can_transition(source, S.CONFIRMED)
        assert not can_transition(source, S.CANCELLED)


class TestValidTargets:
    @pytest.mark.parametrize(
        "status, expected",
        [
            (S.PENDING, [S.PENDING, S.CONFIRMED, S.CANCELLED]),
            (S.CONFIRMED, [S.PENDING, S.COMPLETE, S.CANCELLED]),
            (S.CANCELLED, [S.PENDING]),
            (S.COMPLETE, []),
            ("NO_SHOW", [S.PENDING]),
        ],
    )
    def test_valid_targets(self, status, expected):
        assert valid_targets(status) == expected


class TestAppointmentStatusMachine:
    def test_starts_pending(self, status_machine):
        assert status_machine.status == S.PENDING
        assert not status_machine.is_terminal()

    def test_happy_path(self, status_machine):
        status_machine.transition(S.CONFIRMED)
        status_machine.transition(S.COMPLETE)
        assert status_machine.is_terminal()
        assert status_machine.get_status_trace() == ["PENDING", "CONFIRMED", "COMPLETE"]

    def test_transition_returns_new_status(self, status_machine):
        assert status_machine.transition("confirm") == S.CONFIRMED

    def test_illegal_transition_raises(self):
        machine = AppointmentStatusMachine(S.CANCELLED)
        with pytest.raises(IllegalTransitionError) as exc_info:
            machine.transition(S.CONFIRMED)
        assert exc_info.value.check.reason == TransitionRejection.ILLEGAL_TRANSITION
        assert machine.status == S.CANCELLED

    def test_complete_raises_finalized(self):
        machine = AppointmentStatusMachine("completed")
        with pytest.raises(AppointmentFinalizedError):
            machine.transition(S.PENDING)
        with pytest.raises(AppointmentFinalizedError):
            machine.ensure_editable()

    def test_errors_share_base_class(self, status_machine):
        with pytest.raises(StatusTransitionError):
            status_machine.transition(S.COMPLETE)

    def test_noop_does_not_extend_history(self, status_machine):
        status_machine.transition(S.PENDING)
        assert len(status_machine.get_history()) == 1

    def test_cancel_and_reset(self, status_machine):
        status_machine.transition(S.CANCELLED)
        status_machine.transition(S.PENDING)
        assert status_machine.get_status_trace() == ["PENDING", "CANCELLED", "PENDING"]

    def test_history_is_a_copy(self, status_machine):
        status_machine.get_history().clear()
        assert len(status_machine.get_history()) == 1

    def test_unknown_initial_status(self):
        machine = AppointmentStatusMachine("no_show")
        assert machine.status == "NO_SHOW"
        assert machine.get_valid_targets() == [S.PENDING]
        machine.ensure_editable()
        assert machine.transition(S.PENDING) == S.PENDING

    def test_history_timestamps_are_ordered(self, status_machine):
        status_machine.transition(S.CONFIRMED)
        first, second = status_machine.get_history()
        assert first.entered_at <= second.entered_at
