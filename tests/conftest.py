"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytest

from clinic_scheduling.schemas.schedule_schema import AppointmentWindow, DaySchedule
from clinic_scheduling.scheduling.status_machine import AppointmentStatusMachine
from clinic_scheduling.scheduling.temporal_policy import SchedulingPolicy
from clinic_scheduling.tools.reservations import InMemoryReservationStore

# Tuesday morning; the booking day below is two days later.
FIXED_NOW = datetime(2026, 3, 10, 9, 15)
BOOKING_DAY = date(2026, 3, 12)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def booking_day() -> date:
    return BOOKING_DAY


@pytest.fixture
def policy() -> SchedulingPolicy:
    return SchedulingPolicy()


@pytest.fixture
def status_machine():
    return AppointmentStatusMachine()


@pytest.fixture
def store():
    store = InMemoryReservationStore(clock=lambda: FIXED_NOW)
    yield store
    store.reset()


def at(day: date, clock: str) -> datetime:
    hours, minutes = clock.split(":")
    return datetime(day.year, day.month, day.day) + timedelta(
        hours=int(hours), minutes=int(minutes)
    )


def make_window(
    start: str,
    end: str,
    day: date = BOOKING_DAY,
    appointment_id: Optional[Union[int, str]] = None,
    status: Optional[str] = "CONFIRMED",
) -> AppointmentWindow:
    """Helper to create a window from ``HH:MM`` bounds on ``day``."""
    return AppointmentWindow(
        start=at(day, start),
        end=at(day, end),
        appointment_id=appointment_id,
        status=status,
    )


def make_schedule(
    *windows: AppointmentWindow,
    day: date = BOOKING_DAY,
    dentist_id: Optional[Union[int, str]] = 1,
) -> DaySchedule:
    return DaySchedule(day=day, dentist_id=dentist_id, windows=list(windows))
