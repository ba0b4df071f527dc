from clinic_scheduling.scheduling.booking_evaluator import (
    BookingDecision,
    ReservationResult,
    ReservationStore,
    SchedulingService,
    evaluate_booking,
)
from clinic_scheduling.scheduling.conflict_detector import build_slot_grid, classify
from clinic_scheduling.scheduling.slot_generator import SlotConfigurationError, generate_slots
from clinic_scheduling.scheduling.status_machine import (
    AppointmentStatusMachine,
    can_edit,
    can_transition,
)
from clinic_scheduling.scheduling.status_normalizer import normalize_status
from clinic_scheduling.scheduling.temporal_policy import SchedulingPolicy, check_temporal_policy

__all__ = [
    "BookingDecision", "ReservationResult", "ReservationStore", "SchedulingService",
    "evaluate_booking", "build_slot_grid", "classify", "SlotConfigurationError",
    "generate_slots", "AppointmentStatusMachine", "can_edit", "can_transition",
    "normalize_status", "SchedulingPolicy", "check_temporal_policy",
]
