from clinic_scheduling.tools.availability import check_availability
from clinic_scheduling.tools.reservations import InMemoryReservationStore

__all__ = ["check_availability", "InMemoryReservationStore"]
