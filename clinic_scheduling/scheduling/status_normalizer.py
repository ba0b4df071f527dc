"""Maps legacy and free-form status spellings from the store onto AppointmentStatus."""

from typing import Optional, Union

from clinic_scheduling.schemas.schedule_schema import AppointmentStatus

StatusValue = Union[AppointmentStatus, str]

_SYNONYMS: dict[str, AppointmentStatus] = {
    "CONFIRM": AppointmentStatus.CONFIRMED,
    "CONFIRMED": AppointmentStatus.CONFIRMED,
    "PEND": AppointmentStatus.PENDING,
    "PENDING": AppointmentStatus.PENDING,
    "COMPLET": AppointmentStatus.COMPLETE,
    "COMPLETE": AppointmentStatus.COMPLETE,
    "COMPLETED": AppointmentStatus.COMPLETE,
    "CANCEL": AppointmentStatus.CANCELLED,
    "CANCELLED": AppointmentStatus.CANCELLED,
    "CANCELED": AppointmentStatus.CANCELLED,
    "UNKNOWN": AppointmentStatus.UNKNOWN,
}


def normalize_status(raw: Optional[str]) -> StatusValue:
    """Canonicalize a raw status string.

    Known spellings map onto an AppointmentStatus member, other non-empty
    values pass through trimmed and uppercased, and None or blank input
    maps to UNKNOWN. Idempotent.

    Examples:
        >>> normalize_status(" Confirmed ")
        <AppointmentStatus.CONFIRMED: 'CONFIRMED'>
        >>> normalize_status("no_show")
        'NO_SHOW'
    """
    if raw is None:
        return AppointmentStatus.UNKNOWN
    if isinstance(raw, AppointmentStatus):
        return raw
    value = str(raw).strip().upper()
    if not value:
        return AppointmentStatus.UNKNOWN
    return _SYNONYMS.get(value, value)


def parse_status(raw: Optional[str]) -> Optional[AppointmentStatus]:
    """Return the canonical member, or None for statuses the core does not know."""
    normalized = normalize_status(raw)
    return normalized if isinstance(normalized, AppointmentStatus) else None


def status_label(value: StatusValue) -> str:
    """Plain string form of a normalized status."""
    return value.value if isinstance(value, AppointmentStatus) else str(value)
