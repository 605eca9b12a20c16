"""
Conflict detection.

Pure functions over appointments that were already fetched for a clinic and
time range. Repository order is preserved so that the first colliding
appointment reported is stable.
"""

from datetime import datetime
from typing import Iterable

from clinicops.scheduling.intervals import TimeInterval, appointment_interval

CANCELLED_STATUS = 'cancelled'
PAST_TIME_CONFLICT_ID = 'past-time'
PAST_TIME_TITLE = 'Time has already passed'
DEFAULT_PATIENT_LABEL = 'Patient'
DEFAULT_PROFESSIONAL_LABEL = 'Professional'


def occupies_time(appointment) -> bool:
    return (appointment.status or '').lower() != CANCELLED_STATUS


def is_in_past(candidate: TimeInterval, now: datetime) -> bool:
    return candidate.start <= now


def narrow_candidates(
    appointments: Iterable,
    exclude_appointment_id: int | None = None,
    professional_id: int | None = None,
    professional_name: str | None = None,
) -> list:
    """
    Keep only the appointments that can block a candidate interval.

    Cancelled appointments and the appointment being edited are dropped. When
    ``professional_id`` is given it wins over ``professional_name``.
    """
    candidates = []
    for appointment in appointments:
        if not occupies_time(appointment):
            continue
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if professional_id is not None:
            if appointment.professional_id != professional_id:
                continue
        elif professional_name is not None and appointment.professional_name != professional_name:
            continue
        candidates.append(appointment)
    return candidates


def find_conflict(candidate: TimeInterval, appointments: Iterable):
    for appointment in appointments:
        if candidate.overlaps(appointment_interval(appointment)):
            return appointment
    return None


def conflict_title(appointment) -> str:
    professional = appointment.professional_name or DEFAULT_PROFESSIONAL_LABEL
    contact = getattr(appointment, 'contact', None)
    patient = contact.name if contact is not None and contact.name else DEFAULT_PATIENT_LABEL
    return f'{professional} - {patient}'
