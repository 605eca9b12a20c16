"""
Orphan Reassignment

Repairs appointments whose professional is no longer in the clinic's active
roster (deactivated staff, deleted memberships, rows without a professional).
"""

import logging

from clinicops.core.errors import InvalidInputError, PreconditionFailedError
from clinicops.repositories.appointments import AppointmentRepository
from clinicops.schemas.scheduling import ReassignResponse

logger = logging.getLogger(__name__)


def find_orphaned_appointments(appointments, roster) -> list:
    active_ids = {staff.id for staff in roster}
    return [appointment for appointment in appointments if appointment.professional_id not in active_ids]


def choose_target(roster, target_professional_id: int | None = None):
    """
    Pick the professional that receives orphaned appointments.

    Without an explicit choice the first roster entry (lowest id) is used.
    """
    if target_professional_id is None:
        return roster[0]

    for staff in roster:
        if staff.id == target_professional_id:
            return staff

    raise InvalidInputError(
        'Target professional is not an active professional of this clinic.',
        details={'target_professional_id': target_professional_id},
    )


def reassign_orphaned_appointments(
    repository: AppointmentRepository,
    clinic_id: int,
    target_professional_id: int | None = None,
) -> ReassignResponse:
    appointments = repository.find_all(clinic_id)
    roster = repository.get_active_professional_roster(clinic_id)

    if not roster:
        raise PreconditionFailedError(
            'No active professionals found in this clinic. Activate a professional before reassigning appointments.',
            details={'clinic_id': clinic_id},
        )

    target = choose_target(roster, target_professional_id)
    orphaned = find_orphaned_appointments(appointments, roster)

    if not orphaned:
        return ReassignResponse(
            updated_count=0,
            message='No orphaned appointments found.',
            target_professional_id=target.id,
        )

    updated_count = repository.reassign_professional(
        [appointment.id for appointment in orphaned],
        target,
    )

    logger.info(
        'Reassigned %s orphaned appointment(s) in clinic %s to professional %s',
        updated_count,
        clinic_id,
        target.id,
    )
    return ReassignResponse(
        updated_count=updated_count,
        message=f'Reassigned {updated_count} appointment(s) to {target.name}.',
        target_professional_id=target.id,
    )
