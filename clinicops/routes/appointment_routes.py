from datetime import date, timedelta

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker

from clinicops.auth.dependencies import get_current_staff
from clinicops.core.errors import InvalidInputError, NotFoundError
from clinicops.models.appointment import Appointment
from clinicops.models.contact import Contact
from clinicops.models.staff import ClinicStaff
from clinicops.repositories.appointments import AppointmentFilters, SqlAlchemyAppointmentRepository
from clinicops.routes.deps import ensure_database_ready, get_calendar_sync_client, get_db, get_repository
from clinicops.scheduling.intervals import appointment_duration, from_storage, get_timezone, to_clinic_time
from clinicops.scheduling.reassignment import reassign_orphaned_appointments
from clinicops.schemas.appointments import (
    APPOINTMENT_STATUSES,
    AppointmentCreate,
    AppointmentPage,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    DeleteAppointmentResponse,
)
from clinicops.schemas.scheduling import ReassignRequest, ReassignResponse
from clinicops.services.calendar_sync import CalendarSyncClient, dispatch_pending_calendar_sync

router = APIRouter(tags=['appointments'])

MAX_PAGE_SIZE = 100


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    start = from_storage(appointment.scheduled_start)
    duration_minutes = appointment_duration(appointment)
    return AppointmentResponse(
        id=appointment.id,
        clinic_id=appointment.clinic_id,
        contact_id=appointment.contact_id,
        contact_name=appointment.contact.name if appointment.contact is not None else None,
        professional_id=appointment.professional_id,
        professional_name=appointment.professional_name,
        specialty=appointment.specialty,
        appointment_type=appointment.appointment_type,
        scheduled_start=start,
        end_time=start + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        status=appointment.status,
        payment_status=appointment.payment_status,
        session_notes=appointment.session_notes,
    )


def schedule_calendar_sync(background_tasks: BackgroundTasks, db: Session, client: CalendarSyncClient) -> None:
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    background_tasks.add_task(dispatch_pending_calendar_sync, session_factory, client)


def get_clinic_or_404(repository: SqlAlchemyAppointmentRepository, clinic_id: int):
    clinic = repository.get_clinic(clinic_id)
    if clinic is None:
        raise NotFoundError('Clinic not found.')
    return clinic


def get_active_professional(repository: SqlAlchemyAppointmentRepository, clinic_id: int, professional_id: int) -> ClinicStaff:
    professional = repository.get_staff_member(clinic_id, professional_id)
    if professional is None or not professional.is_active or not professional.is_professional:
        raise InvalidInputError(
            'Professional is not an active professional of this clinic.',
            details={'professional_id': professional_id},
        )
    return professional


def validate_contact(db: Session, clinic_id: int, contact_id: int) -> None:
    contact = db.get(Contact, contact_id)
    if contact is None or contact.clinic_id != clinic_id:
        raise InvalidInputError('Contact not found in this clinic.', details={'contact_id': contact_id})


def build_filters(status_filter: str | None, day: date | None, contact_id: int | None) -> AppointmentFilters:
    normalized_status = None
    if status_filter is not None:
        normalized_status = status_filter.strip().lower()
        if normalized_status not in APPOINTMENT_STATUSES:
            raise InvalidInputError('Invalid appointment status.', details={'status': status_filter})
    return AppointmentFilters(status=normalized_status, date=day, contact_id=contact_id)


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    clinic_id: int = Query(...),
    status_filter: str | None = Query(default=None, alias='status'),
    day: date | None = Query(default=None, alias='date'),
    contact_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
):
    ensure_database_ready(db)

    filters = build_filters(status_filter, day, contact_id)
    return [to_appointment_response(appointment) for appointment in repository.find_all(clinic_id, filters)]


@router.get('/appointments/paginated', response_model=AppointmentPage)
def list_appointments_paginated(
    clinic_id: int = Query(...),
    status_filter: str | None = Query(default=None, alias='status'),
    day: date | None = Query(default=None, alias='date'),
    contact_id: int | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
):
    ensure_database_ready(db)

    filters = build_filters(status_filter, day, contact_id)
    items, total = repository.find_all_paginated(clinic_id, filters, page, page_size)
    return AppointmentPage(
        items=[to_appointment_response(appointment) for appointment in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get('/appointments/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
):
    ensure_database_ready(db)

    appointment = repository.find_by_id(appointment_id)
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return to_appointment_response(appointment)


@router.get('/contacts/{contact_id}/appointments', response_model=list[AppointmentResponse])
def list_contact_appointments(
    contact_id: int,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
):
    ensure_database_ready(db)
    return [to_appointment_response(appointment) for appointment in repository.find_by_contact(contact_id)]


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: AppointmentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    sync_client: CalendarSyncClient = Depends(get_calendar_sync_client),
):
    ensure_database_ready(db)

    clinic = get_clinic_or_404(repository, data.clinic_id)
    validate_contact(db, clinic.id, data.contact_id)
    professional = get_active_professional(repository, clinic.id, data.professional_id)

    values = data.model_dump()
    values['scheduled_start'] = to_clinic_time(data.scheduled_start, get_timezone(clinic.timezone))
    values['professional_name'] = professional.name

    appointment = repository.create(values)
    schedule_calendar_sync(background_tasks, db, sync_client)
    return to_appointment_response(appointment)


@router.put('/appointments/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    sync_client: CalendarSyncClient = Depends(get_calendar_sync_client),
):
    ensure_database_ready(db)

    appointment = repository.find_by_id(appointment_id)
    if appointment is None:
        raise NotFoundError('Appointment not found.')

    clinic = get_clinic_or_404(repository, appointment.clinic_id)
    values = data.model_dump(exclude_unset=True)

    for required_field in ('contact_id', 'professional_id', 'scheduled_start', 'status'):
        if required_field in values and values[required_field] is None:
            raise InvalidInputError(f'{required_field} cannot be null.')

    if 'contact_id' in values:
        validate_contact(db, clinic.id, values['contact_id'])
    if 'professional_id' in values:
        professional = get_active_professional(repository, clinic.id, values['professional_id'])
        values['professional_name'] = professional.name
    if 'scheduled_start' in values:
        values['scheduled_start'] = to_clinic_time(values['scheduled_start'], get_timezone(clinic.timezone))

    updated = repository.update(appointment_id, values)
    if updated is None:
        raise NotFoundError('Appointment not found.')

    schedule_calendar_sync(background_tasks, db, sync_client)
    return to_appointment_response(updated)


@router.patch('/appointments/{appointment_id}', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    sync_client: CalendarSyncClient = Depends(get_calendar_sync_client),
):
    ensure_database_ready(db)

    appointment = repository.update_status(appointment_id, data.status)
    if appointment is None:
        raise NotFoundError('Appointment not found.')

    schedule_calendar_sync(background_tasks, db, sync_client)
    return to_appointment_response(appointment)


@router.delete('/appointments/{appointment_id}', response_model=DeleteAppointmentResponse)
def delete_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    sync_client: CalendarSyncClient = Depends(get_calendar_sync_client),
):
    ensure_database_ready(db)

    if not repository.delete(appointment_id):
        raise NotFoundError('Appointment not found.')

    schedule_calendar_sync(background_tasks, db, sync_client)
    return DeleteAppointmentResponse(success=True, message='Appointment deleted successfully.')


@router.post('/clinic/{clinic_id}/appointments/reassign', response_model=ReassignResponse)
def reassign_appointments(
    clinic_id: int,
    background_tasks: BackgroundTasks,
    data: ReassignRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    sync_client: CalendarSyncClient = Depends(get_calendar_sync_client),
    current_staff: ClinicStaff = Depends(get_current_staff),
):
    if current_staff.clinic_id != clinic_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only staff of this clinic can reassign its appointments.',
        )

    ensure_database_ready(db)
    get_clinic_or_404(repository, clinic_id)

    target_professional_id = data.target_professional_id if data is not None else None
    result = reassign_orphaned_appointments(repository, clinic_id, target_professional_id)

    if result.updated_count:
        schedule_calendar_sync(background_tasks, db, sync_client)
    return result
