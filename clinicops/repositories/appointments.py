"""
Appointment Repository

The storage contract consumed by the scheduling engine, and its SQLAlchemy
implementation. Every listing is ordered by ``scheduled_start`` then ``id`` so
that "first match" decisions made on top of it are reproducible.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Protocol, runtime_checkable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicops.core import config
from clinicops.core.errors import BookingConflictError
from clinicops.models.appointment import Appointment
from clinicops.models.booking_lock import BookingLock
from clinicops.models.clinic import Clinic
from clinicops.models.staff import ClinicStaff
from clinicops.scheduling.conflicts import CANCELLED_STATUS, find_conflict, narrow_candidates
from clinicops.scheduling.intervals import (
    TimeInterval,
    appointment_interval,
    get_timezone,
    local_datetime,
    to_storage,
)
from clinicops.services.calendar_sync import enqueue_calendar_sync

logger = logging.getLogger(__name__)

# How far before a range start an appointment may begin and still reach into it.
MAX_APPOINTMENT_LOOKBACK = timedelta(hours=24)


@dataclass
class AppointmentFilters:
    status: str | None = None
    # Quoted: the field name shadows the type at class scope.
    date: 'date | None' = None
    contact_id: int | None = None


@runtime_checkable
class AppointmentRepository(Protocol):
    """Read/write access to appointments and clinic rosters."""

    def get_clinic(self, clinic_id: int) -> Clinic | None:
        ...

    def find_by_date_range(self, clinic_id: int, start: datetime, end: datetime) -> list[Appointment]:
        """Appointments of the clinic whose interval intersects ``[start, end]``, ascending by start."""
        ...

    def find_by_id(self, appointment_id: int) -> Appointment | None:
        ...

    def find_by_contact(self, contact_id: int) -> list[Appointment]:
        ...

    def find_all(self, clinic_id: int, filters: AppointmentFilters | None = None) -> list[Appointment]:
        ...

    def find_all_paginated(
        self,
        clinic_id: int,
        filters: AppointmentFilters | None,
        page: int,
        page_size: int,
    ) -> tuple[list[Appointment], int]:
        ...

    def create(self, data: dict) -> Appointment:
        ...

    def update(self, appointment_id: int, data: dict) -> Appointment | None:
        ...

    def update_status(self, appointment_id: int, status: str) -> Appointment | None:
        ...

    def delete(self, appointment_id: int) -> bool:
        ...

    def get_active_professional_roster(self, clinic_id: int) -> list[ClinicStaff]:
        """Active staff flagged as professionals, in ascending id order."""
        ...

    def get_staff_member(self, clinic_id: int, staff_id: int) -> ClinicStaff | None:
        ...

    def reassign_professional(self, appointment_ids: Iterable[int], professional: ClinicStaff) -> int:
        ...


class SqlAlchemyAppointmentRepository:
    def __init__(self, db: Session, enforce_exclusivity: bool | None = None):
        self.db = db
        if enforce_exclusivity is None:
            enforce_exclusivity = config.ENFORCE_BOOKING_EXCLUSIVITY
        self.enforce_exclusivity = enforce_exclusivity

    def _ordered(self, query):
        return query.order_by(Appointment.scheduled_start.asc(), Appointment.id.asc())

    def get_clinic(self, clinic_id: int) -> Clinic | None:
        return self.db.get(Clinic, clinic_id)

    def find_by_date_range(self, clinic_id: int, start: datetime, end: datetime) -> list[Appointment]:
        rows = self._ordered(
            self.db.query(Appointment).filter(
                Appointment.clinic_id == clinic_id,
                Appointment.scheduled_start <= to_storage(end),
                Appointment.scheduled_start >= to_storage(start - MAX_APPOINTMENT_LOOKBACK),
            )
        ).all()

        # Durations live in a column, so the upper bound is refined here.
        return [
            appointment
            for appointment in rows
            if appointment_interval(appointment).end >= start
        ]

    def find_by_id(self, appointment_id: int) -> Appointment | None:
        return self.db.get(Appointment, appointment_id)

    def find_by_contact(self, contact_id: int) -> list[Appointment]:
        return self._ordered(self.db.query(Appointment).filter(Appointment.contact_id == contact_id)).all()

    def _filtered(self, clinic_id: int, filters: AppointmentFilters | None):
        query = self.db.query(Appointment).filter(Appointment.clinic_id == clinic_id)
        if filters is None:
            return query

        if filters.status:
            query = query.filter(Appointment.status == filters.status)
        if filters.contact_id is not None:
            query = query.filter(Appointment.contact_id == filters.contact_id)
        if filters.date is not None:
            clinic = self.get_clinic(clinic_id)
            tz = get_timezone(clinic.timezone if clinic else None)
            day_start = local_datetime(filters.date, datetime.min.time(), tz)
            day_end = local_datetime(filters.date + timedelta(days=1), datetime.min.time(), tz)
            query = query.filter(
                Appointment.scheduled_start >= to_storage(day_start),
                Appointment.scheduled_start < to_storage(day_end),
            )
        return query

    def find_all(self, clinic_id: int, filters: AppointmentFilters | None = None) -> list[Appointment]:
        return self._ordered(self._filtered(clinic_id, filters)).all()

    def find_all_paginated(
        self,
        clinic_id: int,
        filters: AppointmentFilters | None,
        page: int,
        page_size: int,
    ) -> tuple[list[Appointment], int]:
        query = self._filtered(clinic_id, filters)
        total = query.count()
        items = self._ordered(query).offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def _find_lock(self, professional_id: int, day: date) -> BookingLock | None:
        return self.db.query(BookingLock).filter(
            BookingLock.professional_id == professional_id,
            BookingLock.day == day,
        ).with_for_update().first()

    def _lock_professional_day(self, professional_id: int, day: date) -> None:
        if self._find_lock(professional_id, day) is not None:
            return

        # A concurrent writer may insert the same row first; the unique constraint decides.
        self.db.add(BookingLock(professional_id=professional_id, day=day))
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise BookingConflictError(
                'Another booking for this professional is being saved. Try again.',
            ) from exc
        self._find_lock(professional_id, day)

    def _assert_exclusive(
        self,
        clinic_id: int,
        professional_id: int | None,
        start: datetime,
        duration_minutes: int,
        status: str | None,
        exclude_appointment_id: int | None = None,
    ) -> None:
        if not self.enforce_exclusivity or professional_id is None or status == CANCELLED_STATUS:
            return

        clinic = self.get_clinic(clinic_id)
        tz = get_timezone(clinic.timezone if clinic else None)
        self._lock_professional_day(professional_id, start.astimezone(tz).date())

        candidate = TimeInterval(start, start + timedelta(minutes=duration_minutes))
        existing = self.find_by_date_range(clinic_id, candidate.start, candidate.end)
        conflicting = find_conflict(
            candidate,
            narrow_candidates(
                existing,
                exclude_appointment_id=exclude_appointment_id,
                professional_id=professional_id,
            ),
        )
        if conflicting is not None:
            self.db.rollback()
            raise BookingConflictError(
                'This time is already booked for this professional.',
                details={'conflicting_appointment_id': conflicting.id},
            )

    def create(self, data: dict) -> Appointment:
        values = dict(data)
        start = values.pop('scheduled_start')
        duration = values.get('duration_minutes') or config.DEFAULT_APPOINTMENT_DURATION_MINUTES

        self._assert_exclusive(
            values['clinic_id'],
            values.get('professional_id'),
            start,
            duration,
            values.get('status'),
        )

        appointment = Appointment(scheduled_start=to_storage(start), **values)
        self.db.add(appointment)
        self.db.flush()
        enqueue_calendar_sync(self.db, appointment, 'upsert')
        self.db.commit()
        self.db.refresh(appointment)

        logger.info('Created appointment %s for clinic %s', appointment.id, appointment.clinic_id)
        return appointment

    def update(self, appointment_id: int, data: dict) -> Appointment | None:
        appointment = self.find_by_id(appointment_id)
        if appointment is None:
            return None

        values = dict(data)
        start = values.pop('scheduled_start', None)
        current = appointment_interval(appointment)
        new_start = start if start is not None else current.start
        new_duration = values.get('duration_minutes') or appointment.duration_minutes or config.DEFAULT_APPOINTMENT_DURATION_MINUTES
        new_professional_id = values.get('professional_id', appointment.professional_id)
        new_status = values.get('status', appointment.status)

        timing_changed = (
            start is not None
            or 'duration_minutes' in values
            or 'professional_id' in values
            or 'status' in values
        )
        if timing_changed:
            self._assert_exclusive(
                appointment.clinic_id,
                new_professional_id,
                new_start,
                new_duration,
                new_status,
                exclude_appointment_id=appointment.id,
            )

        if start is not None:
            appointment.scheduled_start = to_storage(start)
        for field, value in values.items():
            setattr(appointment, field, value)

        enqueue_calendar_sync(self.db, appointment, 'upsert')
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def update_status(self, appointment_id: int, status: str) -> Appointment | None:
        return self.update(appointment_id, {'status': status})

    def delete(self, appointment_id: int) -> bool:
        appointment = self.find_by_id(appointment_id)
        if appointment is None:
            return False

        if appointment.calendar_event_id:
            enqueue_calendar_sync(self.db, appointment, 'delete')
        self.db.delete(appointment)
        self.db.commit()

        logger.info('Deleted appointment %s', appointment_id)
        return True

    def get_active_professional_roster(self, clinic_id: int) -> list[ClinicStaff]:
        return self.db.query(ClinicStaff).filter(
            ClinicStaff.clinic_id == clinic_id,
            ClinicStaff.is_active.is_(True),
            ClinicStaff.is_professional.is_(True),
        ).order_by(ClinicStaff.id.asc()).all()

    def get_staff_member(self, clinic_id: int, staff_id: int) -> ClinicStaff | None:
        return self.db.query(ClinicStaff).filter(
            ClinicStaff.clinic_id == clinic_id,
            ClinicStaff.id == staff_id,
        ).first()

    def reassign_professional(self, appointment_ids: Iterable[int], professional: ClinicStaff) -> int:
        ids = list(appointment_ids)
        if not ids:
            return 0

        appointments = self.db.query(Appointment).filter(Appointment.id.in_(ids)).all()
        for appointment in appointments:
            appointment.professional_id = professional.id
            appointment.professional_name = professional.name
            enqueue_calendar_sync(self.db, appointment, 'upsert')

        self.db.commit()
        return len(appointments)
