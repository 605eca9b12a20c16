import os
from datetime import datetime, time

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from clinicops.database import Base  # noqa: E402
from clinicops.models.appointment import Appointment  # noqa: E402
from clinicops.models.booking_lock import BookingLock  # noqa: E402,F401
from clinicops.models.calendar_sync_task import CalendarSyncTask  # noqa: E402,F401
from clinicops.models.clinic import Clinic  # noqa: E402
from clinicops.models.contact import Contact  # noqa: E402
from clinicops.models.staff import ClinicStaff  # noqa: E402
from clinicops.scheduling.intervals import to_storage  # noqa: E402
from clinicops.services.calendar_sync import CalendarSyncClient  # noqa: E402

FIXED_NOW = datetime(2030, 1, 1, 12, 0, tzinfo=pytz.UTC)


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_clinic(db_session):
    def _make_clinic(name='Clinica Central', timezone='UTC', working_hours=(time(8, 0), time(18, 0))):
        clinic = Clinic(
            name=name,
            timezone=timezone,
            working_hours_start=working_hours[0] if working_hours else None,
            working_hours_end=working_hours[1] if working_hours else None,
        )
        db_session.add(clinic)
        db_session.commit()
        db_session.refresh(clinic)
        return clinic

    return _make_clinic


@pytest.fixture
def make_staff(db_session):
    def _make_staff(clinic, name, email=None, is_professional=True, is_active=True, role='professional'):
        staff = ClinicStaff(
            clinic_id=clinic.id,
            name=name,
            email=email,
            role=role,
            is_professional=is_professional,
            is_active=is_active,
        )
        db_session.add(staff)
        db_session.commit()
        db_session.refresh(staff)
        return staff

    return _make_staff


@pytest.fixture
def make_contact(db_session):
    def _make_contact(clinic, name='Maria Souza', phone='+5511999990000'):
        contact = Contact(clinic_id=clinic.id, name=name, phone=phone)
        db_session.add(contact)
        db_session.commit()
        db_session.refresh(contact)
        return contact

    return _make_contact


@pytest.fixture
def make_appointment(db_session):
    def _make_appointment(
        clinic,
        start,
        duration_minutes=60,
        professional=None,
        contact=None,
        status='scheduled',
        calendar_event_id=None,
    ):
        if start.tzinfo is None:
            start = pytz.UTC.localize(start)
        appointment = Appointment(
            clinic_id=clinic.id,
            contact_id=contact.id if contact is not None else None,
            professional_id=professional.id if professional is not None else None,
            professional_name=professional.name if professional is not None else None,
            scheduled_start=to_storage(start),
            duration_minutes=duration_minutes,
            status=status,
            calendar_event_id=calendar_event_id,
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _make_appointment


@pytest.fixture
def client(session_factory, monkeypatch: pytest.MonkeyPatch):
    from clinicops.main import app
    from clinicops.routes import deps

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr('clinicops.routes.availability_routes.ensure_database_ready', lambda db: None)
    monkeypatch.setattr('clinicops.routes.appointment_routes.ensure_database_ready', lambda db: None)

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: (lambda: FIXED_NOW)
    app.dependency_overrides[deps.get_calendar_sync_client] = lambda: CalendarSyncClient(base_url='')
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
