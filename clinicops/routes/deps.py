from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinicops.database import SessionLocal, ensure_appointment_schema
from clinicops.repositories.appointments import SqlAlchemyAppointmentRepository
from clinicops.scheduling.engine import SchedulingEngine, utc_now
from clinicops.services.calendar_sync import CalendarSyncClient


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_repository(db: Session = Depends(get_db)) -> SqlAlchemyAppointmentRepository:
    return SqlAlchemyAppointmentRepository(db)


def get_scheduling_engine(
    repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SchedulingEngine:
    return SchedulingEngine(repository, clock=clock)


def get_calendar_sync_client() -> CalendarSyncClient:
    return CalendarSyncClient()


def ensure_database_ready(db: Session) -> None:
    try:
        ensure_appointment_schema(db.get_bind())
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc
