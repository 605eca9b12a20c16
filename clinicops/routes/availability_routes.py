from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinicops.routes.deps import ensure_database_ready, get_db, get_scheduling_engine
from clinicops.scheduling.engine import SchedulingEngine
from clinicops.schemas.scheduling import (
    AvailabilityRequest,
    AvailabilityResponse,
    TimeSlotRequest,
    TimeSlotResponse,
)

router = APIRouter(tags=['availability'])


@router.post('/check', response_model=AvailabilityResponse)
def check_availability(
    data: AvailabilityRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready(db)
    return engine.check_availability(data)


@router.post('/find-slots', response_model=TimeSlotResponse)
def find_available_slots(
    data: TimeSlotRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    ensure_database_ready(db)
    return engine.find_available_slots(data)
