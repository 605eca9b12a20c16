"""
Scheduling Engine

Facade over conflict detection and slot generation. Stateless: every call
reads what it needs from the repository and returns a response model.

Availability checks and appointment writes are separate steps. Two callers can
both see "available" for the same professional and interval; the write path in
``SqlAlchemyAppointmentRepository`` re-checks under a per-professional, per-day
lock to close that gap.
"""

import logging
from datetime import datetime
from typing import Callable

import pytz

from clinicops.core import config
from clinicops.core.errors import InvalidInputError, NotFoundError
from clinicops.repositories.appointments import AppointmentRepository
from clinicops.scheduling.conflicts import (
    PAST_TIME_CONFLICT_ID,
    PAST_TIME_TITLE,
    conflict_title,
    find_conflict,
    is_in_past,
    narrow_candidates,
)
from clinicops.scheduling.intervals import (
    TimeInterval,
    appointment_interval,
    get_timezone,
    local_datetime,
    to_clinic_time,
)
from clinicops.scheduling.slots import build_busy_blocks, effective_start, generate_slots
from clinicops.schemas.scheduling import (
    AvailabilityRequest,
    AvailabilityResponse,
    BusyBlockResponse,
    ConflictDetails,
    TimeSlot,
    TimeSlotRequest,
    TimeSlotResponse,
    WorkingHours,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SchedulingEngine:
    def __init__(
        self,
        repository: AppointmentRepository,
        clock: Callable[[], datetime] | None = None,
        rounding_minutes: int | None = None,
    ):
        self.repository = repository
        self.clock = clock or utc_now
        self.rounding_minutes = rounding_minutes or config.SAME_DAY_ROUNDING_MINUTES

    def _get_clinic(self, clinic_id: int):
        clinic = self.repository.get_clinic(clinic_id)
        if clinic is None:
            raise NotFoundError('Clinic not found.')
        return clinic

    def check_availability(self, request: AvailabilityRequest) -> AvailabilityResponse:
        clinic = self._get_clinic(request.clinic_id)
        tz = get_timezone(clinic.timezone)

        candidate = TimeInterval(
            to_clinic_time(request.start_time, tz),
            to_clinic_time(request.end_time, tz),
        )
        if candidate.end <= candidate.start:
            raise InvalidInputError('end_time must be later than start_time.')

        if is_in_past(candidate, self.clock()):
            return AvailabilityResponse(
                available=False,
                conflict=True,
                conflict_type='appointment',
                conflict_details=ConflictDetails(
                    id=PAST_TIME_CONFLICT_ID,
                    title=PAST_TIME_TITLE,
                    start_time=candidate.start,
                    end_time=candidate.end,
                ),
            )

        existing = self.repository.find_by_date_range(clinic.id, candidate.start, candidate.end)
        relevant = narrow_candidates(
            existing,
            exclude_appointment_id=request.exclude_appointment_id,
            professional_id=request.professional_id,
            professional_name=request.professional_name,
        )

        conflicting = find_conflict(candidate, relevant)
        if conflicting is None:
            return AvailabilityResponse(available=True, conflict=False)

        interval = appointment_interval(conflicting)
        logger.debug(
            'Candidate %s-%s in clinic %s collides with appointment %s',
            candidate.start.isoformat(),
            candidate.end.isoformat(),
            clinic.id,
            conflicting.id,
        )
        return AvailabilityResponse(
            available=False,
            conflict=True,
            conflict_type='appointment',
            conflict_details=ConflictDetails(
                id=str(conflicting.id),
                title=conflict_title(conflicting),
                start_time=interval.start.astimezone(tz),
                end_time=interval.end.astimezone(tz),
            ),
        )

    def _working_hours(self, request: TimeSlotRequest, clinic) -> WorkingHours:
        if request.working_hours is not None:
            return request.working_hours

        start = clinic.working_hours_start or config.DEFAULT_WORKING_HOURS_START
        end = clinic.working_hours_end or config.DEFAULT_WORKING_HOURS_END
        if end <= start:
            logger.warning('Clinic %s has an empty working-hours window, using defaults', clinic.id)
            start, end = config.DEFAULT_WORKING_HOURS_START, config.DEFAULT_WORKING_HOURS_END
        return WorkingHours(start=start, end=end)

    def find_available_slots(self, request: TimeSlotRequest) -> TimeSlotResponse:
        clinic = self._get_clinic(request.clinic_id)
        tz = get_timezone(clinic.timezone)
        working_hours = self._working_hours(request, clinic)

        window = TimeInterval(
            local_datetime(request.date, working_hours.start, tz),
            local_datetime(request.date, working_hours.end, tz),
        )

        appointments = self.repository.find_by_date_range(clinic.id, window.start, window.end)
        busy_blocks = [
            block
            for block in build_busy_blocks(appointments, professional_id=request.professional_id)
            if block.interval.overlaps(window)
        ]

        # Only the clinic's current day is clipped to "now"; other dates get the whole window.
        now = self.clock()
        floor = window.start
        if request.date == now.astimezone(tz).date():
            floor = effective_start(window.start, now, self.rounding_minutes, tz)
        slots = generate_slots(window, busy_blocks, request.duration_minutes, floor=floor)

        return TimeSlotResponse(
            date=request.date,
            duration_minutes=request.duration_minutes,
            working_hours=working_hours,
            timezone=tz.zone,
            available_slots=[
                TimeSlot(
                    start_time=slot.start.astimezone(tz),
                    end_time=slot.end.astimezone(tz),
                    duration_minutes=request.duration_minutes,
                )
                for slot in slots
            ],
            busy_blocks=[
                BusyBlockResponse(
                    start_time=block.start.astimezone(tz),
                    end_time=block.end.astimezone(tz),
                    type=block.type,
                    label=block.label,
                )
                for block in busy_blocks
            ],
        )

