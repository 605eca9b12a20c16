"""Request and response bodies for the availability endpoints."""

from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from clinicops.core import config


class AvailabilityRequest(BaseModel):
    clinic_id: int
    start_time: datetime
    end_time: datetime
    exclude_appointment_id: int | None = None
    professional_id: int | None = None
    # Display-name matching is kept for older clients; prefer professional_id.
    professional_name: str | None = None

    @field_validator('professional_name')
    @classmethod
    def normalize_professional_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @model_validator(mode='after')
    def validate_range(self) -> 'AvailabilityRequest':
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError('start_time and end_time must both include or both omit a UTC offset.')
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be later than start_time.')
        return self


class ConflictDetails(BaseModel):
    id: str
    title: str
    start_time: datetime
    end_time: datetime


class AvailabilityResponse(BaseModel):
    available: bool
    conflict: bool
    conflict_type: Literal['appointment', 'calendar'] | None = None
    conflict_details: ConflictDetails | None = None


class WorkingHours(BaseModel):
    start: time
    end: time

    @model_validator(mode='after')
    def validate_window(self) -> 'WorkingHours':
        if self.end <= self.start:
            raise ValueError('Working hours must end after they start.')
        return self


class TimeSlotRequest(BaseModel):
    clinic_id: int
    date: date
    duration_minutes: int = Field(
        default=60,
        ge=config.MIN_SLOT_DURATION_MINUTES,
        le=config.MAX_SLOT_DURATION_MINUTES,
    )
    working_hours: WorkingHours | None = None
    professional_id: int | None = None


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_minutes: int


class BusyBlockResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    type: str
    label: str


class TimeSlotResponse(BaseModel):
    date: date
    duration_minutes: int
    working_hours: WorkingHours
    timezone: str
    available_slots: list[TimeSlot]
    busy_blocks: list[BusyBlockResponse]


class ReassignRequest(BaseModel):
    target_professional_id: int | None = None


class ReassignResponse(BaseModel):
    updated_count: int
    message: str
    target_professional_id: int | None = None
