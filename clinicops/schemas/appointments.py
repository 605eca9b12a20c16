"""Request and response bodies for appointment CRUD."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

APPOINTMENT_STATUSES = ('scheduled', 'confirmed', 'completed', 'cancelled', 'rescheduled', 'no_show')
PAYMENT_STATUSES = ('pending', 'paid', 'exempt')
MAX_SESSION_NOTES_LENGTH = 2000


def _normalize_choice(value: str | None, choices: tuple[str, ...], label: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in choices:
        raise ValueError(f'Invalid {label}.')
    return normalized


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_SESSION_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_SESSION_NOTES_LENGTH} characters or fewer.')

    return normalized


class AppointmentCreate(BaseModel):
    clinic_id: int
    contact_id: int
    professional_id: int
    scheduled_start: datetime
    duration_minutes: int = Field(default=60, ge=5, le=12 * 60)
    specialty: str | None = None
    appointment_type: str | None = None
    status: str = 'scheduled'
    payment_status: str = 'pending'
    session_notes: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _normalize_choice(value, APPOINTMENT_STATUSES, 'appointment status')

    @field_validator('payment_status')
    @classmethod
    def validate_payment_status(cls, value: str) -> str:
        return _normalize_choice(value, PAYMENT_STATUSES, 'payment status')

    @field_validator('session_notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentUpdate(BaseModel):
    contact_id: int | None = None
    professional_id: int | None = None
    scheduled_start: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=5, le=12 * 60)
    specialty: str | None = None
    appointment_type: str | None = None
    status: str | None = None
    payment_status: str | None = None
    session_notes: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        return _normalize_choice(value, APPOINTMENT_STATUSES, 'appointment status')

    @field_validator('payment_status')
    @classmethod
    def validate_payment_status(cls, value: str | None) -> str | None:
        return _normalize_choice(value, PAYMENT_STATUSES, 'payment status')

    @field_validator('session_notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentStatusUpdate(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _normalize_choice(value, APPOINTMENT_STATUSES, 'appointment status')


class AppointmentResponse(BaseModel):
    id: int
    clinic_id: int
    contact_id: int | None = None
    contact_name: str | None = None
    professional_id: int | None = None
    professional_name: str | None = None
    specialty: str | None = None
    appointment_type: str | None = None
    scheduled_start: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    payment_status: str | None = None
    session_notes: str | None = None


class AppointmentPage(BaseModel):
    items: list[AppointmentResponse]
    total: int
    page: int
    page_size: int


class DeleteAppointmentResponse(BaseModel):
    success: bool
    message: str
