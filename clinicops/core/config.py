import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None, default: time) -> time:
    if not value:
        return default
    hours, minutes = value.strip().split(":", 1)
    return time(int(hours), int(minutes))


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:5173"])

DEFAULT_CLINIC_TIMEZONE = os.getenv("DEFAULT_CLINIC_TIMEZONE", "America/Sao_Paulo")
DEFAULT_WORKING_HOURS_START = _get_time(os.getenv("DEFAULT_WORKING_HOURS_START"), time(8, 0))
DEFAULT_WORKING_HOURS_END = _get_time(os.getenv("DEFAULT_WORKING_HOURS_END"), time(18, 0))
DEFAULT_APPOINTMENT_DURATION_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "60"))
SAME_DAY_ROUNDING_MINUTES = int(os.getenv("SAME_DAY_ROUNDING_MINUTES", "30"))
MIN_SLOT_DURATION_MINUTES = 5
MAX_SLOT_DURATION_MINUTES = 12 * 60

# Re-checks overlaps inside the write transaction under a (professional, day) lock.
ENFORCE_BOOKING_EXCLUSIVITY = _get_bool(os.getenv("ENFORCE_BOOKING_EXCLUSIVITY"), default=True)

CALENDAR_SYNC_URL = os.getenv("CALENDAR_SYNC_URL", "")
CALENDAR_SYNC_TIMEOUT_SECONDS = float(os.getenv("CALENDAR_SYNC_TIMEOUT_SECONDS", "10"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if DEFAULT_WORKING_HOURS_START >= DEFAULT_WORKING_HOURS_END:
        raise RuntimeError("DEFAULT_WORKING_HOURS_START must be earlier than DEFAULT_WORKING_HOURS_END.")
    if SAME_DAY_ROUNDING_MINUTES <= 0:
        raise RuntimeError("SAME_DAY_ROUNDING_MINUTES must be positive.")
