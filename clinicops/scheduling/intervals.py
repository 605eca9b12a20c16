"""
Interval value types and time helpers shared by the scheduling engine.

All instants handled here are timezone-aware. Naive values only exist at the
edges: request payloads (read in the clinic's timezone) and database columns
(naive UTC).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import pytz

from clinicops.core import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: 'TimeInterval') -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: 'TimeInterval') -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class BusyBlock:
    start: datetime
    end: datetime
    label: str
    type: str = 'appointment'

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Touching edges do not conflict.
    return a_start < b_end and b_start < a_end


def get_timezone(name: str | None) -> pytz.BaseTzInfo:
    tz_name = name or config.DEFAULT_CLINIC_TIMEZONE
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Invalid timezone '%s', using UTC", tz_name)
        return pytz.UTC


def to_clinic_time(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Read naive values as clinic wall-clock time; convert aware values into the clinic zone."""
    if value.tzinfo is None:
        return tz.localize(value)
    return value.astimezone(tz)


def to_storage(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError('Refusing to store a naive datetime')
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(pytz.UTC)
    return pytz.UTC.localize(value)


def local_datetime(day: date, wall_time: time, tz: pytz.BaseTzInfo) -> datetime:
    return tz.localize(datetime.combine(day, wall_time))


def round_up_to_boundary(moment: datetime, step_minutes: int, tz: pytz.BaseTzInfo) -> datetime:
    """
    Round ``moment`` up to the next ``step_minutes`` boundary of the clinic's wall clock.

    A moment already on a boundary is returned unchanged.
    """
    local = moment.astimezone(tz).replace(tzinfo=None)
    truncated = local.replace(second=0, microsecond=0)
    minute_of_day = truncated.hour * 60 + truncated.minute
    remainder = minute_of_day % step_minutes

    if remainder == 0 and truncated == local:
        rounded = truncated
    else:
        rounded = truncated + timedelta(minutes=step_minutes - remainder)

    return tz.localize(rounded)


def appointment_duration(appointment) -> int:
    return appointment.duration_minutes or config.DEFAULT_APPOINTMENT_DURATION_MINUTES


def appointment_interval(appointment) -> TimeInterval:
    start = from_storage(appointment.scheduled_start)
    return TimeInterval(start, start + timedelta(minutes=appointment_duration(appointment)))
