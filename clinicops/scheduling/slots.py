"""
Slot Generation

Turns a working-hours window and a set of busy blocks into fixed-duration
open slots:
- busy blocks come from non-cancelled appointments, sorted by start
- slots are packed back-to-back from the start of each gap
- partial remainders shorter than the requested duration are dropped
- on the current day nothing starts before "now" rounded up to the next boundary
"""

from datetime import datetime, timedelta
from typing import Iterable

import pytz

from clinicops.scheduling.conflicts import DEFAULT_PROFESSIONAL_LABEL, occupies_time
from clinicops.scheduling.intervals import BusyBlock, TimeInterval, appointment_interval, round_up_to_boundary


def build_busy_blocks(appointments: Iterable, professional_id: int | None = None) -> list[BusyBlock]:
    blocks = []
    for appointment in appointments:
        if not occupies_time(appointment):
            continue
        if professional_id is not None and appointment.professional_id != professional_id:
            continue
        interval = appointment_interval(appointment)
        professional = appointment.professional_name or DEFAULT_PROFESSIONAL_LABEL
        blocks.append(BusyBlock(start=interval.start, end=interval.end, label=f'{professional} - Appointment'))

    blocks.sort(key=lambda block: (block.start, block.end))
    return blocks


def effective_start(
    day_start: datetime,
    now: datetime,
    rounding_minutes: int,
    tz: pytz.BaseTzInfo,
) -> datetime:
    """
    Earliest instant a slot may start.

    When "now" is already past the opening time, it is rounded up to the next
    ``rounding_minutes`` boundary so that no slot is offered in the past.
    """
    if now <= day_start:
        return day_start
    return max(day_start, round_up_to_boundary(now, rounding_minutes, tz))


def pack_slots(gap_start: datetime, gap_end: datetime, duration: timedelta) -> list[TimeInterval]:
    slots = []
    slot_start = gap_start
    while slot_start + duration <= gap_end:
        slots.append(TimeInterval(slot_start, slot_start + duration))
        slot_start += duration
    return slots


def generate_slots(
    window: TimeInterval,
    busy_blocks: list[BusyBlock],
    duration_minutes: int,
    floor: datetime | None = None,
) -> list[TimeInterval]:
    """
    Sweep the window left to right, emitting slots in every gap between busy blocks.

    ``busy_blocks`` must be sorted by start. The cursor only ever moves
    forward, so a block that began before ``floor`` still pushes it past the
    block's end.
    """
    duration = timedelta(minutes=duration_minutes)
    cursor = window.start if floor is None else max(window.start, floor)
    slots: list[TimeInterval] = []

    if cursor >= window.end:
        return slots

    for block in busy_blocks:
        if block.start >= window.end:
            break
        if cursor < block.start:
            slots.extend(pack_slots(cursor, min(block.start, window.end), duration))
        cursor = max(cursor, block.end)

    if cursor < window.end:
        slots.extend(pack_slots(cursor, window.end, duration))

    return slots
