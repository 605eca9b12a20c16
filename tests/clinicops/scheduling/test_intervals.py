from datetime import datetime, timedelta

import pytest
import pytz

from clinicops.scheduling.intervals import (
    TimeInterval,
    from_storage,
    get_timezone,
    intervals_overlap,
    round_up_to_boundary,
    to_clinic_time,
    to_storage,
)

UTC = pytz.UTC
SAO_PAULO = pytz.timezone('America/Sao_Paulo')


def _utc(hour: int, minute: int = 0, second: int = 0) -> datetime:
    return UTC.localize(datetime(2030, 1, 7, hour, minute, second))


@pytest.mark.parametrize(
    ('a', 'b', 'expected'),
    [
        ((9, 10), (10, 11), False),
        ((10, 11), (9, 10), False),
        ((9, 11), (10, 12), True),
        ((10, 11), (10, 11), True),
        ((9, 12), (10, 11), True),
        ((10, 11), (12, 13), False),
    ],
)
def test_intervals_overlap_is_half_open(a, b, expected) -> None:
    assert intervals_overlap(_utc(a[0]), _utc(a[1]), _utc(b[0]), _utc(b[1])) is expected
    assert TimeInterval(_utc(a[0]), _utc(a[1])).overlaps(TimeInterval(_utc(b[0]), _utc(b[1]))) is expected


def test_round_up_keeps_values_already_on_boundary() -> None:
    assert round_up_to_boundary(_utc(10, 30), 30, UTC) == _utc(10, 30)


def test_round_up_moves_to_next_boundary() -> None:
    assert round_up_to_boundary(_utc(10, 1), 30, UTC) == _utc(10, 30)
    assert round_up_to_boundary(_utc(10, 31), 30, UTC) == _utc(11, 0)


def test_round_up_counts_seconds_past_boundary() -> None:
    assert round_up_to_boundary(_utc(10, 0, 15), 30, UTC) == _utc(10, 30)


def test_round_up_uses_clinic_wall_clock() -> None:
    # 13:10 UTC is 10:10 in Sao Paulo (UTC-3).
    rounded = round_up_to_boundary(_utc(13, 10), 30, SAO_PAULO)

    assert rounded.astimezone(SAO_PAULO).strftime('%H:%M') == '10:30'
    assert rounded == _utc(13, 30)


def test_round_up_crosses_midnight() -> None:
    rounded = round_up_to_boundary(_utc(23, 45), 30, UTC)

    assert rounded == UTC.localize(datetime(2030, 1, 8, 0, 0))


def test_to_clinic_time_reads_naive_values_in_clinic_zone() -> None:
    local = to_clinic_time(datetime(2030, 1, 7, 10, 0), SAO_PAULO)

    assert local.astimezone(UTC) == _utc(13)


def test_to_clinic_time_converts_aware_values() -> None:
    local = to_clinic_time(_utc(13), SAO_PAULO)

    assert local.hour == 10
    assert local == _utc(13)


def test_storage_round_trip_is_naive_utc() -> None:
    stored = to_storage(SAO_PAULO.localize(datetime(2030, 1, 7, 10, 0)))

    assert stored == datetime(2030, 1, 7, 13, 0)
    assert stored.tzinfo is None
    assert from_storage(stored) == _utc(13)


def test_to_storage_rejects_naive_values() -> None:
    with pytest.raises(ValueError):
        to_storage(datetime(2030, 1, 7, 10, 0))


def test_get_timezone_falls_back_to_utc_for_unknown_names() -> None:
    assert get_timezone('Mars/Olympus_Mons') is UTC


def test_time_interval_contains() -> None:
    outer = TimeInterval(_utc(8), _utc(18))

    assert outer.contains(TimeInterval(_utc(9), _utc(10)))
    assert not outer.contains(TimeInterval(_utc(17), _utc(19)))
    assert outer.duration == timedelta(hours=10)
