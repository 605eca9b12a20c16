from datetime import datetime
from types import SimpleNamespace

import pytz

from clinicops.scheduling.conflicts import conflict_title, find_conflict, is_in_past, narrow_candidates
from clinicops.scheduling.intervals import TimeInterval, to_storage

UTC = pytz.UTC


def _at(hour: int, minute: int = 0) -> datetime:
    return UTC.localize(datetime(2030, 1, 7, hour, minute))


def _appointment(appointment_id, hour, professional_id=1, name='Dr. Ana', status='scheduled', contact=None):
    return SimpleNamespace(
        id=appointment_id,
        scheduled_start=to_storage(_at(hour)),
        duration_minutes=60,
        status=status,
        professional_id=professional_id,
        professional_name=name,
        contact=contact,
    )


def test_find_conflict_returns_first_match_in_given_order() -> None:
    first = _appointment(1, 10)
    second = _appointment(2, 10)

    assert find_conflict(TimeInterval(_at(10), _at(11)), [first, second]) is first
    assert find_conflict(TimeInterval(_at(10), _at(11)), [second, first]) is second


def test_find_conflict_ignores_touching_edges() -> None:
    assert find_conflict(TimeInterval(_at(11), _at(12)), [_appointment(1, 10)]) is None


def test_find_conflict_handles_missing_duration() -> None:
    appointment = _appointment(1, 10)
    appointment.duration_minutes = None

    assert find_conflict(TimeInterval(_at(10, 59), _at(11, 30)), [appointment]) is appointment


def test_narrow_candidates_drops_cancelled_and_excluded() -> None:
    kept = _appointment(1, 10)
    cancelled = _appointment(2, 10, status='cancelled')
    excluded = _appointment(3, 10)

    assert narrow_candidates([kept, cancelled, excluded], exclude_appointment_id=3) == [kept]


def test_narrow_candidates_prefers_professional_id_over_name() -> None:
    ana = _appointment(1, 10, professional_id=1, name='Dr. Ana')
    homonym = _appointment(2, 10, professional_id=2, name='Dr. Ana')

    assert narrow_candidates([ana, homonym], professional_id=2, professional_name='Dr. Ana') == [homonym]
    assert narrow_candidates([ana, homonym], professional_name='Dr. Ana') == [ana, homonym]


def test_is_in_past_includes_now() -> None:
    now = _at(10)

    assert is_in_past(TimeInterval(_at(10), _at(11)), now)
    assert is_in_past(TimeInterval(_at(9), _at(11)), now)
    assert not is_in_past(TimeInterval(_at(10, 1), _at(11)), now)


def test_conflict_title_names_professional_and_patient() -> None:
    with_contact = _appointment(1, 10, contact=SimpleNamespace(name='Maria Souza'))
    without_contact = _appointment(2, 10)

    assert conflict_title(with_contact) == 'Dr. Ana - Maria Souza'
    assert conflict_title(without_contact) == 'Dr. Ana - Patient'
