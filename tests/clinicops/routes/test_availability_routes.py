from datetime import datetime, time

import pytest


@pytest.fixture
def booked_clinic(make_clinic, make_staff, make_contact, make_appointment):
    clinic = make_clinic()
    ana = make_staff(clinic, 'Dr. Ana', email='ana@clinic.test')
    contact = make_contact(clinic)
    appointment = make_appointment(clinic, datetime(2030, 1, 7, 10, 0), professional=ana, contact=contact)
    return clinic, ana, appointment


def test_check_reports_conflicting_booking(client, booked_clinic) -> None:
    clinic, _, appointment = booked_clinic

    response = client.post(
        '/availability/check',
        json={
            'clinic_id': clinic.id,
            'start_time': '2030-01-07T10:30:00Z',
            'end_time': '2030-01-07T11:30:00Z',
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body['available'] is False
    assert body['conflict'] is True
    assert body['conflict_type'] == 'appointment'
    assert body['conflict_details']['id'] == str(appointment.id)
    assert body['conflict_details']['title'] == 'Dr. Ana - Maria Souza'
    assert body['conflict_details']['start_time'].startswith('2030-01-07T10:00:00')


def test_check_touching_interval_is_available(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/check',
        json={
            'clinic_id': clinic.id,
            'start_time': '2030-01-07T11:00:00Z',
            'end_time': '2030-01-07T12:00:00Z',
        },
    )

    assert response.json() == {
        'available': True,
        'conflict': False,
        'conflict_type': None,
        'conflict_details': None,
    }


def test_check_past_time_uses_sentinel(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/check',
        json={
            'clinic_id': clinic.id,
            'start_time': '2029-12-31T10:00:00Z',
            'end_time': '2029-12-31T11:00:00Z',
        },
    )

    details = response.json()['conflict_details']
    assert details['id'] == 'past-time'
    assert details['title'] == 'Time has already passed'


def test_check_rejects_inverted_range(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/check',
        json={
            'clinic_id': clinic.id,
            'start_time': '2030-01-07T11:00:00Z',
            'end_time': '2030-01-07T10:00:00Z',
        },
    )

    assert response.status_code == 400
    assert response.json()['error'] == 'Invalid data'
    assert response.json()['details']


def test_check_rejects_unparsable_time(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/check',
        json={'clinic_id': clinic.id, 'start_time': 'tomorrow morning', 'end_time': '2030-01-07T10:00:00Z'},
    )

    assert response.status_code == 400


def test_check_unknown_clinic_is_404(client) -> None:
    response = client.post(
        '/availability/check',
        json={'clinic_id': 999, 'start_time': '2030-01-07T10:00:00Z', 'end_time': '2030-01-07T11:00:00Z'},
    )

    assert response.status_code == 404
    assert response.json() == {'error': 'Clinic not found.'}


def test_find_slots_around_booking(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post('/availability/find-slots', json={'clinic_id': clinic.id, 'date': '2030-01-07'})

    assert response.status_code == 200
    body = response.json()
    starts = [slot['start_time'][11:16] for slot in body['available_slots']]
    assert starts == ['08:00', '09:00', '11:00', '12:00', '13:00', '14:00', '15:00', '16:00', '17:00']
    assert body['timezone'] == 'UTC'
    assert body['busy_blocks'][0]['label'] == 'Dr. Ana - Appointment'
    assert body['busy_blocks'][0]['type'] == 'appointment'


def test_find_slots_with_custom_hours_and_duration(client, make_clinic) -> None:
    clinic = make_clinic(working_hours=(time(9, 0), time(18, 0)))

    response = client.post(
        '/availability/find-slots',
        json={
            'clinic_id': clinic.id,
            'date': '2030-01-07',
            'duration_minutes': 90,
            'working_hours': {'start': '14:00', 'end': '17:00'},
        },
    )

    starts = [slot['start_time'][11:16] for slot in response.json()['available_slots']]
    assert starts == ['14:00', '15:30']


@pytest.mark.parametrize('duration', [0, 4, 721])
def test_find_slots_rejects_out_of_range_duration(client, booked_clinic, duration) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/find-slots',
        json={'clinic_id': clinic.id, 'date': '2030-01-07', 'duration_minutes': duration},
    )

    assert response.status_code == 400


def test_find_slots_rejects_empty_working_hours(client, booked_clinic) -> None:
    clinic, _, _ = booked_clinic

    response = client.post(
        '/availability/find-slots',
        json={'clinic_id': clinic.id, 'date': '2030-01-07', 'working_hours': {'start': '12:00', 'end': '12:00'}},
    )

    assert response.status_code == 400
