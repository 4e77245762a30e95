from fastapi import HTTPException


def test_update_doctor_schedule(client, make_doctor, make_user, auth_header) -> None:
    owner = make_user(role='doctor')
    doctor = make_doctor(user=owner)

    response = client.put(
        f'/doctors/{doctor.id}/schedule',
        json={
            'work_schedule': {'Tuesday': {'from': '10:00', 'to': '11:00', 'enabled': True}},
            'appointment_duration': 30,
        },
        headers=auth_header(owner),
    )

    assert response.status_code == 200
    body = response.json()
    assert body['appointment_duration'] == 30
    assert body['work_schedule'] == [{'weekday': 'Tuesday', 'from_time': '10:00', 'to_time': '11:00', 'enabled': True}]

    slots = client.get('/availability/slots', params={'date': '2026-01-06', 'doctor_id': doctor.id})
    assert [slot['time'] for slot in slots.json()] == ['10:00', '10:30']


def test_update_doctor_schedule_rejects_inverted_window(client, make_doctor, make_user, auth_header) -> None:
    owner = make_user(role='doctor')
    doctor = make_doctor(user=owner)

    response = client.put(
        f'/doctors/{doctor.id}/schedule',
        json={'work_schedule': {'Friday': {'from': '17:00', 'to': '09:00'}}},
        headers=auth_header(owner),
    )

    assert response.status_code == 400


def test_update_doctor_schedule_reports_unreachable_database(client, make_doctor, make_user, auth_header, monkeypatch) -> None:
    owner = make_user(role='doctor')
    doctor = make_doctor(user=owner)

    def database_down() -> None:
        raise HTTPException(status_code=503, detail='Database unavailable. Verify DATABASE_URL and database credentials.')

    monkeypatch.setattr('careflow.routes.doctor_routes.ensure_database_ready', database_down)

    response = client.put(
        f'/doctors/{doctor.id}/schedule',
        json={'work_schedule': {'Tuesday': {'from': '10:00', 'to': '11:00'}}},
        headers=auth_header(owner),
    )

    assert response.status_code == 503
