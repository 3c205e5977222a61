import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from medbook.auth import jwt_handler
from medbook.auth.dependencies import get_dispatcher, get_jwt_settings
from medbook.core.config import JwtSettings
from medbook.database import get_db
from medbook.main import app
from medbook.routes.booking_routes import unwrap
from medbook.services.results import ErrorCode, Result

SETTINGS = JwtSettings(secret_key='route-test-secret', algorithm='HS256', expires_minutes=5)


@pytest.fixture
def client(session_factory, dispatcher, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('medbook.routes.booking_routes.ensure_database_ready', lambda: None)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_jwt_settings] = lambda: SETTINGS
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _auth(principal) -> dict:
    token = jwt_handler.create_access_token(principal.user_id, principal.role, SETTINGS)
    return {'Authorization': f'Bearer {token}'}


@pytest.mark.parametrize(
    ('code', 'status_code'),
    [
        (ErrorCode.VALIDATION, 400),
        (ErrorCode.SLOT_UNAVAILABLE, 409),
        (ErrorCode.FORBIDDEN, 403),
        (ErrorCode.NOT_FOUND, 404),
        (ErrorCode.INVALID_TRANSITION, 400),
    ],
)
def test_unwrap_maps_error_codes_to_http_status(code: ErrorCode, status_code: int) -> None:
    with pytest.raises(HTTPException) as exception_info:
        unwrap(Result.failure(code, 'nope'))

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail == 'nope'


def test_unwrap_returns_value_on_success() -> None:
    assert unwrap(Result.success([1, 2])) == [1, 2]


def test_health_reports_ok(client) -> None:
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


def test_requests_without_token_are_rejected(client, clinic) -> None:
    response = client.get('/booking/appointments')

    assert response.status_code in (401, 403)


def test_list_slots_requires_doctor_and_date(client, clinic) -> None:
    response = client.get('/booking/slots', headers=_auth(clinic.patient_a_principal))

    assert response.status_code == 400
    assert response.json()['detail'] == 'doctor_id and date are required'


def test_list_slots_returns_open_slots(client, clinic) -> None:
    response = client.get(
        '/booking/slots',
        params={'doctor_id': clinic.doctor.id, 'date': '2024-06-01'},
        headers=_auth(clinic.patient_a_principal),
    )

    assert response.status_code == 200
    assert [item['id'] for item in response.json()] == [clinic.slot.id, clinic.later_slot.id]


def test_booking_flow_over_http(client, clinic, dispatcher) -> None:
    booked = client.post(
        '/booking',
        json={'slot_id': clinic.slot.id, 'notes': 'First visit'},
        headers=_auth(clinic.patient_a_principal),
    )
    assert booked.status_code == 201
    body = booked.json()
    assert body['status'] == 'confirmed'
    assert body['doctor_name'] == 'Dr. Sarah Johnson'
    assert len(dispatcher.booked) == 1

    conflict = client.post(
        '/booking',
        json={'slot_id': clinic.slot.id},
        headers=_auth(clinic.patient_b_principal),
    )
    assert conflict.status_code == 409

    cancelled = client.patch(
        f"/booking/appointments/{body['id']}",
        json={'status': 'cancelled', 'cancellation_reason': 'Emergency'},
        headers=_auth(clinic.doctor_principal),
    )
    assert cancelled.status_code == 200
    assert cancelled.json()['cancellation_reason'] == 'Emergency'
    assert dispatcher.cancelled[0].reason == 'Emergency'

    rebooked = client.post(
        '/booking',
        json={'slot_id': clinic.slot.id},
        headers=_auth(clinic.patient_b_principal),
    )
    assert rebooked.status_code == 201


def test_doctor_cannot_book(client, clinic) -> None:
    response = client.post(
        '/booking',
        json={'slot_id': clinic.slot.id},
        headers=_auth(clinic.doctor_principal),
    )

    assert response.status_code == 403


def test_blank_slot_id_fails_request_validation(client, clinic) -> None:
    response = client.post('/booking', json={'slot_id': '   '}, headers=_auth(clinic.patient_a_principal))

    assert response.status_code == 422


def test_patient_cannot_mark_completed(client, clinic) -> None:
    booked = client.post(
        '/booking', json={'slot_id': clinic.slot.id}, headers=_auth(clinic.patient_a_principal),
    ).json()

    response = client.patch(
        f"/booking/appointments/{booked['id']}",
        json={'status': 'completed'},
        headers=_auth(clinic.patient_a_principal),
    )

    assert response.status_code == 403


def test_update_missing_appointment_is_404(client, clinic) -> None:
    response = client.patch(
        '/booking/appointments/missing',
        json={'status': 'cancelled'},
        headers=_auth(clinic.doctor_principal),
    )

    assert response.status_code == 404


def test_doctor_block_endpoints(client, clinic) -> None:
    created = client.post(
        '/booking/doctor/blocks',
        json={'start_date': '2024-06-01', 'end_date': '2024-06-02', 'reason': 'Leave'},
        headers=_auth(clinic.doctor_principal),
    )
    assert created.status_code == 201
    assert created.json()['start_time'] == '2024-06-01T00:00:00'

    listed = client.get('/booking/doctor/blocks', headers=_auth(clinic.doctor_principal))
    assert [block['reason'] for block in listed.json()] == ['Leave']

    slots = client.get(
        '/booking/slots',
        params={'doctor_id': clinic.doctor.id, 'date': '2024-06-01'},
        headers=_auth(clinic.patient_a_principal),
    )
    assert slots.json() == []


def test_calendar_rejects_inverted_range(client, clinic) -> None:
    response = client.get(
        '/booking/doctor/calendar',
        params={'from_date': '2024-06-07', 'to_date': '2024-06-01'},
        headers=_auth(clinic.doctor_principal),
    )

    assert response.status_code == 400


def test_calendar_and_today_are_doctor_only(client, clinic) -> None:
    calendar = client.get('/booking/doctor/calendar', headers=_auth(clinic.patient_a_principal))
    today = client.get('/booking/doctor/today', headers=_auth(clinic.patient_a_principal))

    assert calendar.status_code == 403
    assert today.status_code == 403


def test_calendar_lists_range_for_doctor(client, clinic) -> None:
    client.post('/booking', json={'slot_id': clinic.slot.id}, headers=_auth(clinic.patient_a_principal))

    response = client.get(
        '/booking/doctor/calendar',
        params={'from_date': '2024-06-01', 'to_date': '2024-06-01'},
        headers=_auth(clinic.doctor_principal),
    )

    assert response.status_code == 200
    assert [item['patient_name'] for item in response.json()] == ['Alice Anders']
