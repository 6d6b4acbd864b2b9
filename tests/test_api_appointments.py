from datetime import timedelta

import pytest

from clinicflow.utils.timezone import today_local
from conftest import API

URL = f"{API}/appointments/"


@pytest.fixture
def payload(doctor_user, patient_user):
    def _payload(**overrides):
        body = {
            "patient_id": patient_user.id,
            "doctor_id": doctor_user.id,
            "appointment_date": "2024-03-01",
            "appointment_time": "10:00",
            "duration_minutes": 30,
            "type": "consultation",
            "reason": "Chest pain follow-up",
        }
        body.update(overrides)
        return body

    return _payload


def test_doctor_books_appointment(client, doctor_headers, payload):
    response = client.post(URL, json=payload(), headers=doctor_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "scheduled"
    assert body["appointment_time"] == "10:00"
    assert body["duration_minutes"] == 30


def test_booking_requires_token(client, payload):
    response = client.post(URL, json=payload())

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_patient_cannot_book(client, patient_headers, payload):
    response = client.post(URL, json=payload(), headers=patient_headers)

    assert response.status_code == 403
    assert response.json() == {
        "error": True,
        "code": "forbidden",
        "message": "Required roles: admin, doctor. Your role: patient",
        "status_code": 403,
    }


def test_double_booking_returns_conflict(client, doctor_headers, payload):
    assert client.post(URL, json=payload(), headers=doctor_headers).status_code == 201

    clash = client.post(URL, json=payload(appointment_time="10:15"), headers=doctor_headers)
    assert clash.status_code == 409
    assert clash.json()["code"] == "conflict"
    assert "10:00-10:30" in clash.json()["message"]

    adjacent = client.post(URL, json=payload(appointment_time="10:30"), headers=doctor_headers)
    assert adjacent.status_code == 201


@pytest.mark.parametrize(
    "overrides",
    [
        {"appointment_time": "25:00"},
        {"appointment_time": "10:5"},
        {"duration_minutes": 10},
        {"duration_minutes": 241},
        {"type": "checkup"},
        {"patient_id": ""},
    ],
)
def test_invalid_booking_input_is_400(client, doctor_headers, payload, overrides):
    response = client.post(URL, json=payload(**overrides), headers=doctor_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_list_filters_and_paginates(client, doctor_headers, payload):
    for hour in range(8, 13):
        client.post(URL, json=payload(appointment_time=f"{hour:02d}:00"), headers=doctor_headers)

    response = client.get(URL, params={"limit": 2, "page": 2}, headers=doctor_headers)
    assert response.status_code == 200
    body = response.json()
    assert [a["appointment_time"] for a in body["items"]] == ["10:00", "11:00"]
    assert body["pagination"] == {
        "current_page": 2,
        "total_pages": 3,
        "total_count": 5,
        "limit": 2,
        "has_next": True,
        "has_prev": True,
    }

    filtered = client.get(URL, params={"status": "confirmed"}, headers=doctor_headers)
    assert filtered.json()["pagination"]["total_count"] == 0


def test_list_rejects_unknown_filter(client, doctor_headers):
    response = client.get(URL, params={"colour": "blue"}, headers=doctor_headers)

    assert response.status_code == 400
    assert "doctor_id" in response.json()["details"]["allowed_filters"]


def test_list_rejects_unknown_sort_field(client, doctor_headers):
    response = client.get(URL, params={"sort_by": "reason"}, headers=doctor_headers)
    assert response.status_code == 400


def test_status_transitions(client, doctor_headers, payload):
    appointment_id = client.post(URL, json=payload(), headers=doctor_headers).json()["id"]
    status_url = f"{URL}{appointment_id}/status"

    confirmed = client.patch(status_url, json={"status": "confirmed"}, headers=doctor_headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    skipped = client.patch(status_url, json={"status": "completed"}, headers=doctor_headers)
    assert skipped.status_code == 400
    assert skipped.json()["code"] == "invalid_transition"


def test_status_of_missing_appointment_is_404(client, doctor_headers):
    response = client.patch(f"{URL}nope/status", json={"status": "confirmed"}, headers=doctor_headers)
    assert response.status_code == 404


def test_update_reschedules_with_conflict_check(client, doctor_headers, payload):
    client.post(URL, json=payload(), headers=doctor_headers)
    other_id = client.post(URL, json=payload(appointment_time="11:00"), headers=doctor_headers).json()["id"]

    clash = client.put(f"{URL}{other_id}", json={"appointment_time": "10:15"}, headers=doctor_headers)
    assert clash.status_code == 409

    moved = client.put(f"{URL}{other_id}", json={"appointment_time": "14:30", "notes": "Moved"}, headers=doctor_headers)
    assert moved.status_code == 200
    assert moved.json()["appointment_time"] == "14:30"
    assert moved.json()["notes"] == "Moved"


def test_only_admin_deletes(client, doctor_headers, admin_headers, payload):
    appointment_id = client.post(URL, json=payload(), headers=doctor_headers).json()["id"]

    assert client.delete(f"{URL}{appointment_id}", headers=doctor_headers).status_code == 403
    assert client.delete(f"{URL}{appointment_id}", headers=admin_headers).status_code == 200
    assert client.get(f"{URL}{appointment_id}", headers=admin_headers).status_code == 404


def test_today_and_upcoming_schedules(client, doctor_headers, doctor_user, payload):
    today = today_local()
    for offset, at in ((0, "16:00"), (0, "09:00"), (2, "10:00"), (30, "10:00")):
        day = (today + timedelta(days=offset)).isoformat()
        client.post(URL, json=payload(appointment_date=day, appointment_time=at), headers=doctor_headers)

    todays = client.get(f"{URL}today/schedule", params={"doctor_id": doctor_user.id}, headers=doctor_headers)
    assert [a["appointment_time"] for a in todays.json()] == ["09:00", "16:00"]

    upcoming = client.get(f"{URL}upcoming/schedule", headers=doctor_headers)
    assert len(upcoming.json()) == 3

    too_far = client.get(f"{URL}upcoming/schedule", params={"days": 120}, headers=doctor_headers)
    assert too_far.status_code == 400


def test_stats_overview(client, doctor_headers, payload):
    client.post(URL, json=payload(), headers=doctor_headers)
    client.post(URL, json=payload(appointment_time="11:00", type="follow-up"), headers=doctor_headers)

    stats = client.get(f"{URL}stats/overview", headers=doctor_headers).json()

    assert stats["total"] == 2
    assert stats["by_type"] == {"consultation": 1, "follow-up": 1}
    assert stats["by_date"] == {"2024-03-01": 2}
