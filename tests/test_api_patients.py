from datetime import date, time

from clinicflow.models import Appointment, MedicalRecord
from clinicflow.services.scheduling import appointment_interval
from conftest import API, auth_headers

URL = f"{API}/patients/"


def test_patient_reads_own_record(client, patient_user, patient_headers):
    response = client.get(f"{URL}{patient_user.id}", headers=patient_headers)

    assert response.status_code == 200
    assert response.json()["id"] == patient_user.id
    assert response.json()["gender"] == "female"


def test_patient_cannot_read_another_patient(client, patient_headers, other_patient_user):
    response = client.get(f"{URL}{other_patient_user.id}", headers=patient_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "You can only access your own patient data"


def test_patient_ownership_is_checked_before_lookup(client, patient_headers):
    assert client.get(f"{URL}does-not-exist", headers=patient_headers).status_code == 403


def test_doctor_reads_any_patient(client, doctor_headers, other_patient_user):
    assert client.get(f"{URL}{other_patient_user.id}", headers=doctor_headers).status_code == 200
    assert client.get(f"{URL}does-not-exist", headers=doctor_headers).status_code == 404


def test_patient_updates_own_record(client, patient_user, patient_headers):
    response = client.put(
        f"{URL}{patient_user.id}",
        json={"phone": "+1-555-0100", "allergies": ["penicillin"], "blood_type": "AB+"},
        headers=patient_headers,
    )

    assert response.status_code == 200
    assert response.json()["allergies"] == ["penicillin"]
    assert response.json()["blood_type"] == "AB+"


def test_invalid_blood_type_is_rejected(client, patient_user, patient_headers):
    response = client.put(f"{URL}{patient_user.id}", json={"blood_type": "C+"}, headers=patient_headers)
    assert response.status_code == 400


def test_list_is_staff_only(client, patient_headers, doctor_headers, patient_user, other_patient_user):
    assert client.get(URL, headers=patient_headers).status_code == 403

    response = client.get(URL, params={"search": "pam"}, headers=doctor_headers)
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["items"]] == [other_patient_user.id]


def test_doctor_creates_patient(client, doctor_user, doctor_headers):
    response = client.post(
        URL,
        json={
            "first_name": "Walk",
            "last_name": "In",
            "date_of_birth": "1975-09-30",
            "gender": "male",
            "emergency_contact": {"name": "Spouse", "phone": "+1-555-0199"},
        },
        headers=doctor_headers,
    )

    assert response.status_code == 201
    assert response.json()["created_by"] == doctor_user.id
    assert response.json()["is_active"] is True


def test_delete_is_soft(client, doctor_headers, admin_headers, patient_user, patient_headers):
    assert client.delete(f"{URL}{patient_user.id}", headers=patient_headers).status_code == 403
    assert client.delete(f"{URL}{patient_user.id}", headers=doctor_headers).status_code == 200

    response = client.get(f"{URL}{patient_user.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["deleted_at"] is not None


def _seed_history(db, patient_id, doctor_id):
    for hour, status in ((9, "completed"), (11, "scheduled")):
        starts_at, ends_at = appointment_interval(date(2024, 3, 1), time(hour, 0), 30)
        db.add(Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=date(2024, 3, 1),
            appointment_time=time(hour, 0),
            duration_minutes=30,
            starts_at=starts_at,
            ends_at=ends_at,
            type="consultation",
            status=status,
        ))
    db.add(MedicalRecord(
        patient_id=patient_id,
        doctor_id=doctor_id,
        visit_date=date(2024, 3, 1),
        chief_complaint="Shortness of breath",
        diagnosis="Asthma",
    ))
    db.commit()


def test_patient_sub_resources(client, db, patient_user, patient_headers, doctor_user):
    _seed_history(db, patient_user.id, doctor_user.id)

    appointments = client.get(f"{URL}{patient_user.id}/appointments", headers=patient_headers)
    assert appointments.json()["pagination"]["total_count"] == 2

    scheduled = client.get(
        f"{URL}{patient_user.id}/appointments", params={"status": "scheduled"}, headers=patient_headers
    )
    assert [a["appointment_time"] for a in scheduled.json()["items"]] == ["11:00"]

    records = client.get(f"{URL}{patient_user.id}/medical-records", headers=patient_headers)
    assert records.json()["items"][0]["diagnosis"] == "Asthma"

    stats = client.get(f"{URL}{patient_user.id}/stats", headers=patient_headers).json()
    assert stats == {
        "total_appointments": 2,
        "appointments_by_status": {"completed": 1, "scheduled": 1},
        "total_medical_records": 1,
        "last_appointment_date": "2024-03-01",
    }


def test_sub_resources_respect_ownership(client, patient_user, other_patient_user):
    headers = auth_headers(other_patient_user)
    for suffix in ("appointments", "medical-records", "stats"):
        assert client.get(f"{URL}{patient_user.id}/{suffix}", headers=headers).status_code == 403
