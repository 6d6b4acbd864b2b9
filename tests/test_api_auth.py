from datetime import timedelta

from clinicflow.core import security
from conftest import API, PASSWORD, auth_headers

URL = f"{API}/auth"


def register_body(**overrides):
    body = {
        "email": "New.Patient@Example.com",
        "password": "long-enough",
        "first_name": "New",
        "last_name": "Patient",
        "role": "patient",
        "date_of_birth": "1988-02-29",
        "gender": "other",
    }
    body.update(overrides)
    return body


def test_register_patient_returns_tokens(client):
    response = client.post(f"{URL}/register", json=register_body())

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new.patient@example.com"
    assert body["user"]["role"] == "patient"

    # The patient profile shares the user's id
    own = client.get(
        f"{API}/patients/{body['user']['id']}",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert own.status_code == 200


def test_register_duplicate_email_conflicts(client, patient_user):
    response = client.post(f"{URL}/register", json=register_body(email=patient_user.email))
    assert response.status_code == 409


def test_register_cannot_create_admin(client):
    response = client.post(f"{URL}/register", json=register_body(role="admin"))
    assert response.status_code == 400


def test_register_doctor_requires_license(client):
    response = client.post(f"{URL}/register", json=register_body(role="doctor", specialization="Dermatology"))

    assert response.status_code == 400
    assert "license_number" in response.json()["message"]


def test_register_rejects_short_password(client):
    response = client.post(f"{URL}/register", json=register_body(password="short"))
    assert response.status_code == 400


def test_login(client, doctor_user):
    response = client.post(f"{URL}/login", json={"email": doctor_user.email, "password": PASSWORD})

    assert response.status_code == 200
    token = response.json()["access_token"]
    assert security.decode_token(token)["sub"] == doctor_user.id


def test_login_wrong_password(client, doctor_user):
    response = client.post(f"{URL}/login", json={"email": doctor_user.email, "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_inactive_user(client, db, patient_user):
    patient_user.is_active = False
    db.commit()

    response = client.post(f"{URL}/login", json={"email": patient_user.email, "password": PASSWORD})
    assert response.status_code == 400


def test_refresh_issues_new_access_token(client, patient_user):
    refresh = security.create_refresh_token(patient_user.id, patient_user.email, patient_user.role)

    response = client.post(f"{URL}/refresh", json={"refresh_token": refresh})

    assert response.status_code == 200
    payload = security.decode_token(response.json()["access_token"])
    assert payload["type"] == "access"


def test_refresh_rejects_access_token(client, patient_user):
    access = security.create_access_token(patient_user.id, patient_user.email, patient_user.role)
    assert client.post(f"{URL}/refresh", json={"refresh_token": access}).status_code == 401


def test_expired_access_token_is_401(client, patient_user):
    token = security.create_access_token(
        patient_user.id, patient_user.email, patient_user.role, expires_delta=timedelta(minutes=-1)
    )
    response = client.get(f"{URL}/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Token has expired"


def test_profile_read_and_update(client, patient_user):
    headers = auth_headers(patient_user)

    assert client.get(f"{URL}/profile", headers=headers).json()["email"] == patient_user.email

    response = client.put(f"{URL}/profile", json={"phone": "+44 20 7946 0000"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["phone"] == "+44 20 7946 0000"


def test_profile_requires_token(client):
    response = client.get(f"{URL}/profile")

    assert response.status_code == 401
    assert response.json()["error"] is True


def test_change_password(client, patient_user):
    headers = auth_headers(patient_user)

    wrong = client.put(
        f"{URL}/change-password",
        json={"current_password": "not-it", "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert wrong.status_code == 400

    ok = client.put(
        f"{URL}/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = client.post(f"{URL}/login", json={"email": patient_user.email, "password": "brand-new-pass"})
    assert login.status_code == 200
