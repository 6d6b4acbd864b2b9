"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. The API client overrides the
``get_db`` dependency so requests run against the same database the fixtures
seed.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["DEFAULT_TIMEZONE"] = "UTC"

from datetime import date  # noqa: E402
from typing import Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from clinicflow import crud, models  # noqa: E402
from clinicflow.core import security  # noqa: E402
from clinicflow.core.auth_gate import Principal  # noqa: E402
from clinicflow.db.base import Base  # noqa: E402
from clinicflow.db.session import get_db  # noqa: E402
from clinicflow.main import app  # noqa: E402
from clinicflow.schemas.user import RegisterRequest  # noqa: E402

API = "/api/v1"
PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(db: Session, email: str, role: str = "patient", **extra) -> models.User:
    fields = dict(
        email=email,
        password=PASSWORD,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role=role,
    )
    if role == "patient":
        fields.update(date_of_birth=date(1990, 5, 17), gender="female")
    if role == "doctor":
        fields.update(specialization="Cardiology", license_number=f"LIC-{email}")
    fields.update(extra)
    return crud.user.create_with_profile(db, obj_in=RegisterRequest(**fields))


def auth_headers(user: models.User) -> Dict[str, str]:
    token = security.create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db) -> models.User:
    return crud.user.create(
        db,
        email="admin@example.com",
        password=PASSWORD,
        first_name="Ada",
        last_name="Admin",
        role=models.Role.ADMIN,
    )


@pytest.fixture
def doctor_user(db) -> models.User:
    return register(db, "house@example.com", role="doctor")


@pytest.fixture
def patient_user(db) -> models.User:
    return register(db, "pat@example.com")


@pytest.fixture
def other_patient_user(db) -> models.User:
    return register(db, "pam@example.com")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def doctor_headers(doctor_user):
    return auth_headers(doctor_user)


@pytest.fixture
def patient_headers(patient_user):
    return auth_headers(patient_user)


@pytest.fixture
def doctor_principal(doctor_user) -> Principal:
    return Principal.from_user(doctor_user)


@pytest.fixture
def second_doctor(db) -> models.Doctor:
    doctor = models.Doctor(
        first_name="Lisa",
        last_name="Cuddy",
        specialization="Endocrinology",
        license_number="LIC-CUDDY",
    )
    db.add(doctor)
    db.commit()
    return doctor
