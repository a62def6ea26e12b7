import os
from datetime import datetime, timedelta

import pytest
import pytz

# Must be set before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinic_scheduling.main import app
from clinic_scheduling.core.config import settings
from clinic_scheduling.core.database import Base, get_db, redis_client
from clinic_scheduling.core.security import UserRole, get_password_hash
from clinic_scheduling.models.user import User

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

PASSWORD = "TestPassword123"

WEEK_SLOTS = [
    {"day": "Monday", "start_time": "09:00", "end_time": "17:00"},
    {"day": "Friday", "start_time": "22:00", "end_time": "02:00"},
]

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    redis_client.flushall()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

def next_local(day: str, hhmm: str, weeks_ahead: int = 1) -> datetime:
    """Naive UTC instant for `day` at `hhmm` clinic time, at least a week out."""
    tz = pytz.timezone(settings.CLINIC_TIMEZONE)
    today = datetime.now(tz).date()
    weekday = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday",
               "Saturday", "Sunday"].index(day)
    target = today + timedelta(days=(weekday - today.weekday()) % 7 + 7 * weeks_ahead)
    hour, minute = (int(part) for part in hhmm.split(":"))
    local = tz.localize(datetime(target.year, target.month, target.day, hour, minute))
    return local.astimezone(pytz.utc).replace(tzinfo=None)

def iso(instant: datetime) -> str:
    return instant.strftime("%Y-%m-%dT%H:%M:%SZ")

def auth_headers(client, email: str, password: str = PASSWORD) -> dict:
    response = client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}

@pytest.fixture
def admin_headers(client):
    db = TestingSessionLocal()
    db.add(User(
        name="Admin",
        email="admin@example.com",
        password_hash=get_password_hash(PASSWORD),
        role=UserRole.ADMIN,
    ))
    db.commit()
    db.close()
    return auth_headers(client, "admin@example.com")

def register(client, name: str, email: str, role: str = "patient") -> dict:
    response = client.post("/api/v1/auth/register", json={
        "name": name, "email": email, "password": PASSWORD, "role": role
    })
    assert response.status_code == 201, response.text
    return auth_headers(client, email)

def create_doctor(client, admin_headers, email="house@example.com",
                  license_number="LIC-001", availability=None) -> dict:
    response = client.post("/api/v1/doctors", headers=admin_headers, json={
        "name": "Dr. House",
        "email": email,
        "password": PASSWORD,
        "phone": "+15550001",
        "department": "Diagnostics",
        "license_number": license_number,
        "availability": WEEK_SLOTS if availability is None else availability,
    })
    assert response.status_code == 201, response.text
    return response.json()

@pytest.fixture
def doctor(client, admin_headers):
    return create_doctor(client, admin_headers)

@pytest.fixture
def doctor_headers(client, doctor):
    return auth_headers(client, "house@example.com")

@pytest.fixture
def patient_headers(client):
    return register(client, "Pat Patient", "patient@example.com")

@pytest.fixture
def other_patient_headers(client):
    return register(client, "Olly Other", "other@example.com")
