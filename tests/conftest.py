import os

# settings are read on import
os.environ.setdefault("SALON_DATABASE_URL", "sqlite://")
os.environ.setdefault("SALON_BCRYPT_ROUNDS", "4")
os.environ.setdefault("SALON_SECRET_KEY", "test-secret")
os.environ.setdefault("WHATSAPP_DRY_RUN", "1")

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, create_engine  # noqa: E402

from salon.db import create_db_and_tables, get_session  # noqa: E402
from salon.main import app  # noqa: E402

PASSWORD = "Secret@123"


def next_monday(weeks_ahead: int = 0) -> date:
    today = date.today()
    days = (7 - today.weekday()) % 7 or 7
    return today + timedelta(days=days + 7 * weeks_ahead)


def at(day: date, hhmm: str) -> str:
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute).isoformat()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def signup_and_login(client, email="owner@salon.com", name="Salon Owner"):
    r = client.post("/auth/signup", json={
        "name": name,
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })
    assert r.status_code == 201, r.text

    r = client.post("/auth/login", data={"username": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return signup_and_login(client)


@pytest.fixture
def other_headers(client):
    return signup_and_login(client, email="rival@salon.com", name="Rival Owner")


def create_customer(client, headers, **overrides):
    payload = {"full_name": "Maria Silva", "phone": "(11) 98765-4321"}
    payload.update(overrides)
    r = client.post("/customers", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def create_service(client, headers, **overrides):
    payload = {"name": "Corte", "base_price": 50.0, "duration": "01:00"}
    payload.update(overrides)
    r = client.post("/services", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def create_appointment(client, headers, customer, service, when, **overrides):
    payload = {
        "client_id": customer["id"],
        "service_id": service["id"],
        "scheduled_time": when,
    }
    payload.update(overrides)
    return client.post("/appointments", json=payload, headers=headers)
