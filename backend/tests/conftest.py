"""Pytest fixtures — SQLite database for fast, isolated tests."""
import uuid
from typing import Optional
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from andex.database import Base, get_db
from andex.main import app

# Import all models so they register with Base.metadata
from andex.models.user import User                             # noqa: F401
from andex.models.event import Event                           # noqa: F401
from andex.models.participant import Participant               # noqa: F401
from andex.models.match import Match                           # noqa: F401
from andex.models.friendship import FriendRequest, Friendship  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: register users through the API, returns the JSON response dict
# with the auth headers the gateway would attach under "headers"
# ---------------------------------------------------------------------------
def auth_headers(subject: str, email: Optional[str] = None) -> dict:
    headers = {"X-Auth-Subject": subject}
    if email:
        headers["X-Auth-Email"] = email
    return headers


def create_test_user(
    client: TestClient,
    name: str = "Test User",
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    **profile,
) -> dict:
    """Helper — POST /api/users, optionally fill in profile and location."""
    subject = f"subject-{uuid.uuid4()}"
    headers = auth_headers(subject, f"{subject}@example.com")
    resp = client.post("/api/users/", json={"display_name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    data = resp.json()

    if profile:
        resp = client.put("/api/users/me", json=profile, headers=headers)
        assert resp.status_code == 200, resp.text
        data = resp.json()
    if latitude is not None and longitude is not None:
        resp = client.put("/api/users/me/location", json={"latitude": latitude, "longitude": longitude}, headers=headers)
        assert resp.status_code == 200, resp.text
        data = resp.json()

    data["headers"] = headers
    return data


def create_test_event(client: TestClient, creator: dict, title: str = "Test Event", **fields) -> dict:
    """Helper — POST /api/events as ``creator`` and return response JSON."""
    payload = {
        "title": title,
        "category": "music",
        "start_time": "2030-06-01T18:00:00+00:00",
        "latitude": 55.76,
        "longitude": 37.62,
        "location": "Moscow",
    }
    payload.update(fields)
    resp = client.post("/api/events/", json=payload, headers=creator["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()
