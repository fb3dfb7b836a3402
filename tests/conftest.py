"""
Test configuration and fixtures.

Provides:
- Settings pointing at a throwaway data file
- A controllable clock for session expiry
- A CRM instance and a TestClient wired to it
"""
from datetime import datetime, timedelta, UTC

import pytest
from fastapi.testclient import TestClient

from crm_website.backend.config import Settings
from crm_website.backend.main import app
from crm_website.backend.security import get_crm
from crm_website.backend.services import CRM


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def settings(tmp_path) -> Settings:
    # Low iteration count keeps hashing fast in tests
    return Settings(_env_file=None, DATA_FILE=str(tmp_path / "db.json"), PASSWORD_HASH_ITERATIONS=1000)


@pytest.fixture
def crm(settings, clock) -> CRM:
    return CRM(settings, clock=clock)


@pytest.fixture
def client(crm):
    app.dependency_overrides[get_crm] = lambda: crm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Sign a user up through the API and return (user, token)."""
    def _signup(name="Ann", email="ann@x.com", password="pw1"):
        response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        data = response.json()
        return data["user"], data["token"]
    return _signup
