"""
Pytest fixtures for the expense tracker auth tests
"""
import os

os.environ["JWT_SECRET"] = "test-secret-key-for-expense-tracker-0123456789"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["USER_STORE"] = "memory"
os.environ["OTP_DEBUG"] = "true"
os.environ["SMS_AUTH_KEY"] = ""
os.environ["DEFAULT_COUNTRY_CODE"] = "+91"
os.environ.setdefault("DATABASE_URL", "sqlite:///./expense_tracker_test.db")

import pytest
from fastapi.testclient import TestClient

from expense_tracker.database import build_engine, build_session_factory, init_db
from expense_tracker.main import app
from expense_tracker.services.sms import get_otp_sender
from expense_tracker.services.users import (
    InMemoryUserStore,
    SqlUserStore,
    UserStore,
    get_user_store,
)

PHONE = "+15551234567"


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path) -> UserStore:
    """Route tests run against both store backends."""
    if request.param == "memory":
        return InMemoryUserStore()
    engine = build_engine(f"sqlite:///{tmp_path / 'routes.db'}")
    init_db(engine)
    return SqlUserStore(build_session_factory(engine))


@pytest.fixture
def sent_messages() -> list:
    """(phone, code) pairs handed to the SMS sender."""
    return []


@pytest.fixture
def client(store, sent_messages):
    def fake_sender(phone: str, code: str) -> None:
        sent_messages.append((phone, code))

    app.dependency_overrides[get_user_store] = lambda: store
    app.dependency_overrides[get_otp_sender] = lambda: fake_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Run the request/verify round trip and return the verify response body."""

    def _login(phone: str = PHONE, name: str = "Alice") -> dict:
        otp = client.post("/auth/request-otp", json={"phone": phone, "name": name}).json()["otp"]
        response = client.post("/auth/verify-otp", json={"phone": phone, "otp": otp})
        assert response.status_code == 200
        return response.json()

    return _login
