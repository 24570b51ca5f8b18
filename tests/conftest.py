import os

# Settings are read once at import time, so the test environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MONGODB_URI"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["INTERNSHIP_INGEST_API_KEY"] = "ingest-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["LOG_LEVEL"] = "WARNING"

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.db.schema import init_schema, truncate_all
from opportunity_hub.main import app

PASSWORD = "password123"

_emails = itertools.count()


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def clean_db():
    init_schema()
    yield
    truncate_all()


def set_user_columns(user_id: str, **columns) -> None:
    assignments = ", ".join(f"{column} = :{column}" for column in columns)
    with get_db_session() as db:
        db.execute(text(f"UPDATE users SET {assignments} WHERE id = :id"), {**columns, "id": user_id})


@pytest.fixture
def make_user(client):
    """Register and log in a user. Returns {"id", "email", "headers"}."""
    def _make(role: str = "user", name: str = "Test User") -> dict:
        email = f"user{next(_emails)}@hub.dev"
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": PASSWORD})
        assert response.status_code == 201, response.text

        login = client.post("/api/auth/login", json={"email": email, "password": PASSWORD}).json()
        if role != "user":
            set_user_columns(login["user_id"], role=role)

        return {
            "id": login["user_id"],
            "email": email,
            "headers": {"Authorization": f"Bearer {login['access_token']}"},
        }
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", name="Admin")


@pytest.fixture
def member(make_user):
    return make_user(role="member", name="Member")


@pytest.fixture
def student(make_user):
    return make_user(name="Student")
