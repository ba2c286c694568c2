"""Pytest configuration and fixtures."""

import os
import secrets
from datetime import datetime, timedelta, timezone

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

if not os.environ.get("RUN_INTEGRATION"):
    os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
else:
    # For integration runs, load settings from .env
    from pathlib import Path

    from dotenv import load_dotenv

    load_dotenv(Path(__file__).parent.parent / ".env", override=True)

from app.config import get_settings  # noqa: E402
from app.database import reset_state  # noqa: E402
from app.main import app  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_database(tmp_path, monkeypatch):
    """Point the app at a fresh database for each test."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    get_settings.cache_clear()
    reset_state()
    limiter.enabled = False
    yield
    reset_state()
    get_settings.cache_clear()
    limiter.enabled = True


@pytest.fixture
def client():
    """Create a test client with the app lifespan running."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    """Factory registering a user; returns (user, auth headers)."""
    counter = {"n": 0}

    def _register(name: str = None):
        counter["n"] += 1
        n = counter["n"]
        resp = client.post(
            "/api/auth/register",
            json={
                "name": name or f"Test User {n}",
                "email": f"user{n}@example.com",
                "password": "correct-horse",
            },
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['accessToken']}"}

    return _register


def gig_payload(**overrides) -> dict:
    payload = {
        "title": "Build a landing page",
        "description": "Need a responsive landing page for a product launch.",
        "budget": 500,
        "deadline": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
        "skillsRequired": ["React"],
        "category": "web-development",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def post_gig(client):
    """Factory posting a gig as the given user; returns the gig JSON."""

    def _post(headers, **overrides):
        resp = client.post("/api/gigs", json=gig_payload(**overrides), headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["gig"]

    return _post


@pytest.fixture
def place_bid(client):
    """Factory placing a bid; returns the response."""

    def _place(gig_id, headers, amount=400, proposal="x" * 20, delivery_time=7):
        return client.post(
            f"/api/gigs/{gig_id}/bids",
            json={"amount": amount, "proposal": proposal, "deliveryTime": delivery_time},
            headers=headers,
        )

    return _place
