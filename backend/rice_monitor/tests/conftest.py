import os
os.environ["TESTING"] = "1"
import pytest
from fastapi.testclient import TestClient

import uuid

from rice_monitor import models
from rice_monitor.config import Settings
from rice_monitor.errors import InvalidToken
from rice_monitor.identity import ExternalIdentity
from rice_monitor.main import create_app

TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"


class FakeGoogleVerifier:
    """Accept assertions shaped ``google:<email>[:<name>]`` instead of real ID tokens."""

    def verify(self, assertion: str) -> ExternalIdentity:
        if not assertion.startswith("google:"):
            raise InvalidToken("Invalid Google ID token")
        _, email, *rest = assertion.split(":", 2)
        if not email:
            raise InvalidToken("Google ID token carries no email")
        name = rest[0] if rest else ""
        return ExternalIdentity(email=email, name=name, picture=f"https://example.com/{name or 'anon'}.png")


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    root = tmp_path_factory.mktemp("rice-monitor")
    settings = Settings(
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite:///{root / 'test.db'}",
        upload_dir=str(root / "uploads"),
        public_base_url="http://testserver/media",
        testing=True,
    )
    return create_app(settings, identity_verifier=FakeGoogleVerifier())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def login(client, email: str | None = None, name: str = "Tester"):
    """
    purpose: sign in through the google exchange with the fake verifier
    outputs: tuple(auth response json, headers dict)
    """
    email = email or f"user-{uuid.uuid4()}@example.com"
    resp = client.post("/api/v1/auth/google", json={"token": f"google:{email}:{name}"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return body, {"Authorization": f"Bearer {body['access_token']}"}


def set_role(app, user_id: str, role: str):
    session = app.state.session_factory()
    try:
        user = session.get(models.User, user_id)
        user.role = role
        session.commit()
    finally:
        session.close()


def ensure_auth_headers(client, *, email: str | None = None, role: str | None = None):
    """Return (headers, user json) for a fresh account, promoted to ``role`` if given."""
    body, headers = login(client, email=email)
    if role:
        set_role(client.app, body["user"]["id"], role)
        body["user"]["role"] = role
    return headers, body["user"]


def create_field(client, headers, name="Plot 1", location="North paddy"):
    resp = client.post(
        "/api/v1/fields",
        json={
            "name": name,
            "location": location,
            "rice_variety": "IR64",
            "coordinates": {"latitude": 14.1, "longitude": 121.2},
            "area": 1.5,
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_submission(client, headers, field_id, growth_stage="Seedling", **extra):
    payload = {
        "field_id": field_id,
        "date": "2024-06-01T08:00:00Z",
        "growth_stage": growth_stage,
        "plant_conditions": ["Healthy"],
        "trait_measurements": {
            "culm_length": 42.5,
            "panicle_length": 0,
            "panicles_per_hill": 0,
            "hills_observed": 10,
        },
        "notes": "first visit",
        "observer_name": "Ana",
    }
    payload.update(extra)
    resp = client.post("/api/v1/submissions", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
