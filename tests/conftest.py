import os
import tempfile

import pytest

# Must be set before keeper.config is imported
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), f'keeper_test_{os.getpid()}.db')}",
)
os.environ.setdefault("API_KEY", "devkey")
os.environ.setdefault("JOIN_RATE_LIMIT", "1000/minute")


@pytest.fixture(scope="session")
def test_client():
    from fastapi.testclient import TestClient
    from keeper.app import application

    with TestClient(application) as client:
        yield client


@pytest.fixture
def auth_headers():
    return {"X-API-Key": os.environ.get("API_KEY", "devkey")}


@pytest.fixture
def game_session(test_client, auth_headers):
    resp = test_client.post(
        "/api/sessions",
        headers=auth_headers,
        json={"name": "The Haunting", "gm_id": "keeper_alice"},
    )
    assert resp.status_code == 201
    return resp.json()


INVESTIGATOR = {
    "name": "Harvey Walters",
    "occupation": "Journalist",
    "age": 42,
    "characteristics": {
        "strength": 45,
        "constitution": 50,
        "size": 60,
        "dexterity": 50,
        "appearance": 55,
        "intelligence": 70,
        "power": 60,
        "education": 80,
        "luck": 50,
    },
    "skills": {"Library Use": 60, "Spot Hidden": 45},
}


@pytest.fixture
def investigator(test_client, auth_headers, game_session):
    resp = test_client.post(
        "/api/characters",
        headers=auth_headers,
        json={**INVESTIGATOR, "session_id": game_session["id"]},
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def investigator_data():
    return dict(INVESTIGATOR)
