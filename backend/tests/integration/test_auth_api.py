"""Integration tests for record-owner accounts and token-based upload ownership."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routes import uploads as upload_routes
from app.services.ingestion_pipeline import IngestionPipeline


@pytest.fixture()
def client(fake_db) -> TestClient:
    return TestClient(app)


def _register(client: TestClient, email: str = "pat@example.com") -> dict:
    response = client.post("/api/v1/auth/register", json={
        "email": email,
        "username": email.split("@")[0],
        "password": "s3cret-pass",
    })
    assert response.status_code == 201
    return response.json()


def test_register_then_login(client) -> None:
    registered = _register(client)

    login = client.post("/api/v1/auth/login", json={
        "email": "pat@example.com",
        "password": "s3cret-pass",
    })

    assert login.status_code == 200
    assert login.json()["user"]["id"] == registered["user"]["id"]
    assert login.json()["token_type"] == "bearer"


def test_wrong_password_rejected(client) -> None:
    _register(client)

    login = client.post("/api/v1/auth/login", json={
        "email": "pat@example.com",
        "password": "wrong-pass",
    })

    assert login.status_code == 401


def test_duplicate_email_rejected(client) -> None:
    _register(client)

    response = client.post("/api/v1/auth/register", json={
        "email": "pat@example.com",
        "username": "someone",
        "password": "another-pass",
    })

    assert response.status_code == 400


def test_me_returns_token_owner(client) -> None:
    token = _register(client)["access_token"]

    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["email"] == "pat@example.com"


def test_logout_requires_token(client) -> None:
    token = _register(client)["access_token"]

    response = client.post("/api/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    assert client.post("/api/v1/auth/logout").status_code in (401, 403)


def test_invalid_token_rejected(client) -> None:
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_upload_owned_by_token_user(client, fake_db, storage, llm_factory, monkeypatch) -> None:
    pipeline = IngestionPipeline(
        storage=storage,
        extraction=llm_factory(extraction={"recordType": "immunization", "vaccine": "MMR"}),
    )
    monkeypatch.setattr(upload_routes, "ingestion_pipeline", pipeline)
    registered = _register(client)
    headers = {"Authorization": f"Bearer {registered['access_token']}"}

    review = client.post(
        "/api/v1/uploads",
        files={"file": ("shot.txt", b"MMR dose 2", "text/plain")},
        headers=headers,
    ).json()

    other = _register(client, email="sam@example.com")
    foreign = client.get(
        f"/api/v1/uploads/{review['session_id']}",
        headers={"Authorization": f"Bearer {other['access_token']}"},
    )
    assert foreign.status_code == 404

    client.post(f"/api/v1/uploads/{review['session_id']}/confirm", headers=headers)

    row = fake_db.rows("immunization_records")[0]
    assert row["user_id"] == registered["user"]["id"]
    assert row["vaccine"] == "MMR"
    assert row["dose_number"] == "1"
    assert review["document_url"].split("/files/health_documents/")[1].startswith(registered["user"]["id"])
