from datetime import timedelta

import pytest
from conftest import auth_headers

from helpdesk.core.auth import create_access_token
from helpdesk.core.config import get_settings


@pytest.fixture
def trust_token_role(monkeypatch):
    monkeypatch.setattr(get_settings(), "TRUST_TOKEN_ROLE", True)


def test_missing_token(client):
    resp = client.get("/tickets")
    assert resp.status_code == 401
    assert resp.json() == {"message": "No token provided"}
    assert resp.headers["www-authenticate"] == "Bearer"


def test_garbage_token(client):
    resp = client.get("/tickets", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Token is invalid or expired"}


def test_expired_token(client, client_user):
    token = create_access_token(
        {"sub": client_user.id, "role": "client"}, expires_delta=timedelta(minutes=-5)
    )
    resp = client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token is invalid or expired"


def test_token_without_subject(client):
    token = create_access_token({"role": "admin"})
    resp = client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_role_is_reloaded_from_database_by_default(client, db, client_user):
    # token still claims "client" after promotion
    headers = auth_headers(client_user)
    client_user.role = "admin"
    db.commit()

    resp = client.get("/users", headers=headers)
    assert resp.status_code == 200


def test_deleted_user_token_rejected(client, db, other_client):
    headers = auth_headers(other_client)
    db.delete(other_client)
    db.commit()

    resp = client.get("/tickets", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "User not found"


def test_trusted_token_role_can_be_stale(client, db, client_user, trust_token_role):
    headers = auth_headers(client_user)
    client_user.role = "admin"
    db.commit()

    resp = client.get("/users", headers=headers)
    assert resp.status_code == 403


def test_trusted_token_with_unknown_role(client, trust_token_role):
    token = create_access_token({"sub": 1, "role": "superuser"})
    resp = client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
