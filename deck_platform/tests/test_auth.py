"""Tests for the auth blueprint."""

from __future__ import annotations

from deck_app.extensions import db
from deck_app.models import User
from deck_app.utils.security import hash_password


def test_register_creates_user(client):
    payload = {
        "email": "Student@example.com",
        "password": "StrongPass123!",
        "username": "Student_One",
    }
    resp = client.post("/api/auth/register", json=payload)
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["user"]["email"] == "student@example.com"
    assert data["user"]["username"] == "student_one"
    assert data["user"]["display_name"] == "Student_One"
    assert data["user"]["role"] == "user"
    assert "access_token" in data


def test_register_duplicate_email_returns_conflict(client):
    payload = {"email": "dup@example.com", "password": "StrongPass123!"}
    client.post("/api/auth/register", json=payload)
    resp = client.post("/api/auth/register", json=dict(payload))
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Email already registered"


def test_register_duplicate_username_returns_conflict(client):
    client.post(
        "/api/auth/register",
        json={"email": "one@example.com", "password": "StrongPass123!", "username": "taken"},
    )
    resp = client.post(
        "/api/auth/register",
        json={"email": "two@example.com", "password": "StrongPass123!", "username": "TAKEN"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Username already taken"


def test_register_validates_payload(client):
    resp = client.post("/api/auth/register", json={"email": "not-an-email", "password": "short"})
    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert "email" in errors
    assert "password" in errors


def test_login_returns_token(client):
    payload = {"email": "login@example.com", "password": "StrongPass123!", "username": "loginuser"}
    client.post("/api/auth/register", json=payload)
    for identifier in ("login@example.com", "LoginUser"):
        resp = client.post(
            "/api/auth/login",
            json={"identifier": identifier, "password": payload["password"]},
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert "access_token" in data
        assert data["user"]["email"] == "login@example.com"


def test_login_invalid_credentials(client):
    resp = client.post(
        "/api/auth/login",
        json={"identifier": "missing@example.com", "password": "nope"},
    )
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password"


def test_login_rejects_disabled_account(client):
    with client.application.app_context():
        db.session.add(
            User(
                email="disabled@example.com",
                username="disabled",
                password_hash=hash_password("StrongPass123!"),
                role="user",
                is_active=False,
            )
        )
        db.session.commit()
    resp = client.post(
        "/api/auth/login",
        json={"identifier": "disabled@example.com", "password": "StrongPass123!"},
    )
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "account_disabled"


def test_me_requires_jwt_and_returns_user(client, user_token):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {user_token}"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["username"] == "author"


def test_root_admin_is_bootstrapped(client):
    client.get("/api/auth/ping")
    resp = client.post(
        "/api/auth/login",
        json={"identifier": "root", "password": "RootPass123!"},
    )
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert user["role"] == "admin"
    assert user["is_root"] is True
