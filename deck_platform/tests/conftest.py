"""Pytest configuration for ensuring project modules resolve correctly."""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from deck_app import create_app
from deck_app.extensions import db
from deck_app.models import User
from deck_app.services.hook_dispatcher import HookDispatcher
from deck_app.utils.security import hash_password


class RecordingHookDispatcher(HookDispatcher):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def emit(self, event, payload):
        self.events.append((event, dict(payload)))

    def named(self, event: str) -> list[dict]:
        return [payload for name, payload in self.events if name == event]


@pytest.fixture()
def app_with_db():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture()
def hooks(app_with_db):
    recorder = RecordingHookDispatcher()
    app_with_db.extensions["hook_dispatcher"] = recorder
    return recorder


@pytest.fixture()
def make_user(app_with_db):
    def _make(username: str, *, role: str = "user", password: str = "StrongPass123!") -> User:
        user = User(
            email=f"{username}@example.com",
            username=username,
            display_name=username.title(),
            password_hash=hash_password(password),
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


def _login(client, identifier: str, password: str = "StrongPass123!") -> str:
    resp = client.post(
        "/api/auth/login",
        json={"identifier": identifier, "password": password},
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["access_token"]


@pytest.fixture()
def user_token(client, make_user):
    make_user("author")
    return _login(client, "author@example.com")


@pytest.fixture()
def other_token(client, make_user):
    make_user("reader")
    return _login(client, "reader@example.com")


@pytest.fixture()
def admin_token(client, make_user):
    make_user("moderator", role="admin", password="AdminPass123!")
    return _login(client, "moderator@example.com", "AdminPass123!")
