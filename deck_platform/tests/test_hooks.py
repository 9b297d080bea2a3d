from __future__ import annotations

import hashlib
import hmac
import json

import pytest
import requests

from deck_app.extensions import db
from deck_app.models import CommunityDeck
from deck_app.services import deck_service, hook_dispatcher, import_service, publication_service
from deck_app.services.hook_dispatcher import (
    HookDispatcher,
    LoggingHookDispatcher,
    NullHookDispatcher,
    WebhookHookDispatcher,
    build_hook_dispatcher,
    emit_safely,
)


class ExplodingDispatcher(HookDispatcher):
    def __init__(self):
        self.calls = 0

    def emit(self, event, payload):
        self.calls += 1
        raise RuntimeError("achievement service down")


class DummyResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def _publishable(author):
    deck = deck_service.create_deck(author, {"name": "Capitals"})
    deck_service.add_card(author, deck.id, {"front": "France", "back": "Paris"})
    return deck


def test_build_hook_dispatcher_selects_implementation():
    assert isinstance(build_hook_dispatcher({"HOOKS_ENABLED": False}), NullHookDispatcher)
    assert isinstance(build_hook_dispatcher({"HOOKS_ENABLED": True}), LoggingHookDispatcher)

    webhook = build_hook_dispatcher(
        {
            "HOOKS_ENABLED": True,
            "HOOKS_WEBHOOK_URL": "https://hooks.example.com/flashdeck",
            "HOOKS_MAX_RETRIES": 5,
            "HOOKS_ASYNC": False,
        }
    )
    assert isinstance(webhook, WebhookHookDispatcher)
    assert webhook.max_retries == 5
    assert webhook.run_async is False


def test_app_installs_logging_dispatcher_by_default(app_with_db):
    assert isinstance(app_with_db.extensions["hook_dispatcher"], LoggingHookDispatcher)


def test_emit_safely_swallows_dispatcher_errors(app_with_db):
    exploding = ExplodingDispatcher()
    app_with_db.extensions["hook_dispatcher"] = exploding

    emit_safely("published", {"user_id": 1})

    assert exploding.calls == 1


def test_failing_hooks_do_not_fail_publish_or_import(app_with_db, make_user):
    exploding = ExplodingDispatcher()
    app_with_db.extensions["hook_dispatcher"] = exploding
    author = make_user("author")
    reader = make_user("reader")
    deck = _publishable(author)

    published, outcome = publication_service.publish(
        author, deck.id, {"category": "Geography", "subtopic": "Europe"}
    )
    copy, import_outcome = import_service.import_or_sync(reader, published.id)

    assert outcome == "created"
    assert import_outcome == "created"
    assert exploding.calls == 3
    assert db.session.get(CommunityDeck, published.id).download_count == 1
    assert copy.card_count == 1


def test_hooks_fire_only_after_commit(app_with_db, make_user, hooks, monkeypatch):
    author = make_user("author")
    deck = _publishable(author)

    def _boom(published, read_version):
        raise RuntimeError("disk full")

    publication_service.publish(author, deck.id, {"category": "Geo", "subtopic": "EU"})
    deck_service.add_card(author, deck.id, {"front": "Spain", "back": "Madrid"})
    publication_service.unpublish(author, deck.id)
    hooks.events.clear()

    monkeypatch.setattr(publication_service, "_bump_version", _boom)
    with pytest.raises(RuntimeError):
        publication_service.publish(author, deck.id, {"category": "Geo", "subtopic": "EU"})

    assert hooks.events == []


def test_webhook_signs_and_posts_payload(app_with_db, monkeypatch):
    sent = []

    def fake_post(url, data=None, headers=None, timeout=None):
        sent.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return DummyResponse(200)

    monkeypatch.setattr(hook_dispatcher.requests, "post", fake_post)
    dispatcher = WebhookHookDispatcher(
        "https://hooks.example.com/flashdeck", secret="s3cret", timeout=2, run_async=False
    )

    dispatcher.emit("imported", {"user_id": 7, "deck_id": 3})

    assert len(sent) == 1
    body = sent[0]["data"]
    assert json.loads(body) == {"event": "imported", "payload": {"user_id": 7, "deck_id": 3}}
    expected = hmac.new(b"s3cret", body.encode(), hashlib.sha256).hexdigest()
    assert sent[0]["headers"]["X-Flashdeck-Signature"] == f"sha256={expected}"
    assert sent[0]["timeout"] == 2


def test_webhook_retries_then_gives_up(app_with_db, monkeypatch):
    attempts = []

    def fake_post(url, data=None, headers=None, timeout=None):
        attempts.append(url)
        if len(attempts) < 2:
            raise requests.ConnectionError("refused")
        return DummyResponse(503)

    monkeypatch.setattr(hook_dispatcher.requests, "post", fake_post)
    monkeypatch.setattr(hook_dispatcher.time, "sleep", lambda seconds: None)
    dispatcher = WebhookHookDispatcher(
        "https://hooks.example.com/flashdeck", max_retries=3, backoff=0, run_async=False
    )

    delivered = dispatcher._deliver(app_with_db, "downloadMilestone", "{}")

    assert delivered is False
    assert len(attempts) == 3
    assert "X-Flashdeck-Signature" not in dispatcher._headers("{}")


def test_webhook_recovers_on_retry(app_with_db, monkeypatch):
    responses = [DummyResponse(500), DummyResponse(200)]
    monkeypatch.setattr(
        hook_dispatcher.requests, "post", lambda *args, **kwargs: responses.pop(0)
    )
    monkeypatch.setattr(hook_dispatcher.time, "sleep", lambda seconds: None)
    dispatcher = WebhookHookDispatcher("https://hooks.example.com/flashdeck", run_async=False)

    assert dispatcher._deliver(app_with_db, "published", "{}") is True
    assert responses == []
