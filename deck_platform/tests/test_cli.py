"""Tests for the seed and deck CLI commands."""

from __future__ import annotations

from deck_app.extensions import db
from deck_app.models import CommunityDeck, Deck, User
from deck_app.services import deck_service


def _deck_with_card(user) -> int:
    deck = deck_service.create_deck(user, {"name": "Kanji N5"})
    deck_service.add_card(user, deck.id, {"front": "山", "back": "mountain"})
    return deck.id


def test_seed_users_is_idempotent(app_with_db):
    runner = app_with_db.test_cli_runner()
    result = runner.invoke(args=["seed-users"])
    assert result.exit_code == 0, result.output
    assert "Seeded accounts: root, learner" in result.output

    result = runner.invoke(args=["seed-users"])
    assert result.exit_code == 0, result.output
    assert "nothing to do" in result.output
    assert User.query.filter_by(email="learner@example.com").count() == 1


def test_decks_publish_and_import(app_with_db, make_user):
    author = make_user("author")
    reader = make_user("reader")
    deck_id = _deck_with_card(author)
    runner = app_with_db.test_cli_runner()

    result = runner.invoke(
        args=[
            "decks",
            "publish",
            "--deck-id",
            str(deck_id),
            "--user-id",
            str(author.id),
            "--category",
            "Languages",
            "--subtopic",
            "Japanese",
        ]
    )
    assert result.exit_code == 0, result.output
    assert f"Deck {deck_id} created" in result.output
    published = CommunityDeck.query.filter_by(original_deck_id=deck_id).one()

    result = runner.invoke(
        args=[
            "decks",
            "import",
            "--community-deck-id",
            str(published.id),
            "--user-id",
            str(reader.id),
        ]
    )
    assert result.exit_code == 0, result.output
    assert "created" in result.output
    db.session.expire_all()
    assert Deck.query.filter_by(user_id=reader.id, is_community=True).count() == 1

    result = runner.invoke(
        args=[
            "decks",
            "import",
            "--community-deck-id",
            str(published.id),
            "--user-id",
            str(reader.id),
        ]
    )
    assert result.exit_code != 0
    assert "already_up_to_date" in result.output


def test_decks_publish_reports_missing_user(app_with_db):
    runner = app_with_db.test_cli_runner()
    result = runner.invoke(
        args=[
            "decks",
            "publish",
            "--deck-id",
            "1",
            "--user-id",
            "404",
            "--category",
            "Math",
            "--subtopic",
            "Algebra",
        ]
    )
    assert result.exit_code != 0
    assert "User 404 not found" in result.output
