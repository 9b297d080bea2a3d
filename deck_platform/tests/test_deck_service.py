"""Tests for deck CRUD, soft delete and restore."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from deck_app.extensions import db
from deck_app.models import Card, Deck
from deck_app.services import deck_service, unit_of_work
from deck_app.services.errors import InternalError, NotFound, ValidationError
from deck_app.services.freshness import coerce_aware


def _deck_with_cards(user, count: int = 3) -> Deck:
    deck = deck_service.create_deck(user, {"name": "Spanish verbs", "emoji": "🇪🇸"})
    for idx in range(count):
        deck_service.add_card(user, deck.id, {"front": f"Front {idx}", "back": f"Back {idx}"})
    return deck


def test_create_deck_assigns_positions(make_user):
    user = make_user("author")
    first = deck_service.create_deck(user, {"name": "One"})
    second = deck_service.create_deck(user, {"name": "Two"})
    assert (first.position, second.position) == (0, 1)
    assert [deck.name for deck in deck_service.list_decks(user)] == ["One", "Two"]


def test_card_changes_advance_content_clock(make_user):
    user = make_user("author")
    deck = deck_service.create_deck(user, {"name": "Clock"})
    clocks = [coerce_aware(deck.content_updated_at)]

    card = deck_service.add_card(user, deck.id, {"front": "Q", "back": "A"})
    clocks.append(coerce_aware(db.session.get(Deck, deck.id).content_updated_at))
    deck_service.update_card(user, deck.id, card.id, {"back": "A2"})
    clocks.append(coerce_aware(db.session.get(Deck, deck.id).content_updated_at))
    deck_service.delete_card(user, deck.id, card.id)
    clocks.append(coerce_aware(db.session.get(Deck, deck.id).content_updated_at))

    assert clocks == sorted(clocks)
    assert len(set(clocks)) == len(clocks)


def test_metadata_edit_does_not_touch_content_clock(make_user):
    user = make_user("author")
    deck = _deck_with_cards(user, 1)
    before = coerce_aware(deck.content_updated_at)
    deck_service.update_deck(user, deck.id, {"name": "Renamed", "color": "#ff0000"})
    refreshed = db.session.get(Deck, deck.id)
    assert refreshed.name == "Renamed"
    assert coerce_aware(refreshed.content_updated_at) == before


def test_multiple_choice_card_from_options(make_user):
    user = make_user("author")
    deck = deck_service.create_deck(user, {"name": "Quiz"})
    card = deck_service.add_card(
        user,
        deck.id,
        {
            "card_type": "multiple-choice",
            "front": "Pick the primes",
            "options": ["2", "4", "5", "9"],
            "correct_indices": [0, 2],
        },
    )
    assert card.correct_answers == ["2", "5"]
    assert card.incorrect_answers == ["4", "9"]
    assert card.accepted_answers is None


def test_multiple_choice_card_requires_incorrect_answer(make_user):
    user = make_user("author")
    deck = deck_service.create_deck(user, {"name": "Quiz"})
    with pytest.raises(ValidationError):
        deck_service.add_card(
            user,
            deck.id,
            {"card_type": "multiple-choice", "front": "Q", "correct_answers": ["a"]},
        )
    assert Card.query.filter_by(deck_id=deck.id).count() == 0


def test_other_users_cannot_see_deck(make_user):
    owner = make_user("author")
    stranger = make_user("stranger")
    deck = _deck_with_cards(owner, 1)
    with pytest.raises(NotFound):
        deck_service.get_owned_deck(stranger, deck.id)
    with pytest.raises(NotFound):
        deck_service.delete_deck(stranger, deck.id)


def test_reorder_cards_requires_every_active_card(make_user):
    user = make_user("author")
    deck = _deck_with_cards(user, 3)
    ids = [card.id for card in deck.active_cards]
    with pytest.raises(ValidationError):
        deck_service.reorder_cards(user, deck.id, ids[:2])

    deck_service.reorder_cards(user, deck.id, list(reversed(ids)))
    reordered = db.session.get(Deck, deck.id)
    assert [card.id for card in reordered.active_cards] == list(reversed(ids))


def test_soft_delete_and_restore_keep_card_ids(make_user):
    user = make_user("author")
    deck = _deck_with_cards(user, 3)
    card_ids = {card.id for card in deck.active_cards}

    deck_service.delete_deck(user, deck.id)
    deleted = db.session.get(Deck, deck.id)
    assert deleted.is_deleted is True
    assert all(card.is_deleted for card in deleted.cards)
    assert deck_service.list_decks(user) == []
    with pytest.raises(NotFound):
        deck_service.get_owned_deck(user, deck.id)

    restored = deck_service.restore_deck(user, deck.id)
    assert restored.is_deleted is False
    assert restored.deleted_at is None
    assert {card.id for card in restored.active_cards} == card_ids
    assert Card.query.filter_by(deck_id=deck.id).count() == 3


def test_restore_keeps_individually_deleted_cards_deleted(make_user):
    user = make_user("author")
    deck = _deck_with_cards(user, 3)
    removed = deck.active_cards[0].id
    deck_service.delete_card(user, deck.id, removed)

    deck_service.delete_deck(user, deck.id)
    restored = deck_service.restore_deck(user, deck.id)
    assert removed not in {card.id for card in restored.active_cards}
    assert restored.card_count == 2


def test_restore_requires_deleted_deck(make_user):
    user = make_user("author")
    deck = _deck_with_cards(user, 1)
    with pytest.raises(ValidationError):
        deck_service.restore_deck(user, deck.id)


def test_storage_failure_rolls_back_card_delete(make_user, monkeypatch):
    user = make_user("author")
    deck = _deck_with_cards(user, 2)
    card_id = deck.active_cards[0].id

    def broken_touch(_deck):
        raise OperationalError("UPDATE decks", {}, Exception("disk I/O error"))

    monkeypatch.setattr(deck_service, "touch_content", broken_touch)
    with pytest.raises(InternalError) as excinfo:
        deck_service.delete_card(user, deck.id, card_id)
    assert excinfo.value.code == "storage_failure"

    card = db.session.get(Card, card_id)
    assert card.is_deleted is False
    assert db.session.get(Deck, deck.id).card_count == 2


def test_lock_contention_retries_whole_operation(app_with_db):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise unit_of_work.StorageBusy("storage_busy")
        return "done"

    assert unit_of_work.run_with_lock_retry(flaky) == "done"
    assert len(calls) == 3


def test_lock_contention_gives_up_after_configured_attempts(app_with_db):
    app_with_db.config["DB_COMMIT_RETRIES"] = 2
    calls = []

    def always_locked():
        calls.append(1)
        raise unit_of_work.StorageBusy("storage_busy")

    with pytest.raises(unit_of_work.StorageBusy):
        unit_of_work.run_with_lock_retry(always_locked)
    assert len(calls) == 2


def test_locked_database_maps_to_storage_busy(app_with_db):
    with pytest.raises(unit_of_work.StorageBusy):
        with unit_of_work.atomic("check"):
            raise OperationalError("COMMIT", {}, Exception("database is locked"))


def test_after_commit_callbacks_skip_on_rollback(app_with_db):
    fired = []
    with pytest.raises(ValidationError):
        with unit_of_work.atomic("check") as uow:
            uow.after_commit(lambda: fired.append("rolled back"))
            raise ValidationError("bad")
    with unit_of_work.atomic("check") as uow:
        uow.after_commit(lambda: fired.append("committed"))
    assert fired == ["committed"]
