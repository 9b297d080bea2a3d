"""Deck and card CRUD for a user's own library, plus soft delete / restore."""

from __future__ import annotations

from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import Card, Deck
from ..utils.security import is_owner_or_admin
from . import card_transcoder
from .errors import NotFound, ValidationError
from .freshness import bump_content_clock, coerce_aware, now
from .unit_of_work import atomic, run_with_lock_retry

DECK_METADATA_FIELDS = ("name", "emoji", "color", "category", "subtopic", "difficulty")
CARD_MEDIA_FIELDS = ("front_image_url", "back_image_url", "front_audio", "back_audio")


def get_owned_deck(user, deck_id: int, *, include_deleted: bool = False) -> Deck:
    deck = db.session.get(Deck, deck_id)
    if deck is None or not is_owner_or_admin(user, deck.user_id):
        raise NotFound("deck_not_found", {"deck_id": deck_id})
    if deck.is_deleted and not include_deleted:
        raise NotFound("deck_not_found", {"deck_id": deck_id})
    return deck


def list_decks(user) -> list[Deck]:
    return (
        Deck.query.filter(Deck.user_id == user.id, Deck.is_deleted.is_(False))
        .order_by(Deck.position.asc(), Deck.id.asc())
        .all()
    )


def touch_content(deck: Deck) -> None:
    """Advance the deck's content clock after any card-level change."""

    deck.content_updated_at = bump_content_clock(deck.content_updated_at)


def create_deck(user, payload: dict) -> Deck:
    def _create() -> Deck:
        with atomic("create_deck"):
            last = (
                db.session.query(db.func.max(Deck.position))
                .filter(Deck.user_id == user.id)
                .scalar()
            )
            deck = Deck(
                user_id=user.id,
                creator_id=user.id,
                position=(last + 1) if last is not None else 0,
                content_updated_at=now(),
            )
            for field in DECK_METADATA_FIELDS:
                if field in payload:
                    setattr(deck, field, payload[field])
            db.session.add(deck)
        return deck

    deck = run_with_lock_retry(_create)
    current_app.logger.info("Deck created", extra={"user_id": user.id, "deck_id": deck.id})
    return deck


def update_deck(user, deck_id: int, payload: dict) -> Deck:
    def _update() -> Deck:
        with atomic("update_deck"):
            deck = get_owned_deck(user, deck_id)
            for field in DECK_METADATA_FIELDS + ("position",):
                if field in payload:
                    setattr(deck, field, payload[field])
        return deck

    return run_with_lock_retry(_update)


def _card_values(payload: dict, existing: Optional[Card] = None) -> dict:
    card_type = payload.get("card_type") or (existing.card_type if existing else "classic-flip")
    correct = payload.get("correct_answers", existing.correct_answers if existing else None)
    incorrect = payload.get("incorrect_answers", existing.incorrect_answers if existing else None)
    accepted = payload.get("accepted_answers", existing.accepted_answers if existing else None)
    if payload.get("options") is not None:
        correct, incorrect = card_transcoder.from_choice_options(
            payload["options"], payload.get("correct_indices") or []
        )
    card_transcoder.validate_answers(card_type, correct, incorrect, accepted)
    correct, incorrect, accepted = card_transcoder.answer_arrays(
        card_type, correct, incorrect, accepted
    )
    values = {
        "card_type": card_type,
        "correct_answers": correct,
        "incorrect_answers": incorrect,
        "accepted_answers": accepted,
    }
    for field in ("front", "back") + CARD_MEDIA_FIELDS:
        if field in payload:
            values[field] = payload[field]
    if existing is None and not (values.get("front") or "").strip():
        raise ValidationError("invalid_card", {"message": "Card front is required."})
    return values


def _get_active_card(deck: Deck, card_id: int) -> Card:
    card = db.session.get(Card, card_id)
    if card is None or card.deck_id != deck.id or card.is_deleted:
        raise NotFound("card_not_found", {"card_id": card_id})
    return card


def add_card(user, deck_id: int, payload: dict) -> Card:
    def _add() -> Card:
        with atomic("add_card"):
            deck = get_owned_deck(user, deck_id)
            card = Card(deck_id=deck.id, position=len(deck.active_cards))
            for key, value in _card_values(payload).items():
                setattr(card, key, value)
            db.session.add(card)
            touch_content(deck)
        return card

    return run_with_lock_retry(_add)


def update_card(user, deck_id: int, card_id: int, payload: dict) -> Card:
    def _update() -> Card:
        with atomic("update_card"):
            deck = get_owned_deck(user, deck_id)
            card = _get_active_card(deck, card_id)
            for key, value in _card_values(payload, existing=card).items():
                setattr(card, key, value)
            touch_content(deck)
        return card

    return run_with_lock_retry(_update)


def delete_card(user, deck_id: int, card_id: int) -> None:
    def _delete() -> None:
        with atomic("delete_card"):
            deck = get_owned_deck(user, deck_id)
            card = _get_active_card(deck, card_id)
            card.is_deleted = True
            card.deleted_at = now()
            for position, remaining in enumerate(
                c for c in deck.active_cards if c.id != card.id
            ):
                remaining.position = position
            touch_content(deck)

    run_with_lock_retry(_delete)


def reorder_cards(user, deck_id: int, card_ids: Iterable[int]) -> Deck:
    card_ids = list(card_ids)

    def _reorder() -> Deck:
        with atomic("reorder_cards"):
            deck = get_owned_deck(user, deck_id)
            active = {card.id: card for card in deck.active_cards}
            if sorted(card_ids) != sorted(active):
                raise ValidationError(
                    "invalid_positions",
                    {"message": "Positions must list every active card exactly once."},
                )
            for position, card_id in enumerate(card_ids):
                active[card_id].position = position
            touch_content(deck)
        return deck

    return run_with_lock_retry(_reorder)


def delete_deck(user, deck_id: int) -> Deck:
    """Soft delete a deck together with its active cards.

    Any community snapshot of the deck stays listed; its importers are
    unaffected.
    """

    def _delete() -> Deck:
        with atomic("delete_deck"):
            deck = get_owned_deck(user, deck_id)
            stamp = now()
            deck.is_deleted = True
            deck.deleted_at = stamp
            for card in deck.cards:
                if not card.is_deleted:
                    card.is_deleted = True
                    card.deleted_at = stamp
        return deck

    deck = run_with_lock_retry(_delete)
    current_app.logger.info("Deck soft-deleted", extra={"user_id": user.id, "deck_id": deck_id})
    return deck


def undelete_in_place(deck: Deck) -> None:
    """Flip a soft-deleted deck and the cards deleted with it back to active.

    Rows keep their ids. Cards removed individually before the deck was
    deleted stay deleted. Must run inside an open :func:`atomic` scope.
    """

    deleted_at = coerce_aware(deck.deleted_at)
    for card in deck.cards:
        if card.is_deleted and coerce_aware(card.deleted_at) == deleted_at:
            card.is_deleted = False
            card.deleted_at = None
    deck.is_deleted = False
    deck.deleted_at = None


def restore_deck(user, deck_id: int) -> Deck:
    def _restore() -> Deck:
        with atomic("restore_deck"):
            deck = get_owned_deck(user, deck_id, include_deleted=True)
            if not deck.is_deleted:
                raise ValidationError("deck_not_deleted", {"deck_id": deck_id})
            undelete_in_place(deck)
        return deck

    deck = run_with_lock_retry(_restore)
    current_app.logger.info("Deck restored", extra={"user_id": user.id, "deck_id": deck_id})
    return deck


def list_deleted_decks(user_id: Optional[int] = None) -> list[Deck]:
    query = Deck.query.filter(Deck.is_deleted.is_(True))
    if user_id is not None:
        query = query.filter(Deck.user_id == user_id)
    return query.order_by(Deck.deleted_at.desc()).all()


def set_publish_ban(deck_id: int, banned: bool, reason: Optional[str] = None) -> Deck:
    def _ban() -> Deck:
        with atomic("publish_ban"):
            deck = db.session.get(Deck, deck_id)
            if deck is None:
                raise NotFound("deck_not_found", {"deck_id": deck_id})
            deck.publish_banned = banned
            deck.publish_banned_reason = reason if banned else None
        return deck

    return run_with_lock_retry(_ban)
