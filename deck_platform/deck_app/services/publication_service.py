"""Publish, update, republish and unpublish community snapshots of owned decks.

A deck has at most one :class:`CommunityDeck`. Publishing either creates it,
refreshes it when the owner changed something, or re-lists it after an
unpublish. Every snapshot refresh runs in one transaction:

1. capture the deck's content clock into ``source_content_updated_at``;
2. replace the snapshot cards;
3. bump ``version`` with a conditional update against the version read at
   the start, so two concurrent refreshes cannot both win.
"""

from __future__ import annotations

from typing import Optional, Tuple

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from .. import metrics
from ..extensions import db
from ..models import CommunityCard, CommunityDeck, Deck
from ..utils.security import is_owner_or_admin
from . import card_transcoder
from .errors import Conflict, ContentError, Forbidden, NoChangesError, NotFound, ValidationError
from .freshness import cards_changed_since_capture, coerce_aware, now
from .hook_dispatcher import emit_safely
from .unit_of_work import atomic, run_with_lock_retry

PUBLISHED_METADATA_FIELDS = ("name", "emoji", "color", "category", "subtopic", "difficulty")

STATE_UNPUBLISHED = "unpublished"
STATE_PUBLISHED = "published"
STATE_STALE = "published_stale"


def get_community_deck_for(deck_id: int) -> Optional[CommunityDeck]:
    return CommunityDeck.query.filter_by(original_deck_id=deck_id).first()


def _load_publishable_deck(user, deck_id: int) -> Deck:
    deck = db.session.get(Deck, deck_id)
    if deck is None or deck.user_id != user.id or deck.is_deleted:
        raise NotFound("deck_not_found", {"deck_id": deck_id})
    if deck.publish_banned:
        raise Forbidden(
            "publish_banned",
            {"message": "This deck is banned from publishing.", "reason": deck.publish_banned_reason},
        )
    if deck.is_community:
        raise Forbidden(
            "imported_deck",
            {"message": "Cannot publish a deck that was imported from the community."},
        )
    return deck


def _requested_metadata(deck: Deck, payload: dict) -> dict:
    metadata = {}
    for field in PUBLISHED_METADATA_FIELDS:
        metadata[field] = payload[field] if field in payload else getattr(deck, field)
    if not metadata["name"]:
        metadata["name"] = deck.name
    return metadata


def _metadata_changed(published: CommunityDeck, metadata: dict) -> bool:
    return any(getattr(published, field) != value for field, value in metadata.items())


def _publishable_cards(deck: Deck) -> list:
    cards = deck.active_cards
    if not cards:
        raise ValidationError(
            "deck_has_no_cards", {"message": "Deck must have at least one card to publish."}
        )
    limit = current_app.config.get("PUBLISH_MAX_CARDS")
    if limit and len(cards) > limit:
        raise ValidationError("deck_too_large", {"max_cards": limit, "card_count": len(cards)})
    return cards


def _capture_source_clock(published: CommunityDeck, deck: Deck):
    """Record the deck content clock the snapshot is about to reflect.

    Runs before any snapshot card is touched. Content edits that land after
    this point carry a later clock and keep the snapshot visibly stale.
    """

    captured = deck.content_updated_at
    published.source_content_updated_at = captured
    return captured


def _replace_snapshot_cards(published: CommunityDeck, deck: Deck, cards: list) -> None:
    assert coerce_aware(published.source_content_updated_at) == coerce_aware(
        deck.content_updated_at
    ), "source clock must be captured before snapshot cards change"
    published.cards = [CommunityCard(**values) for values in card_transcoder.snapshot_cards(cards)]
    published.card_count = len(published.cards)


def _bump_version(published: CommunityDeck, read_version: int) -> int:
    result = db.session.execute(
        update(CommunityDeck)
        .where(CommunityDeck.id == published.id, CommunityDeck.version == read_version)
        .values(version=read_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise Conflict(
            "concurrent_modification",
            {"community_deck_id": published.id, "expected_version": read_version},
        )
    set_committed_value(published, "version", read_version + 1)
    return read_version + 1


def _apply_metadata(published: CommunityDeck, metadata: dict) -> None:
    for field, value in metadata.items():
        setattr(published, field, value)


def _published_count(owner_id: int) -> int:
    return CommunityDeck.query.filter(
        CommunityDeck.owner_id == owner_id,
        CommunityDeck.is_published.is_(True),
        CommunityDeck.is_deleted.is_(False),
    ).count()


def publish(user, deck_id: int, payload: dict) -> Tuple[CommunityDeck, str]:
    """Publish or refresh ``deck_id`` in the community catalog.

    Returns the community deck and one of ``created``, ``updated`` or
    ``republished``. Raises :class:`NoChangesError` when an already listed
    snapshot matches the deck.
    """

    if not payload.get("category") or not payload.get("subtopic"):
        raise ValidationError(
            "invalid_publish_request", {"message": "Category and subtopic are required."}
        )

    def _publish() -> Tuple[CommunityDeck, str]:
        with atomic("publish") as uow:
            deck = _load_publishable_deck(user, deck_id)
            cards = _publishable_cards(deck)
            metadata = _requested_metadata(deck, payload)
            published = get_community_deck_for(deck.id)
            stamp = now()

            if published is None:
                published = CommunityDeck(
                    original_deck_id=deck.id,
                    owner_id=deck.user_id,
                    owner_display_name=deck.owner.public_name,
                    version=1,
                    is_published=True,
                    published_at=stamp,
                    download_count=0,
                )
                _apply_metadata(published, metadata)
                _capture_source_clock(published, deck)
                _replace_snapshot_cards(published, deck, cards)
                db.session.add(published)
                outcome = "created"
            else:
                read_version = published.version
                listed = published.is_published and not published.is_deleted
                if listed:
                    cards_changed = cards_changed_since_capture(deck, published)
                    if not cards_changed and not _metadata_changed(published, metadata):
                        raise NoChangesError()
                _capture_source_clock(published, deck)
                _replace_snapshot_cards(published, deck, cards)
                _apply_metadata(published, metadata)
                published.owner_display_name = deck.owner.public_name
                if listed:
                    outcome = "updated"
                else:
                    published.is_published = True
                    published.is_deleted = False
                    published.deleted_at = None
                    published.published_at = stamp
                    outcome = "republished"
                _bump_version(published, read_version)

            # category / subtopic are deck metadata, not card content
            deck.category = metadata["category"]
            deck.subtopic = metadata["subtopic"]
            deck.is_published = True
            db.session.flush()

            if outcome != "updated":
                hook_payload = {
                    "user_id": deck.user_id,
                    "deck_id": deck.id,
                    "community_deck_id": published.id,
                    "version": published.version,
                    "published_count": _published_count(deck.user_id),
                }
                uow.after_commit(lambda: emit_safely("published", hook_payload))
        return published, outcome

    try:
        published, outcome = run_with_lock_retry(_publish)
    except NoChangesError:
        metrics.record_publish("no_changes")
        raise
    except ContentError:
        metrics.record_publish("rejected")
        raise
    metrics.record_publish(outcome)
    current_app.logger.info(
        "Deck published",
        extra={
            "user_id": user.id,
            "deck_id": deck_id,
            "community_deck_id": published.id,
            "outcome": outcome,
            "version": published.version,
        },
    )
    return published, outcome


def _unpublish(published: CommunityDeck) -> bool:
    if not published.is_published:
        return False
    published.is_published = False
    source = published.original_deck
    if source is not None:
        source.is_published = False
    return True


def unpublish(user, deck_id: int) -> CommunityDeck:
    """Take a deck's snapshot out of the catalog. Cards are kept as-is."""

    def _run() -> Tuple[CommunityDeck, bool]:
        with atomic("unpublish"):
            deck = db.session.get(Deck, deck_id)
            if deck is None:
                raise NotFound("deck_not_found", {"deck_id": deck_id})
            published = get_community_deck_for(deck.id)
            if published is None:
                raise NotFound("community_deck_not_found", {"deck_id": deck_id})
            if not is_owner_or_admin(user, published.owner_id):
                raise Forbidden(
                    "not_owner",
                    {
                        "message": "Only the deck author or an admin can unpublish this deck.",
                        "community_deck_id": published.id,
                    },
                )
            changed = _unpublish(published)
        return published, changed

    published, changed = run_with_lock_retry(_run)
    _log_unpublish(user, published, changed)
    return published


def unpublish_community_deck(user, community_deck_id: int) -> CommunityDeck:
    def _run() -> Tuple[CommunityDeck, bool]:
        with atomic("unpublish"):
            published = db.session.get(CommunityDeck, community_deck_id)
            if published is None:
                raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
            if not is_owner_or_admin(user, published.owner_id):
                raise Forbidden("not_owner", {"community_deck_id": community_deck_id})
            changed = _unpublish(published)
        return published, changed

    published, changed = run_with_lock_retry(_run)
    _log_unpublish(user, published, changed)
    return published


def delete_community_deck(user, community_deck_id: int) -> CommunityDeck:
    """Soft delete a listing. Its cards and download count are kept for restore."""

    def _run() -> CommunityDeck:
        with atomic("delete_community_deck"):
            published = db.session.get(CommunityDeck, community_deck_id)
            if published is None or published.is_deleted:
                raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
            if not is_owner_or_admin(user, published.owner_id):
                raise Forbidden("not_owner", {"community_deck_id": community_deck_id})
            published.is_deleted = True
            published.deleted_at = now()
            source = published.original_deck
            if source is not None:
                source.is_published = False
        return published

    published = run_with_lock_retry(_run)
    metrics.record_publish("deleted")
    current_app.logger.info(
        "Community deck soft-deleted",
        extra={"user_id": user.id, "community_deck_id": published.id, "outcome": "deleted"},
    )
    return published


def restore_community_deck(user, community_deck_id: int) -> CommunityDeck:
    """Undo :func:`delete_community_deck` in place; the row and its cards keep their ids."""

    def _run() -> CommunityDeck:
        with atomic("restore_community_deck"):
            published = db.session.get(CommunityDeck, community_deck_id)
            if published is None:
                raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
            if not is_owner_or_admin(user, published.owner_id):
                raise Forbidden("not_owner", {"community_deck_id": community_deck_id})
            if not published.is_deleted:
                raise ValidationError(
                    "community_deck_not_deleted", {"community_deck_id": community_deck_id}
                )
            published.is_deleted = False
            published.deleted_at = None
            source = published.original_deck
            if source is not None and not source.is_deleted:
                source.is_published = published.is_published
        return published

    published = run_with_lock_retry(_run)
    metrics.record_publish("restored")
    current_app.logger.info(
        "Community deck restored",
        extra={"user_id": user.id, "community_deck_id": published.id, "outcome": "restored"},
    )
    return published


def list_deleted_community_decks() -> list:
    return (
        CommunityDeck.query.filter(CommunityDeck.is_deleted.is_(True))
        .order_by(CommunityDeck.deleted_at.desc())
        .all()
    )


def _log_unpublish(user, published: CommunityDeck, changed: bool) -> None:
    outcome = "unpublished" if changed else "already_unpublished"
    metrics.record_publish(outcome)
    current_app.logger.info(
        "Community deck unpublished",
        extra={"user_id": user.id, "community_deck_id": published.id, "outcome": outcome},
    )


def update_published_deck(user, community_deck_id: int, payload: dict) -> CommunityDeck:
    """Catalog-side edit: new metadata and, if the source moved, new cards."""

    def _update() -> CommunityDeck:
        with atomic("update_published_deck"):
            published = db.session.get(CommunityDeck, community_deck_id)
            if published is None or published.is_deleted:
                raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
            if not is_owner_or_admin(user, published.owner_id):
                raise Forbidden("not_owner", {"community_deck_id": community_deck_id})
            read_version = published.version
            metadata = {
                field: payload[field] for field in PUBLISHED_METADATA_FIELDS if field in payload
            }
            source = published.original_deck
            if source is not None and source.is_deleted:
                source = None
            cards_changed = source is not None and cards_changed_since_capture(source, published)
            if not cards_changed and not _metadata_changed(published, metadata):
                raise NoChangesError()
            if cards_changed:
                cards = _publishable_cards(source)
                _capture_source_clock(published, source)
                _replace_snapshot_cards(published, source, cards)
            _apply_metadata(published, metadata)
            _bump_version(published, read_version)
        return published

    try:
        published = run_with_lock_retry(_update)
    except NoChangesError:
        metrics.record_publish("no_changes")
        raise
    except ContentError:
        metrics.record_publish("rejected")
        raise
    metrics.record_publish("updated")
    current_app.logger.info(
        "Community deck updated",
        extra={
            "user_id": user.id,
            "community_deck_id": published.id,
            "version": published.version,
        },
    )
    return published


def publish_status(user, deck_id: int) -> Tuple[str, Optional[CommunityDeck]]:
    deck = db.session.get(Deck, deck_id)
    if deck is None or deck.user_id != user.id or deck.is_deleted:
        raise NotFound("deck_not_found", {"deck_id": deck_id})
    published = get_community_deck_for(deck.id)
    if published is None or not published.is_published or published.is_deleted:
        return STATE_UNPUBLISHED, published
    if cards_changed_since_capture(deck, published):
        return STATE_STALE, published
    return STATE_PUBLISHED, published
