"""Import community decks into a user's library and keep the copies fresh.

``import_or_sync`` decides what "add this deck" means for the caller, in
order:

1. the caller owns the original and deleted it: restore it in place;
2. the caller owns the original: refuse, there is nothing to import;
3. the caller already has a copy: restore it, refresh it when stale, or
   refuse when it is up to date;
4. otherwise create a new copy and count the download.

Imported cards are always fresh rows built from the community cards.
"""

from __future__ import annotations

from typing import Tuple

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.orm.attributes import set_committed_value

from .. import metrics
from ..extensions import db
from ..models import Card, CommunityDeck, Deck
from . import card_transcoder
from .deck_service import undelete_in_place
from .errors import Conflict, ContentError, NotFound, ValidationError
from .freshness import bump_content_clock, freshness_of, is_stale
from .hook_dispatcher import emit_safely
from .unit_of_work import atomic, run_with_lock_retry

IMPORTED_METADATA_FIELDS = ("name", "emoji", "color", "category", "subtopic", "difficulty")


def _load_listed_deck(community_deck_id: int) -> CommunityDeck:
    published = db.session.get(CommunityDeck, community_deck_id)
    if published is None or not published.is_published or published.is_deleted:
        raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
    return published


def _require_cards(published: CommunityDeck) -> None:
    if not published.cards:
        raise ValidationError(
            "community_deck_empty", {"community_deck_id": published.id}
        )


def _find_import(user_id: int, community_deck_id: int) -> Deck | None:
    return Deck.query.filter_by(
        user_id=user_id, source_community_deck_id=community_deck_id
    ).first()


def _refresh_import(deck: Deck, published: CommunityDeck) -> None:
    """Overwrite an imported deck with the snapshot's current cards and metadata."""

    _require_cards(published)
    deck.cards = [Card(**values) for values in card_transcoder.import_cards(published.cards)]
    for field in IMPORTED_METADATA_FIELDS:
        setattr(deck, field, getattr(published, field))
    deck.creator_id = published.owner_id
    deck.last_synced_at = freshness_of(published)
    deck.imported_from_version = published.version
    deck.content_updated_at = bump_content_clock(deck.content_updated_at)


def _increment_downloads(published: CommunityDeck) -> int:
    db.session.execute(
        update(CommunityDeck)
        .where(CommunityDeck.id == published.id)
        # downloads are not content; leave updated_at (the freshness fallback) alone
        .values(
            download_count=CommunityDeck.download_count + 1,
            updated_at=CommunityDeck.updated_at,
        )
        .execution_options(synchronize_session=False)
    )
    count = db.session.execute(
        select(CommunityDeck.download_count).where(CommunityDeck.id == published.id)
    ).scalar_one()
    set_committed_value(published, "download_count", count)
    return count


def owner_total_downloads(owner_id: int) -> int:
    return (
        db.session.query(func.coalesce(func.sum(CommunityDeck.download_count), 0))
        .filter(CommunityDeck.owner_id == owner_id, CommunityDeck.is_published.is_(True))
        .scalar()
    )


def import_count(user_id: int) -> int:
    return Deck.query.filter(
        Deck.user_id == user_id,
        Deck.is_community.is_(True),
        Deck.is_deleted.is_(False),
    ).count()


def _create_import(user, published: CommunityDeck, uow) -> Deck:
    last = (
        db.session.query(func.max(Deck.position)).filter(Deck.user_id == user.id).scalar()
    )
    deck = Deck(
        user_id=user.id,
        is_community=True,
        source_community_deck_id=published.id,
        position=(last + 1) if last is not None else 0,
    )
    _refresh_import(deck, published)
    db.session.add(deck)
    download_count = _increment_downloads(published)
    db.session.flush()

    imported_payload = {
        "user_id": user.id,
        "deck_id": deck.id,
        "community_deck_id": published.id,
        "import_count": import_count(user.id),
    }
    milestone_payload = {
        "user_id": published.owner_id,
        "community_deck_id": published.id,
        "download_count": download_count,
        "total_downloads": owner_total_downloads(published.owner_id),
    }
    uow.after_commit(lambda: emit_safely("imported", imported_payload))
    uow.after_commit(lambda: emit_safely("downloadMilestone", milestone_payload))
    return deck


def import_or_sync(user, community_deck_id: int) -> Tuple[Deck, str]:
    """Add a community deck to the caller's library.

    Returns the affected deck and one of ``restored``, ``updated`` or
    ``created``.
    """

    def _run() -> Tuple[Deck, str]:
        with atomic("import") as uow:
            published = _load_listed_deck(community_deck_id)
            original = published.original_deck
            if original is not None and original.user_id == user.id:
                if not original.is_deleted:
                    raise Conflict(
                        "already_own_deck",
                        {"message": "This deck is already in your library.", "deck_id": original.id},
                    )
                undelete_in_place(original)
                deck, outcome = original, "restored"
            else:
                existing = _find_import(user.id, published.id)
                if existing is None:
                    deck, outcome = _create_import(user, published, uow), "created"
                elif existing.is_deleted:
                    undelete_in_place(existing)
                    _refresh_import(existing, published)
                    deck, outcome = existing, "restored"
                elif not is_stale(existing.last_synced_at, freshness_of(published)):
                    raise Conflict(
                        "already_up_to_date",
                        {"message": "You already have the latest version.", "deck_id": existing.id},
                    )
                else:
                    _refresh_import(existing, published)
                    deck, outcome = existing, "updated"
        return deck, outcome

    try:
        deck, outcome = run_with_lock_retry(_run)
    except ContentError as exc:
        metrics.record_import(exc.code)
        raise
    metrics.record_import(outcome)
    current_app.logger.info(
        "Community deck imported",
        extra={
            "user_id": user.id,
            "deck_id": deck.id,
            "community_deck_id": community_deck_id,
            "outcome": outcome,
        },
    )
    return deck, outcome


def sync_imported_deck(user, deck_id: int) -> Deck:
    """Pull the latest community snapshot into an imported deck."""

    def _run() -> Deck:
        with atomic("sync_import"):
            deck = db.session.get(Deck, deck_id)
            if deck is None or deck.user_id != user.id or deck.is_deleted:
                raise NotFound("deck_not_found", {"deck_id": deck_id})
            if not deck.is_community or deck.source_community_deck_id is None:
                raise NotFound("deck_not_imported", {"deck_id": deck_id})
            published = db.session.get(CommunityDeck, deck.source_community_deck_id)
            if published is None or not published.is_published or published.is_deleted:
                raise NotFound(
                    "community_deck_not_found",
                    {"community_deck_id": deck.source_community_deck_id},
                )
            if not is_stale(deck.last_synced_at, freshness_of(published)):
                raise Conflict("already_up_to_date", {"deck_id": deck.id})
            _refresh_import(deck, published)
        return deck

    try:
        deck = run_with_lock_retry(_run)
    except ContentError as exc:
        metrics.record_import(exc.code)
        raise
    metrics.record_import("updated")
    current_app.logger.info(
        "Imported deck synced",
        extra={"user_id": user.id, "deck_id": deck.id, "outcome": "updated"},
    )
    return deck
