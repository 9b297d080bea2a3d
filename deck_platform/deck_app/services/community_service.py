"""Read side of the community catalog."""

from __future__ import annotations

from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import CommunityDeck
from .errors import NotFound

SORT_OPTIONS = {
    "newest": CommunityDeck.published_at.desc(),
    "popular": CommunityDeck.download_count.desc(),
    "name": CommunityDeck.name.asc(),
}


def _listed():
    return CommunityDeck.query.filter(
        CommunityDeck.is_published.is_(True), CommunityDeck.is_deleted.is_(False)
    )


def list_catalog(
    page: int = 1,
    per_page: Optional[int] = None,
    category: Optional[str] = None,
    subtopic: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "newest",
):
    per_page = per_page or current_app.config.get("COMMUNITY_PAGE_SIZE", 24)
    query = _listed()
    if category:
        query = query.filter(CommunityDeck.category == category)
    if subtopic:
        query = query.filter(CommunityDeck.subtopic == subtopic)
    if search:
        query = query.filter(CommunityDeck.name.ilike(f"%{search.strip()}%"))
    order = SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"])
    return query.order_by(order, CommunityDeck.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def get_listed_deck(community_deck_id: int) -> CommunityDeck:
    deck = (
        _listed()
        .options(selectinload(CommunityDeck.cards))
        .filter(CommunityDeck.id == community_deck_id)
        .first()
    )
    if deck is None:
        raise NotFound("community_deck_not_found", {"community_deck_id": community_deck_id})
    return deck


def download_counts(community_deck_ids: Iterable[int]) -> dict[int, int]:
    ids = {int(deck_id) for deck_id in community_deck_ids}
    if not ids:
        return {}
    rows = db.session.query(CommunityDeck.id, CommunityDeck.download_count).filter(
        CommunityDeck.id.in_(ids)
    )
    return {deck_id: count for deck_id, count in rows}
