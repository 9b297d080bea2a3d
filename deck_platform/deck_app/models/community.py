"""Community catalog snapshots."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


class CommunityDeck(db.Model):
    """Public snapshot of exactly one owned deck.

    Re-publishing reuses the row. ``source_content_updated_at`` is the owned
    deck's ``content_updated_at`` as of the last successful capture and is
    the freshness anchor importers compare against.
    """

    __tablename__ = "community_decks"

    id = db.Column(db.Integer, primary_key=True)
    original_deck_id = db.Column(
        db.Integer, db.ForeignKey("decks.id"), unique=True, nullable=True
    )
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    owner_display_name = db.Column(db.String(128))
    name = db.Column(db.String(255), nullable=False)
    emoji = db.Column(db.String(16))
    color = db.Column(db.String(32))
    category = db.Column(db.String(128))
    subtopic = db.Column(db.String(128))
    difficulty = db.Column(db.String(32))
    card_count = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False, default=1)
    source_content_updated_at = db.Column(db.DateTime(timezone=True))
    is_published = db.Column(db.Boolean, nullable=False, default=True, index=True)
    published_at = db.Column(db.DateTime(timezone=True))
    download_count = db.Column(db.Integer, nullable=False, default=0)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = db.relationship("User")
    original_deck = db.relationship("Deck", foreign_keys=[original_deck_id])
    cards = db.relationship(
        "CommunityCard",
        back_populates="community_deck",
        order_by="CommunityCard.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CommunityDeck {self.id} original={self.original_deck_id} v{self.version}>"


class CommunityCard(db.Model):
    __tablename__ = "community_cards"

    id = db.Column(db.Integer, primary_key=True)
    community_deck_id = db.Column(
        db.Integer, db.ForeignKey("community_decks.id"), nullable=False, index=True
    )
    card_type = db.Column(db.String(32), nullable=False)
    front = db.Column(db.Text)
    back = db.Column(db.Text)
    correct_answers = db.Column(db.JSON)
    incorrect_answers = db.Column(db.JSON)
    accepted_answers = db.Column(db.JSON)
    front_image_url = db.Column(db.String(1024))
    back_image_url = db.Column(db.String(1024))
    audio_url = db.Column(db.String(1024))
    back_audio_url = db.Column(db.String(1024))
    position = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    community_deck = db.relationship("CommunityDeck", back_populates="cards")
