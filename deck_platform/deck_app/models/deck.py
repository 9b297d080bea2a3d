"""Personal deck models (owned decks and imported copies)."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


CARD_TYPES = ("classic-flip", "multiple-choice", "type-answer")


class Deck(db.Model):
    """A deck in a user's library.

    Owned decks are edited freely and may be published once to the community
    catalog. Imported decks (``is_community``) are independent copies of a
    :class:`CommunityDeck` and remember which snapshot they were synced from
    through ``last_synced_at``.
    """

    __tablename__ = "decks"
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "source_community_deck_id", name="uq_decks_user_import"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True)
    name = db.Column(db.String(255), nullable=False)
    emoji = db.Column(db.String(16))
    color = db.Column(db.String(32))
    category = db.Column(db.String(128))
    subtopic = db.Column(db.String(128))
    difficulty = db.Column(db.String(32))
    position = db.Column(db.Integer, nullable=False, default=0)
    content_updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    publish_banned = db.Column(db.Boolean, nullable=False, default=False)
    publish_banned_reason = db.Column(db.String(255))
    is_community = db.Column(db.Boolean, nullable=False, default=False)
    source_community_deck_id = db.Column(
        db.Integer, db.ForeignKey("community_decks.id", use_alter=True), index=True
    )
    last_synced_at = db.Column(db.DateTime(timezone=True))
    imported_from_version = db.Column(db.Integer)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = db.relationship("User", back_populates="decks", foreign_keys=[user_id])
    creator = db.relationship("User", foreign_keys=[creator_id])
    cards = db.relationship(
        "Card",
        back_populates="deck",
        order_by="Card.position",
        cascade="all, delete-orphan",
    )
    source_community_deck = db.relationship(
        "CommunityDeck", foreign_keys=[source_community_deck_id]
    )

    @property
    def active_cards(self) -> list["Card"]:
        return [card for card in self.cards if not card.is_deleted]

    @property
    def card_count(self) -> int:
        return len(self.active_cards)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Deck {self.id} user={self.user_id} name={self.name!r}>"


class Card(db.Model):
    __tablename__ = "cards"

    id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(db.Integer, db.ForeignKey("decks.id"), nullable=False, index=True)
    card_type = db.Column(db.String(32), nullable=False, default="classic-flip")
    front = db.Column(db.Text)
    back = db.Column(db.Text)
    correct_answers = db.Column(db.JSON)
    incorrect_answers = db.Column(db.JSON)
    accepted_answers = db.Column(db.JSON)
    front_image_url = db.Column(db.String(1024))
    back_image_url = db.Column(db.String(1024))
    front_audio = db.Column(db.String(1024))
    back_audio = db.Column(db.String(1024))
    position = db.Column(db.Integer, nullable=False, default=0)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    deck = db.relationship("Deck", back_populates="cards")
