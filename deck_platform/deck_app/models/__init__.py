"""Database models package."""

from .user import User
from .deck import CARD_TYPES, Card, Deck
from .community import CommunityCard, CommunityDeck

__all__ = [
    "User",
    "CARD_TYPES",
    "Card",
    "Deck",
    "CommunityCard",
    "CommunityDeck",
]
