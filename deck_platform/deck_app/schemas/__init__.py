"""Serialization / validation schemas (Marshmallow)."""

from .user_schema import LoginSchema, RegisterSchema, UserSchema
from .deck_schema import (
    CardCreateSchema,
    CardPositionsSchema,
    CardSchema,
    DeckCreateSchema,
    DeckDetailSchema,
    DeckSchema,
    DeckUpdateSchema,
    PublishBanSchema,
    PublishSchema,
)
from .community_schema import (
    AddDeckSchema,
    CommunityCardSchema,
    CommunityDeckDetailSchema,
    CommunityDeckSchema,
    CommunityDeckUpdateSchema,
    DownloadCountsSchema,
)

__all__ = [
    "LoginSchema",
    "RegisterSchema",
    "UserSchema",
    "CardCreateSchema",
    "CardPositionsSchema",
    "CardSchema",
    "DeckCreateSchema",
    "DeckDetailSchema",
    "DeckSchema",
    "DeckUpdateSchema",
    "PublishBanSchema",
    "PublishSchema",
    "AddDeckSchema",
    "CommunityCardSchema",
    "CommunityDeckDetailSchema",
    "CommunityDeckSchema",
    "CommunityDeckUpdateSchema",
    "DownloadCountsSchema",
]
