"""Schemas for decks, cards and deck-level actions."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

from ..models import CARD_TYPES
from ..services.card_transcoder import MULTIPLE_CHOICE, to_choice_options


class CardSchema(Schema):
    id = fields.Integer(dump_only=True)
    deck_id = fields.Integer(dump_only=True)
    card_type = fields.String()
    front = fields.String(allow_none=True)
    back = fields.String(allow_none=True)
    correct_answers = fields.List(fields.String(), allow_none=True)
    incorrect_answers = fields.List(fields.String(), allow_none=True)
    accepted_answers = fields.List(fields.String(), allow_none=True)
    options = fields.Method("get_options")
    correct_indices = fields.Method("get_correct_indices")
    front_image_url = fields.String(allow_none=True)
    back_image_url = fields.String(allow_none=True)
    front_audio = fields.String(allow_none=True)
    back_audio = fields.String(allow_none=True)
    position = fields.Integer()
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)

    def get_options(self, card):
        if card.card_type != MULTIPLE_CHOICE:
            return None
        return to_choice_options(card.correct_answers, card.incorrect_answers)[0]

    def get_correct_indices(self, card):
        if card.card_type != MULTIPLE_CHOICE:
            return None
        return to_choice_options(card.correct_answers, card.incorrect_answers)[1]


class CardCreateSchema(Schema):
    card_type = fields.String(
        load_default="classic-flip", validate=validate.OneOf(CARD_TYPES)
    )
    front = fields.String(required=True, validate=validate.Length(min=1))
    back = fields.String(allow_none=True)
    options = fields.List(fields.String(), allow_none=True)
    correct_indices = fields.List(fields.Integer(), allow_none=True)
    correct_answers = fields.List(fields.String(), allow_none=True)
    incorrect_answers = fields.List(fields.String(), allow_none=True)
    accepted_answers = fields.List(fields.String(), allow_none=True)
    front_image_url = fields.String(allow_none=True, validate=validate.Length(max=1024))
    back_image_url = fields.String(allow_none=True, validate=validate.Length(max=1024))
    front_audio = fields.String(allow_none=True, validate=validate.Length(max=1024))
    back_audio = fields.String(allow_none=True, validate=validate.Length(max=1024))

    class Meta:
        unknown = EXCLUDE


class CardPositionsSchema(Schema):
    card_ids = fields.List(fields.Integer(), required=True)


class DeckSchema(Schema):
    id = fields.Integer(dump_only=True)
    user_id = fields.Integer(dump_only=True)
    creator_id = fields.Integer(dump_only=True, allow_none=True)
    name = fields.String()
    emoji = fields.String(allow_none=True)
    color = fields.String(allow_none=True)
    category = fields.String(allow_none=True)
    subtopic = fields.String(allow_none=True)
    difficulty = fields.String(allow_none=True)
    position = fields.Integer()
    card_count = fields.Integer(dump_only=True)
    content_updated_at = fields.DateTime(dump_only=True)
    is_published = fields.Boolean(dump_only=True)
    publish_banned = fields.Boolean(dump_only=True)
    publish_banned_reason = fields.String(dump_only=True, allow_none=True)
    is_community = fields.Boolean(dump_only=True)
    source_community_deck_id = fields.Integer(dump_only=True, allow_none=True)
    last_synced_at = fields.DateTime(dump_only=True, allow_none=True)
    imported_from_version = fields.Integer(dump_only=True, allow_none=True)
    is_deleted = fields.Boolean(dump_only=True)
    deleted_at = fields.DateTime(dump_only=True, allow_none=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)


class DeckDetailSchema(DeckSchema):
    cards = fields.Method("get_cards")

    def get_cards(self, deck):
        return CardSchema(many=True).dump(deck.active_cards)


class DeckCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    emoji = fields.String(allow_none=True, validate=validate.Length(max=16))
    color = fields.String(allow_none=True, validate=validate.Length(max=32))
    category = fields.String(allow_none=True, validate=validate.Length(max=128))
    subtopic = fields.String(allow_none=True, validate=validate.Length(max=128))
    difficulty = fields.String(allow_none=True, validate=validate.Length(max=32))

    class Meta:
        unknown = EXCLUDE


class DeckUpdateSchema(DeckCreateSchema):
    position = fields.Integer(validate=validate.Range(min=0))


class PublishSchema(Schema):
    category = fields.String(required=True, validate=validate.Length(min=1, max=128))
    subtopic = fields.String(required=True, validate=validate.Length(min=1, max=128))
    name = fields.String(validate=validate.Length(min=1, max=255))
    emoji = fields.String(allow_none=True, validate=validate.Length(max=16))
    color = fields.String(allow_none=True, validate=validate.Length(max=32))
    difficulty = fields.String(allow_none=True, validate=validate.Length(max=32))

    class Meta:
        unknown = EXCLUDE


class PublishBanSchema(Schema):
    reason = fields.String(allow_none=True, validate=validate.Length(max=255))
