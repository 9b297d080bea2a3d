"""Schemas for the community catalog."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class CommunityCardSchema(Schema):
    id = fields.Integer(dump_only=True)
    card_type = fields.String()
    front = fields.String(allow_none=True)
    back = fields.String(allow_none=True)
    correct_answers = fields.List(fields.String(), allow_none=True)
    incorrect_answers = fields.List(fields.String(), allow_none=True)
    accepted_answers = fields.List(fields.String(), allow_none=True)
    front_image_url = fields.String(allow_none=True)
    back_image_url = fields.String(allow_none=True)
    audio_url = fields.String(allow_none=True)
    back_audio_url = fields.String(allow_none=True)
    position = fields.Integer()


class CommunityDeckSchema(Schema):
    id = fields.Integer(dump_only=True)
    original_deck_id = fields.Integer(dump_only=True, allow_none=True)
    owner_id = fields.Integer(dump_only=True)
    owner_display_name = fields.String(dump_only=True, allow_none=True)
    name = fields.String()
    emoji = fields.String(allow_none=True)
    color = fields.String(allow_none=True)
    category = fields.String(allow_none=True)
    subtopic = fields.String(allow_none=True)
    difficulty = fields.String(allow_none=True)
    card_count = fields.Integer(dump_only=True)
    version = fields.Integer(dump_only=True)
    source_content_updated_at = fields.DateTime(dump_only=True, allow_none=True)
    is_published = fields.Boolean(dump_only=True)
    published_at = fields.DateTime(dump_only=True, allow_none=True)
    download_count = fields.Integer(dump_only=True)
    is_deleted = fields.Boolean(dump_only=True)
    deleted_at = fields.DateTime(dump_only=True, allow_none=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)


class CommunityDeckDetailSchema(CommunityDeckSchema):
    cards = fields.Nested(CommunityCardSchema, many=True, dump_only=True)


class CommunityDeckUpdateSchema(Schema):
    name = fields.String(validate=validate.Length(min=1, max=255))
    emoji = fields.String(allow_none=True, validate=validate.Length(max=16))
    color = fields.String(allow_none=True, validate=validate.Length(max=32))
    category = fields.String(validate=validate.Length(min=1, max=128))
    subtopic = fields.String(validate=validate.Length(min=1, max=128))
    difficulty = fields.String(allow_none=True, validate=validate.Length(max=32))

    class Meta:
        unknown = EXCLUDE


class AddDeckSchema(Schema):
    community_deck_id = fields.Integer(required=True)

    class Meta:
        unknown = EXCLUDE


class DownloadCountsSchema(Schema):
    ids = fields.List(fields.Integer(), required=True, validate=validate.Length(max=200))
