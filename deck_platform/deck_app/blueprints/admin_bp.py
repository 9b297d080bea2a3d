"""Admin endpoints: deleted decks, publish bans, catalog takedowns."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from marshmallow import ValidationError

from ..schemas import CommunityDeckSchema, DeckSchema, PublishBanSchema
from ..services import deck_service, publication_service
from ..services.errors import ContentError

admin_bp = Blueprint("admin_bp", __name__)

decks_schema = DeckSchema(many=True)
deck_schema = DeckSchema()
community_deck_schema = CommunityDeckSchema()
community_decks_schema = CommunityDeckSchema(many=True)
publish_ban_schema = PublishBanSchema()


def require_admin():
    return current_user is not None and current_user.role == "admin"


@admin_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@admin_bp.errorhandler(ContentError)
def handle_content_error(err: ContentError):
    return jsonify(err.to_dict()), err.status


@admin_bp.get("/ping")
def ping():
    return jsonify({"module": "admin", "status": "ok"})


@admin_bp.get("/deleted-decks")
@jwt_required()
def list_deleted_decks():
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    user_id = request.args.get("user_id", type=int)
    decks = deck_service.list_deleted_decks(user_id=user_id)
    community_decks = publication_service.list_deleted_community_decks()
    return jsonify(
        {
            "decks": decks_schema.dump(decks),
            "community_decks": community_decks_schema.dump(community_decks),
        }
    )


@admin_bp.post("/decks/<int:deck_id>/publish-ban")
@jwt_required()
def ban_deck(deck_id: int):
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    payload = publish_ban_schema.load(request.get_json() or {})
    deck = deck_service.set_publish_ban(deck_id, True, payload.get("reason"))
    return jsonify({"deck": deck_schema.dump(deck)})


@admin_bp.delete("/decks/<int:deck_id>/publish-ban")
@jwt_required()
def lift_ban(deck_id: int):
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    deck = deck_service.set_publish_ban(deck_id, False)
    return jsonify({"deck": deck_schema.dump(deck)})


@admin_bp.post("/community/<int:community_deck_id>/unpublish")
@jwt_required()
def unpublish_community_deck(community_deck_id: int):
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    deck = publication_service.unpublish_community_deck(current_user, community_deck_id)
    return jsonify({"community_deck": community_deck_schema.dump(deck)})


@admin_bp.delete("/community/<int:community_deck_id>")
@jwt_required()
def delete_community_deck(community_deck_id: int):
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    deck = publication_service.delete_community_deck(current_user, community_deck_id)
    return jsonify({"community_deck": community_deck_schema.dump(deck)})


@admin_bp.post("/community/<int:community_deck_id>/restore")
@jwt_required()
def restore_community_deck(community_deck_id: int):
    if not require_admin():
        return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
    deck = publication_service.restore_community_deck(current_user, community_deck_id)
    return jsonify({"community_deck": community_deck_schema.dump(deck)})
