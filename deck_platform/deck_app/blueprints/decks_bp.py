"""Personal deck endpoints: CRUD, cards, soft delete and publishing."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from marshmallow import ValidationError

from ..schemas import (
    CardCreateSchema,
    CardPositionsSchema,
    CardSchema,
    CommunityDeckSchema,
    DeckCreateSchema,
    DeckDetailSchema,
    DeckSchema,
    DeckUpdateSchema,
    PublishSchema,
)
from ..services import deck_service, import_service, publication_service
from ..services.errors import ContentError

decks_bp = Blueprint("decks_bp", __name__)

deck_schema = DeckSchema()
decks_schema = DeckSchema(many=True)
deck_detail_schema = DeckDetailSchema()
deck_create_schema = DeckCreateSchema()
deck_update_schema = DeckUpdateSchema(partial=True)
card_schema = CardSchema()
card_create_schema = CardCreateSchema()
card_update_schema = CardCreateSchema(partial=True)
positions_schema = CardPositionsSchema()
publish_schema = PublishSchema()
community_deck_schema = CommunityDeckSchema()


@decks_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@decks_bp.errorhandler(ContentError)
def handle_content_error(err: ContentError):
    return jsonify(err.to_dict()), err.status


@decks_bp.get("")
@jwt_required()
def list_decks():
    return jsonify({"decks": decks_schema.dump(deck_service.list_decks(current_user))})


@decks_bp.post("")
@jwt_required()
def create_deck():
    payload = deck_create_schema.load(request.get_json() or {})
    deck = deck_service.create_deck(current_user, payload)
    return jsonify({"deck": deck_detail_schema.dump(deck)}), HTTPStatus.CREATED


@decks_bp.get("/<int:deck_id>")
@jwt_required()
def get_deck(deck_id: int):
    deck = deck_service.get_owned_deck(current_user, deck_id)
    return jsonify({"deck": deck_detail_schema.dump(deck)})


@decks_bp.patch("/<int:deck_id>")
@jwt_required()
def update_deck(deck_id: int):
    payload = deck_update_schema.load(request.get_json() or {})
    deck = deck_service.update_deck(current_user, deck_id, payload)
    return jsonify({"deck": deck_schema.dump(deck)})


@decks_bp.delete("/<int:deck_id>")
@jwt_required()
def delete_deck(deck_id: int):
    deck_service.delete_deck(current_user, deck_id)
    return jsonify({"message": "Deck deleted", "deck_id": deck_id})


@decks_bp.post("/<int:deck_id>/restore")
@jwt_required()
def restore_deck(deck_id: int):
    deck = deck_service.restore_deck(current_user, deck_id)
    return jsonify({"deck": deck_detail_schema.dump(deck)})


@decks_bp.post("/<int:deck_id>/cards")
@jwt_required()
def add_card(deck_id: int):
    payload = card_create_schema.load(request.get_json() or {})
    card = deck_service.add_card(current_user, deck_id, payload)
    return jsonify({"card": card_schema.dump(card)}), HTTPStatus.CREATED


@decks_bp.patch("/<int:deck_id>/cards/<int:card_id>")
@jwt_required()
def update_card(deck_id: int, card_id: int):
    payload = card_update_schema.load(request.get_json() or {})
    card = deck_service.update_card(current_user, deck_id, card_id, payload)
    return jsonify({"card": card_schema.dump(card)})


@decks_bp.delete("/<int:deck_id>/cards/<int:card_id>")
@jwt_required()
def delete_card(deck_id: int, card_id: int):
    deck_service.delete_card(current_user, deck_id, card_id)
    return jsonify({"message": "Card deleted", "card_id": card_id})


@decks_bp.put("/<int:deck_id>/cards/positions")
@jwt_required()
def reorder_cards(deck_id: int):
    payload = positions_schema.load(request.get_json() or {})
    deck = deck_service.reorder_cards(current_user, deck_id, payload["card_ids"])
    return jsonify({"deck": deck_detail_schema.dump(deck)})


@decks_bp.post("/<int:deck_id>/publish")
@jwt_required()
def publish_deck(deck_id: int):
    payload = publish_schema.load(request.get_json() or {})
    community_deck, outcome = publication_service.publish(current_user, deck_id, payload)
    status = HTTPStatus.CREATED if outcome == "created" else HTTPStatus.OK
    return (
        jsonify({"community_deck": community_deck_schema.dump(community_deck), "outcome": outcome}),
        status,
    )


@decks_bp.post("/<int:deck_id>/unpublish")
@jwt_required()
def unpublish_deck(deck_id: int):
    community_deck = publication_service.unpublish(current_user, deck_id)
    return jsonify({"community_deck": community_deck_schema.dump(community_deck)})


@decks_bp.get("/<int:deck_id>/publish-status")
@jwt_required()
def publish_status(deck_id: int):
    state, community_deck = publication_service.publish_status(current_user, deck_id)
    return jsonify(
        {
            "state": state,
            "community_deck": community_deck_schema.dump(community_deck) if community_deck else None,
        }
    )


@decks_bp.put("/<int:deck_id>/update-from-community")
@jwt_required()
def update_from_community(deck_id: int):
    deck = import_service.sync_imported_deck(current_user, deck_id)
    return jsonify({"deck": deck_detail_schema.dump(deck), "outcome": "updated"})
