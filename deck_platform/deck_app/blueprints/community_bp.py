"""Community catalog endpoints: browse, edit a listing, import, download counts."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, jwt_required
from marshmallow import ValidationError

from ..schemas import (
    AddDeckSchema,
    CommunityDeckDetailSchema,
    CommunityDeckSchema,
    CommunityDeckUpdateSchema,
    DeckDetailSchema,
    DownloadCountsSchema,
)
from ..services import community_service, import_service, publication_service
from ..services.errors import ContentError

community_bp = Blueprint("community_bp", __name__)

community_decks_schema = CommunityDeckSchema(many=True)
community_deck_schema = CommunityDeckSchema()
community_detail_schema = CommunityDeckDetailSchema()
community_update_schema = CommunityDeckUpdateSchema()
add_deck_schema = AddDeckSchema()
download_counts_schema = DownloadCountsSchema()
deck_detail_schema = DeckDetailSchema()


@community_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@community_bp.errorhandler(ContentError)
def handle_content_error(err: ContentError):
    return jsonify(err.to_dict()), err.status


def _pagination_payload(pagination) -> dict:
    return {
        "page": pagination.page,
        "per_page": pagination.per_page,
        "pages": pagination.pages,
        "total": pagination.total,
        "has_next": pagination.has_next,
        "has_prev": pagination.has_prev,
    }


@community_bp.get("/decks")
def list_community_decks():
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", type=int)
    pagination = community_service.list_catalog(
        page=page,
        per_page=per_page,
        category=request.args.get("category"),
        subtopic=request.args.get("subtopic"),
        search=request.args.get("search"),
        sort=request.args.get("sort", "newest"),
    )
    return jsonify(
        {
            "decks": community_decks_schema.dump(pagination.items),
            "pagination": _pagination_payload(pagination),
        }
    )


@community_bp.get("/decks/<int:community_deck_id>")
def get_community_deck(community_deck_id: int):
    deck = community_service.get_listed_deck(community_deck_id)
    return jsonify({"deck": community_detail_schema.dump(deck)})


@community_bp.put("/decks/<int:community_deck_id>")
@jwt_required()
def update_community_deck(community_deck_id: int):
    payload = community_update_schema.load(request.get_json() or {})
    deck = publication_service.update_published_deck(current_user, community_deck_id, payload)
    return jsonify({"deck": community_deck_schema.dump(deck)})


@community_bp.post("/add-deck")
@jwt_required()
def add_deck():
    payload = add_deck_schema.load(request.get_json() or {})
    deck, outcome = import_service.import_or_sync(current_user, payload["community_deck_id"])
    status = HTTPStatus.CREATED if outcome == "created" else HTTPStatus.OK
    return jsonify({"deck": deck_detail_schema.dump(deck), "outcome": outcome}), status


@community_bp.post("/downloads")
def download_counts():
    payload = download_counts_schema.load(request.get_json() or {})
    counts = community_service.download_counts(payload["ids"])
    return jsonify({"downloads": {str(deck_id): count for deck_id, count in counts.items()}})
