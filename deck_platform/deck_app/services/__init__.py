"""Business logic modules (publishing, imports, deck CRUD, hooks)."""

from . import (
    card_transcoder,
    community_service,
    deck_service,
    freshness,
    hook_dispatcher,
    import_service,
    publication_service,
    unit_of_work,
)

__all__ = [
    "card_transcoder",
    "community_service",
    "deck_service",
    "freshness",
    "hook_dispatcher",
    "import_service",
    "publication_service",
    "unit_of_work",
]
