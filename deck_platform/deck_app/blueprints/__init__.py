"""REST API blueprints (auth, decks, community, admin, metrics)."""

from __future__ import annotations

from .admin_bp import admin_bp
from .auth_bp import auth_bp
from .community_bp import community_bp
from .decks_bp import decks_bp
from .metrics_bp import metrics_bp

BLUEPRINTS = (
    (auth_bp, "/api/auth"),
    (decks_bp, "/api/decks"),
    (community_bp, "/api/community"),
    (admin_bp, "/api/admin"),
    (metrics_bp, ""),
)

__all__ = [
    "BLUEPRINTS",
    "admin_bp",
    "auth_bp",
    "community_bp",
    "decks_bp",
    "metrics_bp",
]
