"""Utility helpers (password hashing, tokens, ownership checks)."""

from .security import generate_access_token, hash_password, is_owner_or_admin, verify_password

__all__ = ["generate_access_token", "hash_password", "is_owner_or_admin", "verify_password"]
