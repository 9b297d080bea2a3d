"""Typed failures raised by the deck publishing and import services."""

from __future__ import annotations

from http import HTTPStatus


class ContentError(Exception):
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, code: str, payload: dict | None = None):
        super().__init__(code)
        self.code = code
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"error": self.code, **self.payload}


class NotFound(ContentError):
    status = HTTPStatus.NOT_FOUND


class Forbidden(ContentError):
    status = HTTPStatus.FORBIDDEN


class ValidationError(ContentError):
    status = HTTPStatus.BAD_REQUEST


class Conflict(ContentError):
    status = HTTPStatus.CONFLICT


class NoChangesError(Conflict):
    def __init__(self, code: str = "no_changes", payload: dict | None = None):
        super().__init__(
            code,
            payload
            or {"message": "No changes detected. Edit the deck before publishing an update."},
        )


class InternalError(ContentError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
