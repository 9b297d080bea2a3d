"""Transaction scope for multi-statement deck mutations.

Every write that touches more than one row (card replacement, snapshot
creation, soft delete of a deck together with its cards) runs inside
:func:`atomic`. The scope either commits once or rolls back everything it
did. Callbacks queued with :meth:`UnitOfWork.after_commit` only run once the
commit has succeeded, so a rolled back transaction never emits hooks.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..extensions import db
from .errors import ContentError, InternalError

T = TypeVar("T")


class StorageBusy(InternalError):
    """SQLite reported lock contention; the whole operation may be retried."""


class UnitOfWork:
    def __init__(self, label: str) -> None:
        self.label = label
        self._callbacks: list[Callable[[], None]] = []

    @property
    def session(self):
        return db.session

    def after_commit(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def _run_callbacks(self) -> None:
        for callback in self._callbacks:
            try:
                callback()
            except Exception:  # pragma: no cover - defensive logging
                current_app.logger.exception(
                    "after-commit callback failed", extra={"event": self.label}
                )


@contextmanager
def atomic(label: str) -> Iterator[UnitOfWork]:
    """Run the enclosed block as a single transaction.

    Domain errors raised inside the block roll back and propagate unchanged.
    Storage errors roll back and surface as :class:`InternalError`.
    """

    uow = UnitOfWork(label)
    try:
        yield uow
        db.session.commit()
    except ContentError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if "locked" in str(exc).lower():
            raise StorageBusy("storage_busy", {"operation": label}) from exc
        current_app.logger.exception("Transaction %s rolled back", label)
        raise InternalError("storage_failure", {"operation": label}) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Transaction %s rolled back", label)
        raise InternalError("storage_failure", {"operation": label}) from exc
    except Exception:
        db.session.rollback()
        raise
    uow._run_callbacks()


def run_with_lock_retry(fn: Callable[[], T]) -> T:
    """Re-run a whole transactional operation while SQLite is locked."""

    attempts = max(1, int(current_app.config.get("DB_COMMIT_RETRIES", 5)))
    base_delay = float(current_app.config.get("DB_COMMIT_RETRY_DELAY", 0.2))
    for attempt in range(attempts):
        try:
            return fn()
        except StorageBusy:
            if attempt == attempts - 1:
                raise
            current_app.logger.warning(
                "Database locked (attempt %s/%s); retrying", attempt + 1, attempts
            )
            time.sleep(base_delay * (attempt + 1))
    raise StorageBusy("storage_busy")  # pragma: no cover - loop always returns or raises
