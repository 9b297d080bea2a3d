"""Outbound domain hooks (achievements, notifications).

The engine never decides what a hook means. It hands ``published``,
``imported`` and ``downloadMilestone`` events to whichever dispatcher is
installed in ``app.extensions["hook_dispatcher"]``, always after the
surrounding transaction has committed.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import threading
import time
from typing import Any, Dict

import requests
from flask import current_app

from .. import metrics

HOOK_EVENTS = ("published", "imported", "downloadMilestone")


class HookDispatcher:
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class NullHookDispatcher(HookDispatcher):
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        return None


class LoggingHookDispatcher(HookDispatcher):
    """Default dispatcher: writes each event to the application log."""

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        current_app.logger.info(
            "Domain hook %s",
            event,
            extra={"event": event, "user_id": payload.get("user_id")},
        )


class WebhookHookDispatcher(HookDispatcher):
    """POST events as JSON to an external endpoint.

    Delivery happens on a daemon thread unless ``run_async`` is false and
    retries with linear backoff. Failures are logged and counted, never
    raised back into the request that produced the event.
    """

    def __init__(
        self,
        url: str,
        *,
        secret: str = "",
        timeout: float = 5,
        max_retries: int = 3,
        backoff: float = 1.0,
        run_async: bool = True,
    ) -> None:
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff = backoff
        self.run_async = run_async

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        body = json.dumps({"event": event, "payload": payload}, default=str)
        if not self.run_async:
            self._deliver(current_app._get_current_object(), event, body)
            return
        app = current_app._get_current_object()
        thread = threading.Thread(
            target=self._deliver,
            args=(app, event, body),
            name=f"hook-{event}",
            daemon=True,
        )
        thread.start()

    def _headers(self, body: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            digest = hmac.new(self.secret.encode(), body.encode(), hashlib.sha256).hexdigest()
            headers["X-Flashdeck-Signature"] = f"sha256={digest}"
        return headers

    def _deliver(self, app, event: str, body: str) -> bool:
        with app.app_context():
            attempt = 0
            while True:
                attempt += 1
                try:
                    response = requests.post(
                        self.url,
                        data=body,
                        headers=self._headers(body),
                        timeout=self.timeout,
                    )
                    response.raise_for_status()
                    return True
                except requests.RequestException as exc:
                    if attempt >= self.max_retries:
                        app.logger.error(
                            "Hook %s delivery failed after %s attempts: %s",
                            event,
                            attempt,
                            exc,
                            extra={"event": event},
                        )
                        metrics.record_hook_failure(event)
                        return False
                    delay = self.backoff * attempt
                    app.logger.warning(
                        "Hook %s delivery failed (attempt %s/%s): %s. Retrying in %.1fs",
                        event,
                        attempt,
                        self.max_retries,
                        exc,
                        delay,
                    )
                    time.sleep(delay)


def build_hook_dispatcher(config) -> HookDispatcher:
    if not config.get("HOOKS_ENABLED", True):
        return NullHookDispatcher()
    url = config.get("HOOKS_WEBHOOK_URL")
    if url:
        return WebhookHookDispatcher(
            url,
            secret=config.get("HOOKS_WEBHOOK_SECRET", ""),
            timeout=config.get("HOOKS_TIMEOUT_SEC", 5),
            max_retries=config.get("HOOKS_MAX_RETRIES", 3),
            backoff=float(config.get("HOOKS_RETRY_BACKOFF", 1.0)),
            run_async=config.get("HOOKS_ASYNC", True),
        )
    return LoggingHookDispatcher()


def get_hook_dispatcher() -> HookDispatcher:
    app = current_app
    dispatcher = app.extensions.get("hook_dispatcher")
    if dispatcher is None:
        dispatcher = build_hook_dispatcher(app.config)
        app.extensions["hook_dispatcher"] = dispatcher
    return dispatcher


def emit_safely(event: str, payload: Dict[str, Any]) -> None:
    """Emit a hook; a failing dispatcher never fails the caller."""

    try:
        get_hook_dispatcher().emit(event, payload)
    except Exception:
        current_app.logger.exception("Hook %s dispatch failed", event, extra={"event": event})
        metrics.record_hook_failure(event)
