"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "flashdeck_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "flashdeck_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["endpoint"],
)
PUBLISH_OUTCOMES = Counter(
    "flashdeck_publish_total",
    "Publish / republish / unpublish outcomes",
    ["outcome"],
)
IMPORT_OUTCOMES = Counter(
    "flashdeck_import_total",
    "Community import / resync outcomes",
    ["outcome"],
)
HOOK_FAILURES = Counter(
    "flashdeck_hook_failures_total",
    "Domain hook deliveries that failed",
    ["event"],
)


def record_request(method: str, endpoint: str, status: int, latency: float) -> None:
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)


def record_publish(outcome: str) -> None:
    PUBLISH_OUTCOMES.labels(outcome=outcome).inc()


def record_import(outcome: str) -> None:
    IMPORT_OUTCOMES.labels(outcome=outcome).inc()


def record_hook_failure(event: str) -> None:
    HOOK_FAILURES.labels(event=event).inc()


def latest_metrics() -> tuple[bytes, str]:
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST
