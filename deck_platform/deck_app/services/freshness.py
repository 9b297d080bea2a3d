"""Freshness comparisons between captured snapshots and their consumers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

CLOCK_TICK = timedelta(microseconds=1)


def now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_stale(last_synced: datetime | None, freshness: datetime | None) -> bool:
    """Return True when ``last_synced`` predates ``freshness``.

    A consumer that never synced is always stale. Equal values are up to date.
    """

    last_synced = coerce_aware(last_synced)
    freshness = coerce_aware(freshness)
    if last_synced is None:
        return True
    if freshness is None:
        return False
    return last_synced < freshness


def freshness_of(community_deck) -> datetime | None:
    """The single definition of a snapshot's freshness value.

    Every import branch must read freshness through here so the fallback to
    ``updated_at`` cannot drift between code paths.
    """

    return coerce_aware(community_deck.source_content_updated_at or community_deck.updated_at)


def cards_changed_since_capture(deck, community_deck) -> bool:
    """Whether an owned deck's cards moved past what the snapshot captured."""

    return is_stale(community_deck.source_content_updated_at, deck.content_updated_at)


def bump_content_clock(previous: datetime | None) -> datetime:
    """Next ``content_updated_at`` value, strictly after ``previous``."""

    current = now()
    previous = coerce_aware(previous)
    if previous is not None and current <= previous:
        return previous + CLOCK_TICK
    return current
