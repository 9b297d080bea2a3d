"""Tests for snapshot freshness comparisons."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from deck_app.services import freshness


def _at(minute: int) -> datetime:
    return datetime(2026, 5, 1, 12, minute, tzinfo=timezone.utc)


def test_equal_timestamps_are_not_stale():
    assert freshness.is_stale(_at(0), _at(0)) is False


def test_earlier_sync_is_stale():
    assert freshness.is_stale(_at(0), _at(1)) is True
    assert freshness.is_stale(_at(2), _at(1)) is False


def test_never_synced_is_always_stale():
    assert freshness.is_stale(None, _at(0)) is True
    assert freshness.is_stale(None, None) is True


def test_naive_values_are_treated_as_utc():
    naive = datetime(2026, 5, 1, 12, 0)
    assert freshness.is_stale(naive, _at(0)) is False
    assert freshness.is_stale(naive, _at(1)) is True
    shifted = datetime(2026, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert freshness.is_stale(shifted, _at(0)) is False


def test_freshness_prefers_captured_source_clock():
    captured = SimpleNamespace(source_content_updated_at=_at(3), updated_at=_at(9))
    assert freshness.freshness_of(captured) == _at(3)


def test_freshness_falls_back_to_updated_at():
    legacy = SimpleNamespace(source_content_updated_at=None, updated_at=datetime(2026, 5, 1, 12, 9))
    assert freshness.freshness_of(legacy) == _at(9)


def test_cards_changed_since_capture():
    snapshot = SimpleNamespace(source_content_updated_at=_at(5))
    assert freshness.cards_changed_since_capture(SimpleNamespace(content_updated_at=_at(5)), snapshot) is False
    assert freshness.cards_changed_since_capture(SimpleNamespace(content_updated_at=_at(6)), snapshot) is True


def test_bump_content_clock_is_strictly_monotonic():
    future = datetime.now(timezone.utc) + timedelta(hours=1)
    bumped = freshness.bump_content_clock(future)
    assert bumped == future + freshness.CLOCK_TICK
    assert freshness.bump_content_clock(bumped) > bumped


def test_bump_content_clock_uses_wall_clock_when_ahead():
    past = _at(0)
    bumped = freshness.bump_content_clock(past)
    assert bumped > past
    assert bumped.tzinfo is not None
    assert freshness.bump_content_clock(None).tzinfo is not None
