"""Tests for windows, deduplication, age buckets and rarity ordering."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from conftest import raw_observation

from inat_alerter.analysis import (
    ALERT_LOOKBACK,
    DIGEST_LOOKBACK,
    compute_window,
    drop_seen,
    is_recent,
    local_today,
    observed_age_days,
    sort_by_rarity,
    split_by_age,
)
from inat_alerter.schemas import Observation, RarityMethod

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)
TODAY = date(2026, 10, 16)


def obs(obs_id: int, **kwargs: object) -> Observation:
    return Observation.model_validate(raw_observation(obs_id, **kwargs))  # type: ignore[arg-type]


def observed(obs_id: int, days_ago: int) -> Observation:
    return obs(obs_id, observed_on=(TODAY - timedelta(days=days_ago)).isoformat())


class TestComputeWindow:
    """Test window computation."""

    def test_first_digest_run(self) -> None:
        window = compute_window(None, NOW, DIGEST_LOOKBACK)
        assert window.start == NOW - timedelta(days=7)
        assert window.end == NOW

    def test_first_alert_run(self) -> None:
        window = compute_window(None, NOW, ALERT_LOOKBACK)
        assert window.start == NOW - timedelta(hours=1)

    def test_resumes_from_last_run(self) -> None:
        last = NOW - timedelta(days=2)
        window = compute_window(last, NOW, DIGEST_LOOKBACK)
        assert window.start == last
        assert window.end == NOW

    def test_last_run_in_future_is_clamped(self) -> None:
        window = compute_window(NOW + timedelta(hours=1), NOW, ALERT_LOOKBACK)
        assert window.start == NOW
        assert window.end == NOW


class TestLocalToday:
    """Test the local calendar date."""

    def test_behind_utc(self) -> None:
        now = datetime(2026, 10, 16, 3, 0, tzinfo=UTC)
        assert local_today(now, ZoneInfo("America/Los_Angeles")) == date(2026, 10, 15)

    def test_utc(self) -> None:
        assert local_today(NOW, ZoneInfo("UTC")) == TODAY


class TestDropSeen:
    """Test deduplication."""

    def test_removes_seen_preserving_order(self) -> None:
        items = [obs(3), obs(1), obs(2)]
        assert [o.id for o in drop_seen(items, {1: NOW})] == [3, 2]

    def test_nothing_seen(self) -> None:
        items = [obs(1), obs(2)]
        assert drop_seen(items, set()) == items


class TestAgeBuckets:
    """Test the old/new split."""

    def test_boundary(self) -> None:
        buckets = split_by_age([observed(1, 30), observed(2, 31)], TODAY, 30)
        assert [o.id for o in buckets.new] == [1]
        assert [o.id for o in buckets.old] == [2]

    def test_missing_date_is_new(self) -> None:
        item = obs(1, observed_on=None)
        assert observed_age_days(item, TODAY) is None
        assert is_recent(item, TODAY, 0)
        assert split_by_age([item], TODAY, 30).new == [item]

    def test_future_date_uses_absolute_age(self) -> None:
        item = obs(1, observed_on="2026-10-20")
        assert observed_age_days(item, TODAY) == 4

    def test_preserves_order_and_count(self) -> None:
        items = [observed(1, 40), observed(2, 1), observed(3, 60), observed(4, 0)]
        buckets = split_by_age(items, TODAY, 30)
        assert [o.id for o in buckets.new] == [2, 4]
        assert [o.id for o in buckets.old] == [1, 3]
        assert len(buckets) == 4


class TestSortByRarity:
    """Test rarest-first ordering."""

    def test_rarest_then_newest(self) -> None:
        a = obs(1, created_at="2026-10-15T10:00:00Z").with_rarity(5, RarityMethod.RADIUS)
        b = obs(2, created_at="2026-10-15T09:00:00Z").with_rarity(1, RarityMethod.RADIUS)
        c = obs(3, created_at="2026-10-15T11:00:00Z").with_rarity(1, RarityMethod.RADIUS)
        assert [o.id for o in sort_by_rarity([a, b, c])] == [3, 2, 1]

    def test_missing_counts_last(self) -> None:
        unknown = obs(1, taxon_id=None).with_rarity(None, None)
        common = obs(2).with_rarity(1000, RarityMethod.GLOBAL)
        rare = obs(3).with_rarity(0, RarityMethod.RADIUS)
        assert [o.id for o in sort_by_rarity([unknown, common, rare])] == [3, 2, 1]

    def test_empty(self) -> None:
        assert sort_by_rarity([]) == []
