"""Turn a raw observation stream into reportable sets.

Time windows, deduplication against seen IDs, age bucketing and rarity
ordering.  Everything here is pure: "now" and "today" are always passed in.
"""

from __future__ import annotations

from collections.abc import Container, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from inat_alerter.schemas import FetchWindow, Observation

DIGEST_LOOKBACK = timedelta(days=7)
ALERT_LOOKBACK = timedelta(hours=1)


@dataclass
class AgeBuckets:
    """Observations split by how long ago they were observed."""

    new: list[Observation] = field(default_factory=list)
    old: list[Observation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.new) + len(self.old)


def compute_window(last_run: datetime | None, now: datetime, lookback: timedelta) -> FetchWindow:
    """``[last_run, now)``, or ``[now - lookback, now)`` on a first run.

    A ``last_run`` later than ``now`` (clock skew, hand-edited state) is
    clamped to ``now``, giving an empty window.
    """
    start = min(last_run, now) if last_run is not None else now - lookback
    return FetchWindow(start=start, end=now)


def local_today(now: datetime, tz: ZoneInfo) -> date:
    """Calendar date of ``now`` in the configured timezone."""
    return now.astimezone(tz).date()


def drop_seen(observations: Iterable[Observation], seen: Container[int]) -> list[Observation]:
    """Remove observations whose ID is in ``seen``; order is preserved."""
    return [obs for obs in observations if obs.id not in seen]


def observed_age_days(obs: Observation, today: date) -> int | None:
    """Whole days between ``today`` and the observed-on date, None if unknown."""
    if obs.observed_on is None:
        return None
    return abs((today - obs.observed_on).days)


def is_recent(obs: Observation, today: date, threshold_days: int) -> bool:
    """True if observed within ``threshold_days`` (inclusive) or date unknown."""
    age = observed_age_days(obs, today)
    return age is None or age <= threshold_days


def split_by_age(
    observations: Iterable[Observation], today: date, threshold_days: int
) -> AgeBuckets:
    """Partition into recent ("new") and older ("old"), preserving order.

    Observations with no observed-on date count as new.
    """
    buckets = AgeBuckets()
    for obs in observations:
        if is_recent(obs, today, threshold_days):
            buckets.new.append(obs)
        else:
            buckets.old.append(obs)
    return buckets


def rarity_sort_key(obs: Observation) -> tuple[bool, int, float]:
    # Missing counts last, then rarest first, then newest first.
    missing = obs.rarity_count is None
    return (missing, obs.rarity_count or 0, -obs.created_at.timestamp())


def sort_by_rarity(observations: Iterable[Observation]) -> list[Observation]:
    """Rarest first; ties broken by most recently created. Stable."""
    return sorted(observations, key=rarity_sort_key)
