"""Observation selection and ranking logic.

Pure functions that turn fetched observations into the sets a report
shows. This is the domain logic layer.

Dependency rule: analysis/ imports from schemas only.
It never fetches data, touches state files, or produces HTML.

Modules:
  - buckets: fetch windows, dedup, age buckets, rarity ordering
"""

from inat_alerter.analysis.buckets import (
    ALERT_LOOKBACK,
    DIGEST_LOOKBACK,
    AgeBuckets,
    compute_window,
    drop_seen,
    is_recent,
    local_today,
    observed_age_days,
    sort_by_rarity,
    split_by_age,
)

__all__ = [
    "ALERT_LOOKBACK",
    "DIGEST_LOOKBACK",
    "AgeBuckets",
    "compute_window",
    "drop_seen",
    "is_recent",
    "local_today",
    "observed_age_days",
    "sort_by_rarity",
    "split_by_age",
]
