"""Persistent workflow state.

One JSON file holds the state of both workflows::

    {
      "last_digest_run": "2026-10-12T08:00:00Z",
      "last_alert_run": null,
      "digest_observation_ids": {"123": "2026-10-12T08:00:00Z"},
      "alert_observation_ids": {}
    }

``WorkflowState`` is immutable.  The module-level helpers (``mark_seen``,
``with_last_run``, ``prune`` ...) return new snapshots; a flow holds a
single variable and reassigns it at each step.

:class:`StateStore` reads the file once at the start of a run and writes it
once at the end.  A missing, unreadable or invalid file loads as the empty
default state (equivalent to a first run).  Saving always prunes seen-IDs
older than the retention window and replaces the file atomically; write
errors propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inat_alerter.schemas import WorkflowKind

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class WorkflowState(BaseModel):
    """Last-run times and seen observation IDs for both workflow kinds."""

    model_config = ConfigDict(frozen=True)

    last_digest_run: datetime | None = None
    last_alert_run: datetime | None = None
    digest_observation_ids: dict[int, datetime] = Field(default_factory=dict)
    alert_observation_ids: dict[int, datetime] = Field(default_factory=dict)

    @field_validator("last_digest_run", "last_alert_run")
    @classmethod
    def _run_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else _as_utc(value)

    @field_validator("digest_observation_ids", "alert_observation_ids")
    @classmethod
    def _ids_utc(cls, value: dict[int, datetime]) -> dict[int, datetime]:
        return {obs_id: _as_utc(at) for obs_id, at in value.items()}


# =============================================================================
# Pure state transformations
# =============================================================================


def _ids_field(kind: WorkflowKind) -> str:
    return f"{WorkflowKind(kind).value}_observation_ids"


def _run_field(kind: WorkflowKind) -> str:
    return f"last_{WorkflowKind(kind).value}_run"


def seen_ids(state: WorkflowState, kind: WorkflowKind) -> dict[int, datetime]:
    """The observation-ID -> processed-at mapping for ``kind``."""
    ids: dict[int, datetime] = getattr(state, _ids_field(kind))
    return ids


def last_run(state: WorkflowState, kind: WorkflowKind) -> datetime | None:
    """When ``kind`` last completed, or None if it never has."""
    value: datetime | None = getattr(state, _run_field(kind))
    return value


def with_last_run(state: WorkflowState, kind: WorkflowKind, at: datetime) -> WorkflowState:
    """Return ``state`` with the last-run time for ``kind`` set to ``at``."""
    logger.info("Updated %s last run time to: %s", kind, at.isoformat())
    return state.model_copy(update={_run_field(kind): _as_utc(at)})


def is_seen(state: WorkflowState, kind: WorkflowKind, obs_id: int) -> bool:
    """True if ``obs_id`` has already been processed by ``kind``."""
    return obs_id in seen_ids(state, kind)


def mark_seen(
    state: WorkflowState, kind: WorkflowKind, obs_id: int, at: datetime
) -> WorkflowState:
    """Return ``state`` with ``obs_id`` recorded as processed by ``kind`` at ``at``."""
    return mark_all_seen(state, kind, [obs_id], at)


def mark_all_seen(
    state: WorkflowState, kind: WorkflowKind, obs_ids: Iterable[int], at: datetime
) -> WorkflowState:
    """Return ``state`` with every ID in ``obs_ids`` marked processed at ``at``."""
    stamp = _as_utc(at)
    updated = dict(seen_ids(state, kind))
    count = 0
    for obs_id in obs_ids:
        updated[obs_id] = stamp
        count += 1
    logger.info("Marked %d observation(s) as processed for %s.", count, kind)
    return state.model_copy(update={_ids_field(kind): updated})


def prune(state: WorkflowState, now: datetime, retention_days: int) -> WorkflowState:
    """Drop seen-IDs (of every kind) processed more than ``retention_days`` before ``now``.

    An entry exactly ``retention_days`` old is kept.
    """
    cutoff = _as_utc(now) - timedelta(days=retention_days)
    update: dict[str, dict[int, datetime]] = {}
    for kind in WorkflowKind:
        ids = seen_ids(state, kind)
        kept = {obs_id: at for obs_id, at in ids.items() if at >= cutoff}
        if len(kept) != len(ids):
            logger.info(
                "Pruned %d old %s observation IDs (older than %d days).",
                len(ids) - len(kept),
                kind,
                retention_days,
            )
        update[_ids_field(kind)] = kept
    return state.model_copy(update=update)


# =============================================================================
# Persistence
# =============================================================================


class StateStore:
    """Reads and writes :class:`WorkflowState` as a JSON file."""

    def __init__(self, path: Path, retention_days: int = DEFAULT_RETENTION_DAYS) -> None:
        self.path = path
        self.retention_days = retention_days

    def load(self) -> WorkflowState:
        """Read the state file, or return the default state if absent/corrupt."""
        if not self.path.exists():
            logger.info("State file %s not found. Using default state (first run).", self.path)
            return WorkflowState()
        try:
            state = WorkflowState.model_validate_json(self.path.read_bytes())
        except (OSError, ValueError) as exc:
            logger.warning(
                "Failed to read state file %s (%s). Using default state.", self.path, exc
            )
            return WorkflowState()
        logger.info("State loaded from %s.", self.path)
        return state

    def save(self, state: WorkflowState, *, now: datetime | None = None) -> WorkflowState:
        """Prune and persist ``state``; return the snapshot actually written.

        The file is written to a sibling temp file and moved into place, so a
        crash mid-write leaves the previous state intact.
        """
        pruned = prune(state, now or datetime.now(UTC), self.retention_days)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(pruned.model_dump_json(indent=2))
        tmp.replace(self.path)
        logger.info("State saved to %s.", self.path)
        return pruned
