"""Wiring and Prefect tasks shared by the digest and alert flows.

Tasks carry no ``retries``: the iNaturalist client already retries, and a
failed step must fail the whole run before state is saved.  Inputs are
live objects (client, store), so task caching is off.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from prefect import task
from prefect.cache_policies import NO_CACHE

from inat_alerter.config import EmailSettings, load_settings
from inat_alerter.datasources.inaturalist import fetch_observations
from inat_alerter.reporting import EmailReporter
from inat_alerter.schemas import ObservationQuery
from inat_alerter.store import StateStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inat_alerter.config import Settings
    from inat_alerter.datasources.inaturalist import InatClient
    from inat_alerter.schemas import FetchResult, FetchWindow
    from inat_alerter.store import WorkflowState


# =============================================================================
# Wiring
# =============================================================================


def build_query(
    settings: Settings, window: FetchWindow, taxon_ids: Iterable[int]
) -> ObservationQuery:
    """Search around the configured point, always applying the exclude list."""
    return ObservationQuery(
        window=window,
        lat=settings.location.lat,
        lng=settings.location.lng,
        radius=settings.location.radius,
        taxon_ids=tuple(taxon_ids),
        without_taxon_ids=tuple(settings.taxa.exclude),
    )


def build_store(settings: Settings) -> StateStore:
    return StateStore(settings.state.path, settings.state.artifact_retention_days)


def build_reporter(settings: Settings, *, dry_run: bool) -> EmailReporter:
    return EmailReporter(settings, EmailSettings(), dry_run=dry_run)


def settings_from(config_path: str | None) -> Settings:
    return load_settings(Path(config_path) if config_path else None)


# =============================================================================
# Tasks
# =============================================================================


@task(name="load-state", cache_policy=NO_CACHE)
def load_state(store: StateStore) -> WorkflowState:
    """Read workflow state (default state if missing or corrupt)."""
    return store.load()


@task(name="fetch-observations", cache_policy=NO_CACHE)
def fetch_window(client: InatClient, query: ObservationQuery) -> FetchResult:
    """Fetch every observation in the query window, up to the result cap."""
    return fetch_observations(client, query)


@task(name="save-state", cache_policy=NO_CACHE)
def save_state(store: StateStore, state: WorkflowState, now: datetime) -> WorkflowState:
    """Prune and persist state; the last step of every successful run."""
    return store.save(state, now=now)
