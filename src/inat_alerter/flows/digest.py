"""
Prefect flow for the periodic digest.

LOAD_STATE -> COMPUTE_WINDOW -> FETCH -> DEDUP -> BUCKET_BY_AGE -> ENRICH
-> SORT -> REPORT -> UPDATE_STATE -> SAVE

An empty window skips straight from DEDUP to UPDATE_STATE (advancing
``last_digest_run``) without reporting.  Any API or reporting failure
propagates before SAVE, leaving the state file untouched.

Run locally:
    python -m inat_alerter.flows.digest
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from inat_alerter.analysis import (
    DIGEST_LOOKBACK,
    compute_window,
    drop_seen,
    local_today,
    sort_by_rarity,
    split_by_age,
)
from inat_alerter.config import Settings  # noqa: TC001
from inat_alerter.datasources.inaturalist import InatClient, RarityCalculator
from inat_alerter.flows.common import (
    build_query,
    build_reporter,
    build_store,
    fetch_window,
    load_state,
    save_state,
    settings_from,
)
from inat_alerter.schemas import DigestReport, WorkflowKind
from inat_alerter.store import last_run, mark_all_seen, seen_ids, with_last_run

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inat_alerter.reporting import Reporter
    from inat_alerter.schemas import Observation
    from inat_alerter.store import StateStore

KIND = WorkflowKind.DIGEST


@task(name="enrich-rarity", cache_policy=NO_CACHE)
def enrich_with_rarity(
    observations: Iterable[Observation], calculator: RarityCalculator
) -> list[Observation]:
    """Attach rarity count and method; taxon-less observations get None."""
    enriched: list[Observation] = []
    for obs in observations:
        if obs.taxon_id is None:
            enriched.append(obs.with_rarity(None, None))
            continue
        rarity = calculator.lookup(obs.taxon_id)
        enriched.append(obs.with_rarity(rarity.count, rarity.method))
    return enriched


@task(name="send-digest", cache_policy=NO_CACHE)
def send_digest(reporter: Reporter, report: DigestReport) -> None:
    reporter.send_digest(report)


def run_digest(
    settings: Settings,
    *,
    store: StateStore,
    client: InatClient,
    reporter: Reporter,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Run one digest end to end and return a summary of what happened."""
    now = now or datetime.now(UTC)
    print("Starting digest workflow...")

    state = load_state(store)
    previous = last_run(state, KIND)
    window = compute_window(previous, now, DIGEST_LOOKBACK)
    if previous:
        print(f"Using last digest run time: {window.start.isoformat()}")
    else:
        print(f"No previous digest run found, using 7-day lookback: {window.start.isoformat()}")

    print(f"Fetching observations from {window.start.isoformat()} to {window.end.isoformat()}...")
    result = fetch_window(client, build_query(settings, window, settings.taxa.include))
    print(f"Fetched {len(result.observations)} observations")
    if result.hit_limit:
        print(
            f"WARNING: API limit reached. Total available: {result.total_available}, "
            f"retrieved: {len(result.observations)}"
        )

    observations = drop_seen(result.observations, seen_ids(state, KIND))
    removed = len(result.observations) - len(observations)
    print(f"After deduplication: {len(observations)} observations (removed {removed})")

    summary: dict[str, Any] = {
        "window_start": window.start.isoformat(),
        "window_end": window.end.isoformat(),
        "fetched": len(result.observations),
        "hit_limit": result.hit_limit,
        "total_available": result.total_available,
        "new": 0,
        "old": 0,
        "reported": False,
    }

    if not observations:
        print("No new observations to report. Skipping email.")
        state = with_last_run(state, KIND, window.end)
        save_state(store, state, now)
        return summary

    buckets = split_by_age(
        observations,
        local_today(now, settings.tz),
        settings.old_observation.days_old_threshold,
    )
    print(f"New observations: {len(buckets.new)}")
    print(f"Old observations: {len(buckets.old)}")

    print("Enriching observations with rarity counts...")
    calculator = RarityCalculator(
        client,
        method=settings.rarity.method,
        lat=settings.location.lat,
        lng=settings.location.lng,
        radius=settings.location.radius,
        place_id=settings.rarity.place_id,
    )
    new = sort_by_rarity(enrich_with_rarity(buckets.new, calculator))
    old = sort_by_rarity(enrich_with_rarity(buckets.old, calculator))

    send_digest(
        reporter,
        DigestReport(
            new=new,
            old=old,
            window=window,
            hit_limit=result.hit_limit,
            total_available=result.total_available,
        ),
    )

    print("Updating state...")
    state = with_last_run(state, KIND, window.end)
    state = mark_all_seen(state, KIND, (obs.id for obs in [*new, *old]), window.end)
    save_state(store, state, now)

    summary.update(new=len(new), old=len(old), reported=True)
    print("Digest workflow completed successfully!")
    return summary


@flow(name="inat-digest", log_prints=True)
def digest_flow(
    config_path: str | None = None,
    dry_run: bool = False,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """
    Periodic digest of new observations, ranked by rarity.

    This is the Prefect entry point; it wires real collaborators from the
    config file and environment, then delegates to :func:`run_digest`.
    Callers that already validated ``settings`` pass them in; otherwise
    they are loaded from ``config_path``.
    """
    settings = settings or settings_from(config_path)
    return run_digest(
        settings,
        store=build_store(settings),
        client=InatClient(),
        reporter=build_reporter(settings, dry_run=dry_run),
    )


if __name__ == "__main__":
    result = digest_flow()
    print(f"Flow complete: {result}")
