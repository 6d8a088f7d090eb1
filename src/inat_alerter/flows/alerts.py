"""
Prefect flow for watchlist alerts.

Runs frequently (e.g. hourly) over watchlist taxa only.  Unlike the
digest there is no rarity enrichment and no old/new split: observations
older than the age threshold are dropped, everything else is reported as
one list.

Run locally:
    python -m inat_alerter.flows.alerts
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from inat_alerter.analysis import ALERT_LOOKBACK, compute_window, drop_seen, is_recent, local_today
from inat_alerter.config import Settings  # noqa: TC001
from inat_alerter.datasources.inaturalist import InatClient
from inat_alerter.flows.common import (
    build_query,
    build_reporter,
    build_store,
    fetch_window,
    load_state,
    save_state,
    settings_from,
)
from inat_alerter.schemas import AlertReport, FetchResult, WorkflowKind
from inat_alerter.store import last_run, mark_all_seen, seen_ids, with_last_run

if TYPE_CHECKING:
    from inat_alerter.reporting import Reporter
    from inat_alerter.store import StateStore

KIND = WorkflowKind.ALERT


@task(name="send-alert", cache_policy=NO_CACHE)
def send_alert(reporter: Reporter, report: AlertReport) -> None:
    reporter.send_alert(report)


def run_alerts(
    settings: Settings,
    *,
    store: StateStore,
    client: InatClient,
    reporter: Reporter,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Run one watchlist alert pass and return a summary of what happened."""
    now = now or datetime.now(UTC)
    print("Starting alerts workflow...")

    state = load_state(store)
    previous = last_run(state, KIND)
    window = compute_window(previous, now, ALERT_LOOKBACK)
    if previous:
        print(f"Using last alert run time: {window.start.isoformat()}")
    else:
        print(f"No previous alert run found, using 1-hour lookback: {window.start.isoformat()}")

    watchlist = settings.watchlist.taxa_ids
    if watchlist:
        print(
            f"Fetching watchlist observations from {window.start.isoformat()} "
            f"to {window.end.isoformat()}..."
        )
        result = fetch_window(client, build_query(settings, window, watchlist))
    else:
        # An empty taxon filter would match every taxon, not none.
        print("Watchlist is empty. Nothing to fetch.")
        result = FetchResult()
    print(f"Fetched {len(result.observations)} watchlist observations")

    today = local_today(now, settings.tz)
    threshold = settings.old_observation.days_old_threshold
    recent = [obs for obs in result.observations if is_recent(obs, today, threshold)]
    print(
        f"After age filter: {len(recent)} observations "
        f"(removed {len(result.observations) - len(recent)} old)"
    )

    observations = drop_seen(recent, seen_ids(state, KIND))
    print(
        f"After deduplication: {len(observations)} observations "
        f"(removed {len(recent) - len(observations)})"
    )

    summary: dict[str, Any] = {
        "window_start": window.start.isoformat(),
        "window_end": window.end.isoformat(),
        "fetched": len(result.observations),
        "hit_limit": result.hit_limit,
        "total_available": result.total_available,
        "alerted": 0,
        "reported": False,
    }

    if not observations:
        print("No new watchlist observations to alert. Skipping email.")
        state = with_last_run(state, KIND, window.end)
        save_state(store, state, now)
        return summary

    send_alert(
        reporter,
        AlertReport(
            observations=observations,
            window=window,
            hit_limit=result.hit_limit,
            total_available=result.total_available,
        ),
    )

    print("Updating state...")
    state = with_last_run(state, KIND, window.end)
    state = mark_all_seen(state, KIND, (obs.id for obs in observations), window.end)
    save_state(store, state, now)

    summary.update(alerted=len(observations), reported=True)
    print("Alerts workflow completed successfully!")
    return summary


@flow(name="inat-alerts", log_prints=True)
def alerts_flow(
    config_path: str | None = None,
    dry_run: bool = False,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """
    Watchlist alert pass.

    Prefect entry point; wires real collaborators and delegates to
    :func:`run_alerts`.  Pre-validated ``settings`` take precedence over
    ``config_path``.
    """
    settings = settings or settings_from(config_path)
    return run_alerts(
        settings,
        store=build_store(settings),
        client=InatClient(),
        reporter=build_reporter(settings, dry_run=dry_run),
    )


if __name__ == "__main__":
    result = alerts_flow()
    print(f"Flow complete: {result}")
