"""
Prefect flows for the two workflows.

Flows:
- digest: periodic summary of new observations, ranked by rarity
- alerts: frequent watchlist check, reported as soon as seen

Each module exposes a plain ``run_*`` function (all collaborators passed
in, used by tests) and a ``*_flow`` Prefect entry point that builds the
real ones from config.  Steps inside ``run_*`` are Prefect tasks.

Usage (local):
    python -m inat_alerter.flows.digest
    python -m inat_alerter.flows.alerts

Usage (scheduled, e.g. cron or GitHub Actions):
    inat-alerter digest
    inat-alerter alerts
"""
