"""iNat Alerter - digest and watchlist alerts for new iNaturalist observations.

Architecture::

    datasources/   iNaturalist API (resilient client, paginated fetch, rarity counts)
    store.py       Persistent workflow state (last-run times, seen observation IDs)
    analysis/      Pure observation logic (time windows, dedup, age buckets, rarity sort)
    renderers/     Pure data -> HTML (digest and alert email bodies)
    reporting.py   Report payloads and the email reporter
    flows/         Prefect orchestration (digest, alerts)
    services/      Shared utilities (HTTP session, SendGrid transport)

Data flow: state -> window -> datasources -> analysis -> reporting -> state
"""

__version__ = "0.1.0"

from inat_alerter.config import Settings
from inat_alerter.schemas import Observation

__all__ = ["Observation", "Settings", "__version__"]
