"""Observation search: query building, pagination and parsing."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from inat_alerter.schemas import FetchResult, Observation, ObservationQuery

if TYPE_CHECKING:
    from inat_alerter.datasources.inaturalist.client import InatClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 200  # API maximum for /observations
MAX_RESULTS = 200  # hard cap per workflow run


# =============================================================================
# Query building
# =============================================================================


def format_api_datetime(value: datetime) -> str:
    """ISO-8601 UTC with a ``Z`` suffix, e.g. ``2026-10-16T08:00:00Z``."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_search_params(query: ObservationQuery) -> dict[str, Any]:
    """Translate an :class:`ObservationQuery` into /observations parameters.

    Only verifiable-looking records are requested: with photos, not captive.
    Results are newest-created first.
    """
    params: dict[str, Any] = {
        "photos": "true",
        "captive": "false",
        "created_d1": format_api_datetime(query.window.start),
        "created_d2": format_api_datetime(query.window.end),
        "per_page": PAGE_SIZE,
        "order": "desc",
        "order_by": "created_at",
    }
    if query.taxon_ids:
        params["taxon_id"] = ",".join(str(t) for t in query.taxon_ids)
    if query.without_taxon_ids:
        params["without_taxon_id"] = ",".join(str(t) for t in query.without_taxon_ids)
    params["lat"] = query.lat
    params["lng"] = query.lng
    params["radius"] = query.radius
    return params


# =============================================================================
# Fetching
# =============================================================================


def fetch_observations(
    client: InatClient,
    query: ObservationQuery,
    *,
    max_results: int = MAX_RESULTS,
) -> FetchResult:
    """
    Fetch every observation matching ``query``, up to ``max_results``.

    Pages through /observations (``PAGE_SIZE`` per page) and stops on an
    empty page, a short page, or once ``max_results`` items are held.
    Hitting the cap while the API reports more results sets ``hit_limit``.

    A record that does not validate is logged and skipped so one bad
    record cannot stall the window. API failures propagate; a partial
    window is never returned.
    """
    params = build_search_params(query)
    observations: list[Observation] = []
    total_results = 0
    hit_limit = False
    skipped = 0
    page = 1

    while True:
        params["page"] = page
        logger.info("Fetching observations page %d...", page)
        data = client.get("observations", params)

        if page == 1:
            total_results = int(data.get("total_results") or 0)
            logger.info("Total results available: %d", total_results)

        results: list[dict[str, Any]] = data.get("results") or []
        if not results:
            break

        for raw in results:
            try:
                observations.append(parse_observation(raw))
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping malformed observation %s: %s",
                    raw.get("id") if isinstance(raw, dict) else raw,
                    exc.errors(include_url=False),
                )

        if len(observations) >= max_results:
            del observations[max_results:]
            hit_limit = total_results > len(observations)
            if hit_limit:
                logger.warning(
                    "Results limited to %d. Total available: %d", max_results, total_results
                )
            break

        if len(results) < PAGE_SIZE:
            break

        page += 1

    logger.info("Fetched %d observations (%d skipped as malformed)", len(observations), skipped)
    return FetchResult(
        observations=observations,
        hit_limit=hit_limit,
        total_available=total_results,
    )


# =============================================================================
# Parsing
# =============================================================================


def parse_observation(raw: dict[str, Any]) -> Observation:
    """Validate one raw API result into an :class:`Observation`."""
    return Observation.model_validate(raw)
