"""Digest and alert email renderers.

Builds observation cards (photo, names, dates, observer, quality, rarity)
and wraps them in the digest or alert layout.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from inat_alerter.renderers import render_template
from inat_alerter.renderers.date_utils import (
    coverage_window_label,
    format_local,
    subject_date_range,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from inat_alerter.config import Settings
    from inat_alerter.schemas import AlertReport, DigestReport, FetchWindow, Observation


def digest_subject(window: FetchWindow) -> str:
    return f"iNat Digest - {subject_date_range(window)}"


def alert_subject(count: int) -> str:
    return f"iNat Alert - {count} new observation(s)"


def observation_card(obs: Observation, tz: ZoneInfo) -> dict[str, Any]:
    """Flatten one observation into template-ready fields."""
    taxon = obs.taxon
    return {
        "url": obs.url,
        "photo_url": obs.photo_url,
        "common_name": taxon.preferred_common_name if taxon else None,
        "scientific_name": taxon.name if taxon else "Unknown",
        "created": format_local(obs.created_at, tz),
        "observed": obs.observed_on.isoformat() if obs.observed_on else "Unknown",
        "obscured": obs.obscured,
        "observer": obs.observer or "Unknown",
        "observer_url": obs.observer_url,
        "quality": (obs.quality_grade or "unknown").replace("_", " ").capitalize(),
        "location": obs.place_guess or obs.location,
        "rarity_count": obs.rarity_count,
        "rarity_method": obs.rarity_method,
    }


def location_summary(settings: Settings) -> str:
    loc = settings.location
    return f"{loc.lat:.4f}, {loc.lng:.4f} (radius: {loc.radius:g} km)"


def build_digest_html(report: DigestReport, settings: Settings) -> str:
    """Full HTML body for a digest email."""
    tz = settings.tz
    return render_template(
        "digest.html.j2",
        coverage_window=coverage_window_label(report.window, tz),
        location_summary=location_summary(settings),
        taxa_summary=f"{len(settings.taxa.include)} taxa configured",
        hit_limit=report.hit_limit,
        retrieved=report.count,
        total_available=report.total_available,
        threshold_days=settings.old_observation.days_old_threshold,
        new_cards=[observation_card(obs, tz) for obs in report.new],
        old_cards=[observation_card(obs, tz) for obs in report.old],
    )


def build_alert_html(report: AlertReport, settings: Settings) -> str:
    """Full HTML body for a watchlist alert email."""
    tz = settings.tz
    return render_template(
        "alert.html.j2",
        alert_count=report.count,
        coverage_window=coverage_window_label(report.window, tz),
        hit_limit=report.hit_limit,
        total_available=report.total_available,
        cards=[observation_card(obs, tz) for obs in report.observations],
    )
