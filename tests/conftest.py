"""Shared fixtures: raw API payloads, settings, and fakes for the iNat client."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from inat_alerter.config import Settings
from inat_alerter.schemas import AlertReport, DigestReport

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)


def raw_observation(
    obs_id: int,
    *,
    created_at: str = "2026-10-15T18:30:00Z",
    observed_on: str | None = "2026-10-15",
    taxon_id: int | None = 48662,
    name: str = "Vanessa cardui",
    common_name: str | None = "Painted Lady",
    login: str = "naturalist",
) -> dict[str, Any]:
    """One /observations result shaped like the real API."""
    taxon = (
        {"id": taxon_id, "name": name, "preferred_common_name": common_name}
        if taxon_id is not None
        else None
    )
    return {
        "id": obs_id,
        "created_at": created_at,
        "observed_on": observed_on,
        "taxon": taxon,
        "location": "45.5,-122.6",
        "place_guess": "Portland, OR",
        "photos": [{"id": obs_id * 10, "url": f"https://static.example.org/photos/{obs_id}.jpg"}],
        "quality_grade": "research",
        "user": {"id": 7, "login": login},
        "obscured": False,
    }


def page(results: list[dict[str, Any]], total: int | None = None) -> dict[str, Any]:
    return {"total_results": len(results) if total is None else total, "results": results}


class FakeClient:
    """Stands in for InatClient.

    Searches (``per_page > 0``) are answered from ``pages`` in order; count
    queries (``per_page == 0``) from ``counts`` keyed by taxon ID, where an
    Exception value is raised instead.
    """

    def __init__(
        self,
        pages: list[dict[str, Any]] | None = None,
        counts: dict[int, int | Exception] | None = None,
    ) -> None:
        self.pages = list(pages or [])
        self.counts = counts or {}
        self.calls: list[dict[str, Any]] = []

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = dict(params or {})
        self.calls.append(params)
        if params.get("per_page") == 0:
            value = self.counts.get(int(params["taxon_id"]), 0)
            if isinstance(value, Exception):
                raise value
            return {"total_results": value, "results": []}
        if not self.pages:
            return page([], total=0)
        return self.pages.pop(0)

    @property
    def search_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.calls if c.get("per_page") != 0]

    @property
    def count_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.calls if c.get("per_page") == 0]


class RecordingReporter:
    def __init__(self, error: Exception | None = None) -> None:
        self.digests: list[DigestReport] = []
        self.alerts: list[AlertReport] = []
        self.error = error

    def send_digest(self, report: DigestReport) -> None:
        if self.error:
            raise self.error
        self.digests.append(report)

    def send_alert(self, report: AlertReport) -> None:
        if self.error:
            raise self.error
        self.alerts.append(report)


@pytest.fixture
def config_data(tmp_path: Any) -> dict[str, Any]:
    return {
        "timezone": "UTC",
        "location": {"lat": 45.5, "lng": -122.6, "radius": 50},
        "taxa": {"include": [47224, 3], "exclude": [7251]},
        "watchlist": {"taxa_ids": [50340]},
        "rarity": {"method": "radius", "place_id": 10},
        "old_observation": {"days_old_threshold": 30},
        "state": {"path": str(tmp_path / "state.json"), "artifact_retention_days": 30},
    }


@pytest.fixture
def settings(config_data: dict[str, Any]) -> Settings:
    return Settings(**config_data)
