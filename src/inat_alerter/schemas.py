"""
Domain models for iNat Alerter.

Pydantic models for data from the iNaturalist API and internal processing.
These define the canonical schema - datasources normalize API responses to these.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

INAT_WEB_BASE = "https://www.inaturalist.org"


# =============================================================================
# Enumerations
# =============================================================================


class QualityGrade(StrEnum):
    """Observation verification level."""

    RESEARCH = "research"
    NEEDS_ID = "needs_id"
    CASUAL = "casual"


class RarityMethod(StrEnum):
    """Scope used when counting historical observations of a taxon."""

    RADIUS = "radius"
    PLACE = "place"
    GLOBAL = "global"


class WorkflowKind(StrEnum):
    """The two independent workflows, each with its own state."""

    DIGEST = "digest"
    ALERT = "alert"


# =============================================================================
# Observations
# =============================================================================


class Taxon(BaseModel):
    """Taxon reference embedded in an observation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str = "Unknown"
    preferred_common_name: str | None = None

    @property
    def display_name(self) -> str:
        if self.preferred_common_name:
            return f"{self.preferred_common_name} ({self.name})"
        return self.name


class Photo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | None = None
    url: str | None = None


class Observation(BaseModel):
    """A single iNaturalist observation.

    Immutable once parsed.  The enrichment step produces copies with
    ``rarity_count`` and ``rarity_method`` filled in via :meth:`with_rarity`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(..., description="Globally unique iNaturalist observation ID")
    created_at: datetime
    observed_on: date | None = None
    taxon: Taxon | None = None
    location: str | None = Field(default=None, description='"lat,lng" as sent by the API')
    place_guess: str | None = None
    photos: list[Photo] = Field(default_factory=list)
    quality_grade: QualityGrade | None = None
    observer: str | None = None
    obscured: bool = False
    rarity_count: int | None = None
    rarity_method: RarityMethod | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_user(cls, data: Any) -> Any:
        """Lift ``user.login`` from the raw API payload into ``observer``."""
        if isinstance(data, dict) and "observer" not in data:
            user = data.get("user") or {}
            if isinstance(user, dict) and user.get("login"):
                data = {**data, "observer": user["login"]}
        return data

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @field_validator("obscured", mode="before")
    @classmethod
    def _null_obscured(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("quality_grade", mode="before")
    @classmethod
    def _known_quality_grade(cls, value: Any) -> QualityGrade | None:
        try:
            return QualityGrade(value)
        except ValueError:
            return None

    @field_validator("photos", mode="before")
    @classmethod
    def _null_photos(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("observed_on", mode="before")
    @classmethod
    def _empty_observed_on(cls, value: Any) -> Any:
        if value in ("", None):
            return None
        if isinstance(value, str) and len(value) > 10:
            # Some records carry a full timestamp here; keep the calendar date.
            return value[:10]
        return value

    @property
    def taxon_id(self) -> int | None:
        return self.taxon.id if self.taxon else None

    @property
    def url(self) -> str:
        return f"{INAT_WEB_BASE}/observations/{self.id}"

    @property
    def observer_url(self) -> str | None:
        if not self.observer:
            return None
        return f"{INAT_WEB_BASE}/people/{self.observer}"

    @property
    def photo_url(self) -> str | None:
        return next((p.url for p in self.photos if p.url), None)

    def with_rarity(self, count: int | None, method: RarityMethod | None) -> Observation:
        """Return a copy carrying the rarity enrichment fields."""
        return self.model_copy(update={"rarity_count": count, "rarity_method": method})


# =============================================================================
# Fetching
# =============================================================================


class FetchWindow(BaseModel):
    """Half-open UTC interval ``[start, end)`` used as the creation-time filter."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _ordered(self) -> FetchWindow:
        if self.start > self.end:
            msg = f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            raise ValueError(msg)
        return self


class ObservationQuery(BaseModel):
    """Filter parameters for one observation search."""

    model_config = ConfigDict(frozen=True)

    window: FetchWindow
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius: float = Field(..., gt=0, description="Search radius in kilometres")
    taxon_ids: tuple[int, ...] = ()
    without_taxon_ids: tuple[int, ...] = ()


class FetchResult(BaseModel):
    """Observations accumulated for one window.

    ``hit_limit`` is informational: it tells the reporting side that
    ``total_available`` exceeded what was retrieved.
    """

    observations: list[Observation] = Field(default_factory=list)
    hit_limit: bool = False
    total_available: int = 0


# =============================================================================
# Reports
# =============================================================================


class DigestReport(BaseModel):
    """Everything the reporting side needs for one digest."""

    new: list[Observation]
    old: list[Observation] = Field(default_factory=list)
    window: FetchWindow
    hit_limit: bool = False
    total_available: int = 0

    @property
    def count(self) -> int:
        return len(self.new) + len(self.old)


class AlertReport(BaseModel):
    """Watchlist observations for one alert."""

    observations: list[Observation]
    window: FetchWindow
    hit_limit: bool = False
    total_available: int = 0

    @property
    def count(self) -> int:
        return len(self.observations)
