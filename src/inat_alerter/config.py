"""
Application settings.

Domain configuration lives in a YAML file (``config.yaml`` by default, see
``config.example.yaml``).  Any key the file leaves out can be supplied from
the environment with the ``INAT_`` prefix and ``__`` as the nested
delimiter, e.g. ``INAT_STATE__PATH=/tmp/state.json``.

Email transport secrets are read from the environment only, see
:class:`EmailSettings`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inat_alerter.schemas import RarityMethod

DEFAULT_CONFIG_PATH = Path("config.yaml")


class LocationSettings(BaseModel):
    """Search centre and radius (km)."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius: float = Field(..., gt=0)


class TaxaSettings(BaseModel):
    include: list[int] = Field(default_factory=list)
    exclude: list[int] = Field(default_factory=list)


class WatchlistSettings(BaseModel):
    taxa_ids: list[int] = Field(default_factory=list)


class RaritySettings(BaseModel):
    method: RarityMethod = RarityMethod.RADIUS
    place_id: int | None = None


class OldObservationSettings(BaseModel):
    days_old_threshold: int = Field(default=30, ge=0)


class DigestSettings(BaseModel):
    enabled: bool = True
    day_of_week: int = Field(default=0, ge=0, le=6, description="0 = Sunday")
    local_hour: int = Field(default=8, ge=0, le=23)


class AlertSettings(BaseModel):
    enabled: bool = True


class StateSettings(BaseModel):
    path: Path = Path("state.json")
    artifact_retention_days: int = Field(default=30, ge=1)


class Settings(BaseSettings):
    """Validated configuration consumed by the workflows."""

    model_config = SettingsConfigDict(
        env_prefix="INAT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    timezone: str = "UTC"
    location: LocationSettings
    taxa: TaxaSettings = Field(default_factory=TaxaSettings)
    watchlist: WatchlistSettings = Field(default_factory=WatchlistSettings)
    rarity: RaritySettings = Field(default_factory=RaritySettings)
    old_observation: OldObservationSettings = Field(default_factory=OldObservationSettings)
    digest: DigestSettings = Field(default_factory=DigestSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    state: StateSettings = Field(default_factory=StateSettings)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            msg = f"Unknown timezone {value!r}"
            raise ValueError(msg) from None
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class EmailSettings(BaseSettings):
    """SendGrid credentials and recipients, environment only.

    Field names match the variables directly: ``SENDGRID_API_KEY``,
    ``SENDGRID_FROM_EMAIL``, ``SENDGRID_FROM_NAME``, ``EMAIL_RECIPIENTS``.
    """

    model_config = SettingsConfigDict(extra="ignore")

    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None
    sendgrid_from_name: str = "iNat Alerter"
    email_recipients: str = ""

    @property
    def recipients(self) -> list[str]:
        return [r.strip() for r in self.email_recipients.split(",") if r.strip()]


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a plain dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the top level is not a mapping.
    """
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        msg = f"Top level of {path} must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings from ``path`` (default ``config.yaml``)."""
    return Settings(**read_config_file(path or DEFAULT_CONFIG_PATH))
