"""Shared date-formatting helpers for renderers."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from inat_alerter.schemas import FetchWindow


def format_local(value: datetime, tz: ZoneInfo) -> str:
    """e.g. ``Oct 16, 2026 08:05 PDT``."""
    local = value.astimezone(tz)
    return f"{local.strftime('%b')} {local.day}, {local.strftime('%Y %H:%M %Z')}"


def coverage_window_label(window: FetchWindow, tz: ZoneInfo) -> str:
    """Human-readable coverage window in the configured timezone.

    Returns e.g. ``Oct 9, 2026 08:00 - Oct 16, 2026 08:00 PDT``.
    """
    start = window.start.astimezone(tz)
    end = window.end.astimezone(tz)
    start_str = f"{start.strftime('%b')} {start.day}, {start.strftime('%Y %H:%M')}"
    end_str = f"{end.strftime('%b')} {end.day}, {end.strftime('%Y %H:%M %Z')}"
    return f"{start_str} - {end_str}"


def subject_date_range(window: FetchWindow) -> str:
    """UTC date range for subject lines, e.g. ``Oct 9 to Oct 16, 2026``."""
    start = window.start.astimezone(UTC)
    end = window.end.astimezone(UTC)
    return f"{start.strftime('%b')} {start.day} to {end.strftime('%b')} {end.day}, {end.year}"
