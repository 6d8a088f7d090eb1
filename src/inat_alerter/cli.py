"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from inat_alerter import __version__
from inat_alerter.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from inat_alerter.datasources.inaturalist import InatApiError
from inat_alerter.flows.alerts import alerts_flow
from inat_alerter.flows.digest import digest_flow
from inat_alerter.services.sendgrid import SendGridError

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="inat-alerter",
        description="Digest and watchlist alert emails for new iNaturalist observations",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the YAML config file (default: {DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("digest", "Send the periodic digest of new observations"),
        ("alerts", "Send alerts for new watchlist observations"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--dry-run",
            action="store_true",
            help="Render the email and update state, but do not send",
        )
        sub.add_argument(
            "--force",
            action="store_true",
            help="Run even if disabled in the config file",
        )

    subparsers.add_parser("info", help="Show the loaded configuration")

    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)


def _load(args: argparse.Namespace) -> Settings | None:
    """Load settings, printing problems to stderr instead of raising."""
    try:
        return load_settings(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        print("Copy config.example.yaml to config.yaml and customize it.", file=sys.stderr)
    except ValueError as exc:
        print("Error: Configuration validation failed:", file=sys.stderr)
        if isinstance(exc, ValidationError):
            for err in exc.errors():
                loc = ".".join(str(part) for part in err["loc"])
                print(f"  - {loc}: {err['msg']}", file=sys.stderr)
        else:
            print(f"  - {exc}", file=sys.stderr)
    return None


def cmd_digest(args: argparse.Namespace) -> int:
    """Handle the 'digest' command."""
    settings = _load(args)
    if settings is None:
        return 1
    if not settings.digest.enabled and not args.force:
        print("Digest is disabled in config. Skipping.")
        return 0

    try:
        result = digest_flow(settings=settings, dry_run=args.dry_run)
    except (InatApiError, SendGridError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Digest complete: {result}")
    return 0


def cmd_alerts(args: argparse.Namespace) -> int:
    """Handle the 'alerts' command."""
    settings = _load(args)
    if settings is None:
        return 1
    if not settings.alerts.enabled and not args.force:
        print("Alerts are disabled in config. Skipping.")
        return 0

    try:
        result = alerts_flow(settings=settings, dry_run=args.dry_run)
    except (InatApiError, SendGridError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Alerts complete: {result}")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = _load(args)
    if settings is None:
        return 1
    loc = settings.location
    print(f"Version: {__version__}")
    print(f"Config: {args.config}")
    print(f"Timezone: {settings.timezone}")
    print(f"Location: {loc.lat}, {loc.lng} (radius: {loc.radius} km)")
    print(f"Taxa: include={settings.taxa.include} exclude={settings.taxa.exclude}")
    print(f"Watchlist: {settings.watchlist.taxa_ids}")
    print(f"Rarity: {settings.rarity.method} (place_id={settings.rarity.place_id})")
    print(f"Old threshold: {settings.old_observation.days_old_threshold} days")
    print(f"State: {settings.state.path} (retention {settings.state.artifact_retention_days} days)")
    print(
        f"Digest schedule: day {settings.digest.day_of_week} (0 = Sunday) "
        f"at {settings.digest.local_hour:02d}:00 local"
    )
    print(f"Digest enabled: {settings.digest.enabled}")
    print(f"Alerts enabled: {settings.alerts.enabled}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.debug)

    commands = {
        "digest": cmd_digest,
        "alerts": cmd_alerts,
        "info": cmd_info,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
