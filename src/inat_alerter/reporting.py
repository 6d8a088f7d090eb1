"""Reporting: where finished reports go.

Flows hand a :class:`~inat_alerter.schemas.DigestReport` or
:class:`~inat_alerter.schemas.AlertReport` to a :class:`Reporter`.  The
reporter returns nothing; any exception it raises fails the workflow
before state is saved, so the same window is retried next run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from inat_alerter.renderers.email import (
    alert_subject,
    build_alert_html,
    build_digest_html,
    digest_subject,
)
from inat_alerter.services.sendgrid import send_email

if TYPE_CHECKING:
    from inat_alerter.config import EmailSettings, Settings
    from inat_alerter.schemas import AlertReport, DigestReport

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    def send_digest(self, report: DigestReport) -> None: ...

    def send_alert(self, report: AlertReport) -> None: ...


class EmailReporter:
    """Renders reports to HTML and mails them via SendGrid."""

    def __init__(
        self,
        settings: Settings,
        email_settings: EmailSettings,
        *,
        dry_run: bool = False,
    ) -> None:
        self.settings = settings
        self.email_settings = email_settings
        self.dry_run = dry_run

    def send_digest(self, report: DigestReport) -> None:
        subject = digest_subject(report.window)
        html = build_digest_html(report, self.settings)
        logger.info("Sending digest email with subject: %s", subject)
        send_email(self.email_settings, subject, html, dry_run=self.dry_run)

    def send_alert(self, report: AlertReport) -> None:
        subject = alert_subject(report.count)
        html = build_alert_html(report, self.settings)
        logger.info("Sending alert email with subject: %s", subject)
        send_email(self.email_settings, subject, html, dry_run=self.dry_run)
