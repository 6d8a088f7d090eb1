"""
SendGrid v3 mail-send transport.

API docs: https://www.twilio.com/docs/sendgrid/api-reference/mail-send/mail-send
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from inat_alerter.services.http import session as default_session

if TYPE_CHECKING:
    import requests

    from inat_alerter.config import EmailSettings

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridError(Exception):
    """Mail could not be sent (misconfiguration or a non-2xx response)."""


def build_payload(
    recipients: list[str],
    subject: str,
    html_body: str,
    from_email: str,
    from_name: str,
) -> dict[str, object]:
    """SendGrid JSON body: one personalization addressed to every recipient."""
    return {
        "personalizations": [{"to": [{"email": r} for r in recipients]}],
        "from": {"email": from_email, "name": from_name},
        "subject": subject,
        "content": [{"type": "text/html", "value": html_body}],
    }


def send_email(
    settings: EmailSettings,
    subject: str,
    html_body: str,
    *,
    dry_run: bool = False,
    session: requests.Session | None = None,
) -> None:
    """Send one HTML email to ``settings.recipients``.

    In dry-run mode nothing is sent and credentials are not required.

    Raises:
        SendGridError: missing credentials/recipients, or a non-2xx reply.
    """
    recipients = settings.recipients
    if dry_run:
        logger.info(
            "DRY RUN: would send %r to %s (%d bytes)",
            subject,
            ", ".join(recipients) or "<no recipients>",
            len(html_body.encode()),
        )
        return

    if not settings.sendgrid_api_key or not settings.sendgrid_from_email:
        msg = "Missing SendGrid configuration (SENDGRID_API_KEY or SENDGRID_FROM_EMAIL)"
        raise SendGridError(msg)
    if not recipients:
        msg = "No recipients configured (EMAIL_RECIPIENTS)"
        raise SendGridError(msg)

    payload = build_payload(
        recipients,
        subject,
        html_body,
        settings.sendgrid_from_email,
        settings.sendgrid_from_name,
    )
    resp = (session or default_session).post(
        SENDGRID_URL,
        json=payload,
        headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
    )
    if not 200 <= resp.status_code < 300:  # noqa: PLR2004
        msg = f"Failed to send email. HTTP {resp.status_code}: {resp.text}"
        raise SendGridError(msg)
    logger.info("Email sent to: %s", ", ".join(recipients))
