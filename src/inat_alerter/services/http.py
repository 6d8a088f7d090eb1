"""
Shared HTTP session.

Provides a pre-configured ``requests.Session`` with the project User-Agent
and a default timeout.  No retry adapter is mounted; the iNaturalist
client runs its own retry loop (see ``datasources/inaturalist/client.py``).

Usage::

    from inat_alerter.services.http import session

    resp = session.get("https://api.example.com/v1/data")
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter

DEFAULT_TIMEOUT = 30  # seconds
USER_AGENT = "iNat-Alerter/1.0"


def create_session(timeout: float = DEFAULT_TIMEOUT) -> requests.Session:
    """
    Build a ``requests.Session`` with a plain (non-retrying) adapter mounted.

    Args:
        timeout: Default timeout applied to every request.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=0)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Wrap send to inject a default timeout so callers don't need to
    # remember to pass ``timeout=`` every time.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


#: Module-level session; import and use directly.
session: requests.Session = create_session()
