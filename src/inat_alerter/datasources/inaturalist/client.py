"""
iNaturalist API client.

Low-level HTTP client for the iNaturalist API v1.  One logical GET either
returns decoded JSON or raises an :class:`InatApiError` subclass.

Every round-trip is classified into exactly one outcome::

    SUCCESS        200 with a JSON object body           -> return
    TRANSPORT      connection error / timeout            -> backoff, retry
    RATE_LIMITED   429                                   -> Retry-After or backoff, retry
    SERVER         5xx                                   -> backoff, retry
    CLIENT         4xx other than 429                    -> ClientError
    DECODE         200 whose body is not a JSON object   -> ResponseDecodeError
    UNEXPECTED     any other status                      -> UnexpectedStatusError

Retryable outcomes share one attempt budget (``max_attempts`` round-trips);
running out raises :class:`RetriesExhaustedError`.  Backoff starts at
``initial_backoff`` seconds and doubles after every backoff wait, capped at
``max_backoff``.  A 429 carrying ``Retry-After: N`` waits exactly N seconds
and leaves the backoff untouched.

API docs: https://api.inaturalist.org/v1/docs/
Recommended practices: https://www.inaturalist.org/pages/api+recommended+practices
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import requests

from inat_alerter.services.http import session as default_session

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# API configuration
# ---------------------------------------------------------------------------
API_BASE = "https://api.inaturalist.org/v1"
MAX_ATTEMPTS = 8
INITIAL_BACKOFF: float = 1.0  # seconds
MAX_BACKOFF: float = 120.0  # seconds
MIN_REQUEST_INTERVAL: float = 1.0  # seconds; ~1 req/s
ERROR_BODY_LIMIT = 1000  # characters of a 4xx body kept for diagnostics


# =============================================================================
# Errors
# =============================================================================


class InatApiError(Exception):
    """Base class for terminal iNaturalist API failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClientError(InatApiError):
    """4xx other than 429: the query itself is wrong. Never retried."""

    def __init__(self, message: str, *, status_code: int, body: str) -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class ResponseDecodeError(InatApiError):
    """The server answered 200 but the body is not a JSON object."""


class UnexpectedStatusError(InatApiError):
    """A status code outside the handled classes (e.g. 204, 304)."""


class RetriesExhaustedError(InatApiError):
    """A retryable failure persisted past the attempt budget."""

    def __init__(
        self,
        message: str,
        *,
        failure: Failure,
        attempts: int,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.failure = failure
        self.attempts = attempts


# =============================================================================
# Outcome classification
# =============================================================================


class Failure(StrEnum):
    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    CLIENT = "client"
    DECODE = "decode"
    UNEXPECTED = "unexpected"


RETRYABLE = frozenset({Failure.TRANSPORT, Failure.RATE_LIMITED, Failure.SERVER})


@dataclass(frozen=True)
class Outcome:
    """Result of a single HTTP round-trip."""

    data: dict[str, Any] | None = None
    failure: Failure | None = None
    status_code: int | None = None
    message: str = ""
    retry_after: float | None = None


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a ``Retry-After`` header, or None if absent/not numeric.

    The HTTP-date form is treated as absent so the caller falls back to
    exponential backoff.
    """
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return float(seconds) if seconds >= 0 else None


def classify_response(resp: requests.Response) -> Outcome:
    """Map an HTTP response onto an :class:`Outcome`."""
    status = resp.status_code
    if status == 200:  # noqa: PLR2004
        try:
            data = resp.json()
        except ValueError as exc:
            return Outcome(
                failure=Failure.DECODE,
                status_code=status,
                message=f"Failed to decode JSON response: {exc}",
            )
        if not isinstance(data, dict):
            return Outcome(
                failure=Failure.DECODE,
                status_code=status,
                message=f"Expected a JSON object, got {type(data).__name__}",
            )
        return Outcome(data=data, status_code=status)
    if status == 429:  # noqa: PLR2004
        return Outcome(
            failure=Failure.RATE_LIMITED,
            status_code=status,
            message="Rate limited (HTTP 429)",
            retry_after=parse_retry_after(resp.headers.get("Retry-After")),
        )
    if status >= 500:  # noqa: PLR2004
        return Outcome(
            failure=Failure.SERVER,
            status_code=status,
            message=f"Server error (HTTP {status})",
        )
    if 400 <= status < 500:  # noqa: PLR2004
        return Outcome(
            failure=Failure.CLIENT,
            status_code=status,
            message=resp.text[:ERROR_BODY_LIMIT],
        )
    return Outcome(
        failure=Failure.UNEXPECTED,
        status_code=status,
        message=f"Unexpected HTTP code {status}",
    )


def _fatal_error(outcome: Outcome) -> InatApiError:
    status = outcome.status_code
    if outcome.failure is Failure.CLIENT:
        return ClientError(
            f"Client error (HTTP {status}): {outcome.message}",
            status_code=status or 400,
            body=outcome.message,
        )
    if outcome.failure is Failure.DECODE:
        return ResponseDecodeError(outcome.message, status_code=status)
    return UnexpectedStatusError(outcome.message, status_code=status)


# =============================================================================
# Client
# =============================================================================


class InatClient:
    """Resilient GET client for the iNaturalist API.

    Args:
        session: HTTP session (defaults to the shared project session).
        base_url: API root, without trailing slash.
        max_attempts: Round-trips allowed for one logical request.
        initial_backoff: First backoff wait in seconds.
        max_backoff: Backoff ceiling in seconds.
        min_interval: Minimum spacing between requests (0 disables pacing).
        sleep: Blocking wait function, injectable for tests.
        clock: Monotonic clock used for request pacing.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str = API_BASE,
        max_attempts: int = MAX_ATTEMPTS,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
        min_interval: float = MIN_REQUEST_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {max_attempts}"
            raise ValueError(msg)
        self.session = session or default_session
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.min_interval = min_interval
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET ``{base_url}/{endpoint}`` with retry handling."""
        return self.request(f"{self.base_url}/{endpoint.lstrip('/')}", params)

    def request(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Issue one logical GET and return the decoded JSON object.

        Raises:
            ClientError: 4xx other than 429.
            ResponseDecodeError: 200 with a body that is not a JSON object.
            UnexpectedStatusError: any unhandled status code.
            RetriesExhaustedError: a retryable failure outlived the budget.
        """
        attempt = 0
        backoff = min(self.initial_backoff, self.max_backoff)

        while True:
            outcome = self._round_trip(url, params)
            if outcome.data is not None:
                return outcome.data
            if outcome.failure not in RETRYABLE:
                raise _fatal_error(outcome)

            attempt += 1
            if attempt >= self.max_attempts:
                msg = f"API request failed after {attempt} attempts: {outcome.message}"
                raise RetriesExhaustedError(
                    msg,
                    failure=outcome.failure,  # type: ignore[arg-type]
                    attempts=attempt,
                    status_code=outcome.status_code,
                )

            if outcome.failure is Failure.RATE_LIMITED and outcome.retry_after is not None:
                logger.warning(
                    "Rate limited (attempt %d/%d). Waiting %ss as indicated by Retry-After...",
                    attempt,
                    self.max_attempts,
                    outcome.retry_after,
                )
                self._sleep(outcome.retry_after)
                continue

            logger.warning(
                "%s (attempt %d/%d). Retrying in %ss...",
                outcome.message,
                attempt,
                self.max_attempts,
                backoff,
            )
            self._sleep(backoff)
            backoff = min(backoff * 2, self.max_backoff)

    def _round_trip(self, url: str, params: dict[str, Any] | None) -> Outcome:
        self._pace()
        try:
            resp = self.session.get(url, params=params)
        except requests.RequestException as exc:
            return Outcome(failure=Failure.TRANSPORT, message=f"Network error: {exc}")
        return classify_response(resp)

    def _pace(self) -> None:
        """Sleep if needed to keep requests ``min_interval`` apart."""
        if self.min_interval <= 0:
            return
        now = self._clock()
        if self._last_request is not None:
            elapsed = now - self._last_request
            if elapsed < self.min_interval:
                self._sleep(self.min_interval - elapsed)
        self._last_request = self._clock()
