"""Tests for the iNaturalist API client retry loop."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from inat_alerter.datasources.inaturalist.client import (
    API_BASE,
    ERROR_BODY_LIMIT,
    ClientError,
    Failure,
    InatClient,
    ResponseDecodeError,
    RetriesExhaustedError,
    UnexpectedStatusError,
    classify_response,
    parse_retry_after,
)


def make_response(
    status: int,
    body: Any = None,
    *,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    if text is not None:
        resp._content = text.encode()
    else:
        resp._content = json.dumps(body if body is not None else {}).encode()
    resp.headers.update(headers or {})
    return resp


def make_client(
    responses: list[Any], **kwargs: Any
) -> tuple[InatClient, MagicMock, MagicMock]:
    """Client over a mock session that replays ``responses`` in order."""
    session = MagicMock()
    session.get.side_effect = responses
    sleep = MagicMock()
    kwargs.setdefault("min_interval", 0)
    client = InatClient(session, sleep=sleep, **kwargs)
    return client, session, sleep


def sleeps(sleep: MagicMock) -> list[float]:
    return [c.args[0] for c in sleep.call_args_list]


OK = {"total_results": 1, "results": [{"id": 1}]}


class TestParseRetryAfter:
    """Test Retry-After header parsing."""

    def test_integer_seconds(self) -> None:
        assert parse_retry_after("5") == 5.0

    def test_whitespace(self) -> None:
        assert parse_retry_after(" 12 ") == 12.0

    def test_missing(self) -> None:
        assert parse_retry_after(None) is None

    def test_http_date_is_ignored(self) -> None:
        assert parse_retry_after("Wed, 21 Oct 2026 07:28:00 GMT") is None

    def test_negative_is_ignored(self) -> None:
        assert parse_retry_after("-3") is None


class TestClassifyResponse:
    """Test mapping of single responses onto outcomes."""

    def test_success(self) -> None:
        outcome = classify_response(make_response(200, OK))
        assert outcome.data == OK
        assert outcome.failure is None

    def test_rate_limited_with_retry_after(self) -> None:
        outcome = classify_response(make_response(429, headers={"Retry-After": "7"}))
        assert outcome.failure is Failure.RATE_LIMITED
        assert outcome.retry_after == 7.0

    def test_server_error(self) -> None:
        assert classify_response(make_response(503)).failure is Failure.SERVER

    def test_client_error_keeps_body(self) -> None:
        outcome = classify_response(make_response(422, text="bad taxon_id"))
        assert outcome.failure is Failure.CLIENT
        assert outcome.message == "bad taxon_id"

    def test_non_object_json_is_decode_failure(self) -> None:
        outcome = classify_response(make_response(200, [1, 2, 3]))
        assert outcome.failure is Failure.DECODE

    def test_other_status_is_unexpected(self) -> None:
        assert classify_response(make_response(304, text="")).failure is Failure.UNEXPECTED


class TestInatClientSuccess:
    """Test the happy path."""

    def test_returns_json(self) -> None:
        client, session, sleep = make_client([make_response(200, OK)])
        assert client.get("observations", {"page": 1}) == OK
        sleep.assert_not_called()

    def test_builds_url_from_endpoint(self) -> None:
        client, session, _ = make_client([make_response(200, OK)])
        client.get("/observations", {"page": 2})
        session.get.assert_called_once_with(f"{API_BASE}/observations", params={"page": 2})

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            InatClient(MagicMock(), max_attempts=0)


class TestInatClientRetries:
    """Test backoff, Retry-After and the attempt budget."""

    def test_backoff_doubles(self) -> None:
        responses = [make_response(500)] * 5 + [make_response(200, OK)]
        client, session, sleep = make_client(responses)
        assert client.get("observations") == OK
        assert sleeps(sleep) == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert session.get.call_count == 6

    def test_backoff_is_capped(self) -> None:
        responses = [make_response(502)] * 5 + [make_response(200, OK)]
        client, _, sleep = make_client(responses, max_backoff=4.0)
        client.get("observations")
        assert sleeps(sleep) == [1.0, 2.0, 4.0, 4.0, 4.0]

    def test_gives_up_after_max_attempts(self) -> None:
        client, session, sleep = make_client([make_response(500)] * 3, max_attempts=3)
        with pytest.raises(RetriesExhaustedError, match="after 3 attempts") as exc_info:
            client.get("observations")
        assert exc_info.value.attempts == 3
        assert exc_info.value.failure is Failure.SERVER
        assert exc_info.value.status_code == 500
        assert session.get.call_count == 3
        assert sleeps(sleep) == [1.0, 2.0]

    def test_retry_after_waits_exactly(self) -> None:
        responses = [
            make_response(429, headers={"Retry-After": "5"}),
            make_response(500),
            make_response(200, OK),
        ]
        client, _, sleep = make_client(responses)
        client.get("observations")
        # The Retry-After wait does not advance the backoff.
        assert sleeps(sleep) == [5.0, 1.0]

    def test_rate_limit_without_header_uses_backoff(self) -> None:
        responses = [make_response(429), make_response(429), make_response(200, OK)]
        client, _, sleep = make_client(responses)
        client.get("observations")
        assert sleeps(sleep) == [1.0, 2.0]

    def test_rate_limits_count_against_budget(self) -> None:
        responses = [make_response(429, headers={"Retry-After": "1"})] * 2
        client, _, _ = make_client(responses, max_attempts=2)
        with pytest.raises(RetriesExhaustedError) as exc_info:
            client.get("observations")
        assert exc_info.value.failure is Failure.RATE_LIMITED

    def test_transport_error_is_retried(self) -> None:
        responses = [requests.ConnectionError("reset"), make_response(200, OK)]
        client, session, sleep = make_client(responses)
        assert client.get("observations") == OK
        assert session.get.call_count == 2
        assert sleeps(sleep) == [1.0]

    def test_timeout_exhausts_as_transport(self) -> None:
        client, _, _ = make_client([requests.Timeout("slow")] * 2, max_attempts=2)
        with pytest.raises(RetriesExhaustedError) as exc_info:
            client.get("observations")
        assert exc_info.value.failure is Failure.TRANSPORT
        assert exc_info.value.status_code is None


class TestInatClientFatal:
    """Test outcomes that fail immediately."""

    def test_client_error_not_retried(self) -> None:
        client, session, sleep = make_client([make_response(400, text="invalid param")])
        with pytest.raises(ClientError) as exc_info:
            client.get("observations")
        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "invalid param"
        assert session.get.call_count == 1
        sleep.assert_not_called()

    def test_client_error_body_truncated(self) -> None:
        client, _, _ = make_client([make_response(404, text="x" * 5000)])
        with pytest.raises(ClientError) as exc_info:
            client.get("observations")
        assert len(exc_info.value.body) == ERROR_BODY_LIMIT

    def test_invalid_json(self) -> None:
        client, session, _ = make_client([make_response(200, text="<html>oops</html>")])
        with pytest.raises(ResponseDecodeError):
            client.get("observations")
        assert session.get.call_count == 1

    def test_unexpected_status(self) -> None:
        client, _, _ = make_client([make_response(204, text="")])
        with pytest.raises(UnexpectedStatusError, match="204"):
            client.get("observations")


class TestRequestPacing:
    """Test minimum spacing between requests."""

    def test_sleeps_for_remaining_interval(self) -> None:
        session = MagicMock()
        session.get.side_effect = [make_response(200, OK), make_response(200, OK)]
        sleep = MagicMock()
        clock = MagicMock(side_effect=[0.0, 0.0, 0.25, 1.0])
        client = InatClient(session, min_interval=1.0, sleep=sleep, clock=clock)

        client.get("observations")
        client.get("observations")

        assert sleeps(sleep) == [0.75]

    def test_no_sleep_when_spaced(self) -> None:
        session = MagicMock()
        session.get.side_effect = [make_response(200, OK), make_response(200, OK)]
        sleep = MagicMock()
        clock = MagicMock(side_effect=[0.0, 0.0, 5.0, 5.0])
        client = InatClient(session, min_interval=1.0, sleep=sleep, clock=clock)

        client.get("observations")
        client.get("observations")

        sleep.assert_not_called()
