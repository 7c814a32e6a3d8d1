"""Client-related tests for the inliner fetch executor.

These tests inject fake sessions/responses into ``EndpointClient.fetch`` and
check the retry count, the error classification and the request arguments.
"""

import json

import aiohttp
import pytest

from api_inliner.exceptions import (
    HttpStatusError,
    NetworkError,
    ParseError,
    TimeoutExceededError,
)
from api_inliner.pipeline.inliner.client import EndpointClient
from api_inliner.pipeline.inliner.models import (
    EndpointConfig,
    FetchFailure,
    FetchSuccess,
    GlobalOptions,
    RequestOptions,
)
from api_inliner.pipeline.inliner.resolver import resolve_endpoint


class FakeResponse:
    def __init__(self, status: int, body):
        self.status = status
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Session returning queued responses and recording every request."""

    def __init__(self, responses):
        self._responses = iter(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        item = next(self._responses)
        if isinstance(item, BaseException):
            raise item
        return item


class TimeoutSession:
    def __init__(self):
        self.calls = 0

    def request(self, *args, **kwargs):
        self.calls += 1

        class Ctx:
            async def __aenter__(self_inner):
                raise TimeoutError()

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return Ctx()


def make_endpoint(**overrides):
    fields = {"url": "https://x/b", "fallback_data": {"v": 0}, "variable_name": "B"}
    fields.update(overrides)
    return resolve_endpoint(EndpointConfig(**fields), GlobalOptions(production=True), 0)


@pytest.mark.asyncio
async def test_success_on_first_attempt():
    session = FakeSession([FakeResponse(200, json.dumps({"v": 1}))])
    outcome = await EndpointClient().fetch(session, make_endpoint())
    assert isinstance(outcome, FetchSuccess)
    assert outcome.data == {"v": 1} and outcome.attempts == 1
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_success_on_third_attempt_after_server_errors():
    session = FakeSession(
        [
            FakeResponse(500, "ERR"),
            FakeResponse(500, "ERR"),
            FakeResponse(200, json.dumps({"v": 9})),
        ]
    )
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=2))
    assert isinstance(outcome, FetchSuccess)
    assert outcome.data == {"v": 9} and outcome.attempts == 3
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_return_last_status_error():
    session = FakeSession([FakeResponse(503, "busy"), FakeResponse(404, "missing")])
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=1))
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, HttpStatusError)
    assert outcome.error.status == 404
    assert outcome.attempts == 2
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_invalid_json_is_retried():
    session = FakeSession([FakeResponse(200, "not-json"), FakeResponse(200, "[1, 2]")])
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=1))
    assert isinstance(outcome, FetchSuccess)
    assert outcome.data == [1, 2] and outcome.attempts == 2


@pytest.mark.asyncio
async def test_invalid_json_without_retries_is_parse_error():
    session = FakeSession([FakeResponse(200, "<html>")])
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=0))
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, ParseError)
    assert outcome.attempts == 1


@pytest.mark.asyncio
async def test_timeout_is_classified_and_retried():
    session = TimeoutSession()
    outcome = await EndpointClient().fetch(
        session, make_endpoint(retry_count=2, request_timeout=250)
    )
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, TimeoutExceededError)
    assert "250ms" in outcome.error.message
    assert session.calls == 3


@pytest.mark.asyncio
async def test_client_error_maps_to_network_error():
    session = FakeSession([aiohttp.ClientConnectionError("network down")])
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=0))
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, NetworkError)
    assert outcome.error.transient is True
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_request_arguments_follow_request_options():
    options = RequestOptions(
        method="post", headers={"Authorization": "Bearer t"}, body={"q": 1}
    )
    session = FakeSession([FakeResponse(201, "{}")])
    await EndpointClient().fetch(
        session, make_endpoint(request_options=options, request_timeout=2500)
    )
    method, url, kwargs = session.calls[0]
    assert method == "POST" and url == "https://x/b"
    assert kwargs["headers"] == {"Accept": "application/json", "Authorization": "Bearer t"}
    assert kwargs["json"] == {"q": 1}
    assert "data" not in kwargs
    assert kwargs["timeout"].total == 2.5


@pytest.mark.asyncio
async def test_string_body_is_sent_raw():
    options = RequestOptions(method="PUT", body="raw=1")
    session = FakeSession([FakeResponse(200, "null")])
    outcome = await EndpointClient().fetch(session, make_endpoint(request_options=options))
    assert isinstance(outcome, FetchSuccess) and outcome.data is None
    _, _, kwargs = session.calls[0]
    assert kwargs["data"] == "raw=1" and "json" not in kwargs


@pytest.mark.asyncio
async def test_undecodable_body_is_parse_error_and_retried():
    bad = b'{"v": "\xff\xfe"}'
    session = FakeSession(
        [
            FakeResponse(200, bad),
            FakeResponse(200, bad),
            FakeResponse(200, json.dumps({"v": 9})),
        ]
    )
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=2))
    assert isinstance(outcome, FetchSuccess)
    assert outcome.data == {"v": 9} and outcome.attempts == 3
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_undecodable_body_exhausting_retries_reports_parse_error():
    session = FakeSession([FakeResponse(200, b"\xff"), FakeResponse(200, b"\xfe")])
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=1))
    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, ParseError)
    assert outcome.attempts == 2


@pytest.mark.asyncio
async def test_accept_header_defaults_to_json_and_can_be_overridden():
    session = FakeSession([FakeResponse(200, "{}"), FakeResponse(200, "{}")])
    await EndpointClient().fetch(session, make_endpoint())
    custom = RequestOptions(headers={"Accept": "application/vnd.api+json"})
    await EndpointClient().fetch(session, make_endpoint(request_options=custom))
    assert session.calls[0][2]["headers"] == {"Accept": "application/json"}
    assert session.calls[1][2]["headers"] == {"Accept": "application/vnd.api+json"}


@pytest.mark.asyncio
async def test_accept_header_override_ignores_case():
    custom = RequestOptions(headers={"accept": "text/plain"})
    session = FakeSession([FakeResponse(200, "{}")])
    await EndpointClient().fetch(session, make_endpoint(request_options=custom))
    assert session.calls[0][2]["headers"] == {"accept": "text/plain"}


class CountingLimiter:
    def __init__(self):
        self.acquired = 0

    async def __aenter__(self):
        self.acquired += 1
        return None

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.mark.asyncio
async def test_rate_limiter_is_acquired_for_every_attempt():
    limiter = CountingLimiter()
    session = FakeSession(
        [FakeResponse(500, "ERR"), FakeResponse(502, "ERR"), FakeResponse(200, "1")]
    )
    outcome = await EndpointClient().fetch(session, make_endpoint(retry_count=2), limiter)
    assert isinstance(outcome, FetchSuccess) and outcome.attempts == 3
    assert limiter.acquired == 3
