"""Tests for the fallback coordinator: mode gating, callbacks and degradation."""

import asyncio

import pytest
from aiolimiter import AsyncLimiter

from api_inliner.exceptions import ExternalServiceError, HttpStatusError
from api_inliner.pipeline.inliner.fallback import FallbackCoordinator, notify
from api_inliner.pipeline.inliner.models import (
    EndpointConfig,
    FetchFailure,
    FetchSuccess,
    GlobalOptions,
    Provenance,
)
from api_inliner.pipeline.inliner.resolver import resolve_endpoint


class FakeClient:
    """Client stub returning a fixed outcome and counting fetches."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0
        self.rate_limiter = None

    async def fetch(self, session, endpoint, rate_limiter=None):
        self.calls += 1
        self.rate_limiter = rate_limiter
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def make_endpoint(production=True):
    return resolve_endpoint(
        EndpointConfig(
            url="https://x/a",
            fallback_data={"v": 1},
            variable_name="A",
            production=production,
        ),
        GlobalOptions(),
        0,
    )


def make_coordinator(client, **callbacks):
    return FallbackCoordinator(
        client, AsyncLimiter(100, 60), asyncio.Semaphore(2), **callbacks
    )


@pytest.mark.asyncio
async def test_development_mode_never_fetches():
    client = FakeClient(FetchSuccess(data={"v": 2}, attempts=1))
    errors = []
    coordinator = make_coordinator(client, on_error=lambda e, ep: errors.append(e))
    final = await coordinator.resolve(object(), make_endpoint(production=False))
    assert client.calls == 0
    assert final.data == {"v": 1}
    assert final.provenance is Provenance.FALLBACK
    assert final.attempts == 0 and final.error is None
    assert errors == []


@pytest.mark.asyncio
async def test_success_notifies_once_with_payload():
    client = FakeClient(FetchSuccess(data={"v": 9}, attempts=3))
    seen = []
    coordinator = make_coordinator(
        client, on_success=lambda data, ep: seen.append((data, ep.variable_name))
    )
    final = await coordinator.resolve(object(), make_endpoint())
    assert final.provenance is Provenance.FETCHED
    assert final.data == {"v": 9} and final.attempts == 3
    assert seen == [({"v": 9}, "A")]


@pytest.mark.asyncio
async def test_failure_uses_fallback_and_notifies_once():
    error = HttpStatusError(500, "HTTP request failed with status code 500")
    client = FakeClient(FetchFailure(error=error, attempts=3))
    seen = []

    async def on_error(err, endpoint):
        seen.append((err, endpoint.url))

    coordinator = make_coordinator(client, on_error=on_error)
    final = await coordinator.resolve(object(), make_endpoint())
    assert final.provenance is Provenance.FALLBACK
    assert final.data == {"v": 1}
    assert final.error is error and final.attempts == 3
    assert seen == [(error, "https://x/a")]


@pytest.mark.asyncio
async def test_unexpected_client_exception_degrades_to_fallback():
    client = FakeClient(RuntimeError("boom"))
    seen = []
    coordinator = make_coordinator(client, on_error=lambda e, ep: seen.append(e))
    final = await coordinator.resolve(object(), make_endpoint())
    assert final.provenance is Provenance.FALLBACK
    assert isinstance(final.error, ExternalServiceError)
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_raising_callback_does_not_abort_resolution():
    client = FakeClient(FetchSuccess(data=[1], attempts=1))

    def on_success(data, endpoint):
        raise ValueError("callback failure")

    coordinator = make_coordinator(client, on_success=on_success)
    final = await coordinator.resolve(object(), make_endpoint())
    assert final.data == [1]


@pytest.mark.asyncio
async def test_production_endpoint_requires_session():
    coordinator = make_coordinator(FakeClient(FetchSuccess(data=1, attempts=1)))
    with pytest.raises(RuntimeError):
        await coordinator.resolve(None, make_endpoint())


@pytest.mark.asyncio
async def test_notify_ignores_missing_callback():
    await notify(None, "anything")


@pytest.mark.asyncio
async def test_fetch_receives_the_shared_rate_limiter():
    client = FakeClient(FetchSuccess(data=1, attempts=1))
    limiter = AsyncLimiter(100, 60)
    coordinator = FallbackCoordinator(client, limiter, asyncio.Semaphore(1))
    await coordinator.resolve(object(), make_endpoint())
    assert client.rate_limiter is limiter
