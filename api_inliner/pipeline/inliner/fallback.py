"""Fallback coordination: decide whether to fetch and settle every endpoint.

Development-mode endpoints never touch the network. Production endpoints are
fetched through :class:`EndpointClient` under the build's shared rate
limiter and concurrency semaphore; any failure degrades to the endpoint's
fallback data. The outcome is always a ``FinalData``: this module never
raises for fetch problems, so a failing endpoint cannot abort the build.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter

from api_inliner.exceptions import AppError, ExternalServiceError

from .client import EndpointClient
from .models import (
    ErrorCallback,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    FinalData,
    Provenance,
    ResolvedEndpoint,
    SuccessCallback,
)

logger = logging.getLogger(__name__)


async def notify(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Invoke a user callback, awaiting it when it is a coroutine function.

    Callbacks are best-effort notifications: any exception they raise is
    logged and discarded.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Callback %r raised; continuing build", callback)


class FallbackCoordinator:
    """Settle one resolved endpoint into ``FinalData``.

    Parameters
    ----------
    client : EndpointClient
        Executor for production fetches.
    rate_limiter : AsyncLimiter
        Shared limiter throttling requests across all endpoints of a build;
        every attempt, retries included, acquires it.
    semaphore : asyncio.Semaphore
        Bounds the number of endpoints fetching at the same time.
    on_success, on_error : callable or None
        User notifications, see ``GlobalOptions``.
    """

    def __init__(
        self,
        client: EndpointClient,
        rate_limiter: AsyncLimiter,
        semaphore: asyncio.Semaphore,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.client = client
        self.rate_limiter = rate_limiter
        self.semaphore = semaphore
        self.on_success = on_success
        self.on_error = on_error

    async def _fetch(
        self, session: aiohttp.ClientSession, endpoint: ResolvedEndpoint
    ) -> FetchOutcome:
        async with self.semaphore:
            try:
                return await self.client.fetch(session, endpoint, self.rate_limiter)
            except Exception as err:
                logger.error(
                    "Unexpected error fetching %s: %s",
                    endpoint.url,
                    err,
                    exc_info=True,
                )
                return FetchFailure(
                    error=ExternalServiceError(
                        f"Unexpected error: {err}", context={"url": endpoint.url}
                    ),
                    attempts=0,
                )

    async def resolve(
        self, session: aiohttp.ClientSession | None, endpoint: ResolvedEndpoint
    ) -> FinalData:
        """Return fetched or fallback data for ``endpoint``.

        Parameters
        ----------
        session : aiohttp.ClientSession or None
            Shared HTTP session; may be ``None`` when no endpoint of the build
            is in production mode.
        endpoint : ResolvedEndpoint
            The endpoint to settle.

        Returns
        -------
        FinalData
            ``Provenance.FETCHED`` with the response body, or
            ``Provenance.FALLBACK`` with ``endpoint.fallback_data``.
        """
        if not endpoint.production:
            logger.info(
                "Development mode - using fallback data for %s", endpoint.url
            )
            return FinalData(data=endpoint.fallback_data, provenance=Provenance.FALLBACK)

        if session is None:
            raise RuntimeError("A production endpoint requires an HTTP session")

        logger.info("Fetching data from %s", endpoint.url)
        outcome = await self._fetch(session, endpoint)

        if isinstance(outcome, FetchSuccess):
            logger.info(
                "Fetched %s in %d attempt(s)", endpoint.url, outcome.attempts
            )
            await notify(self.on_success, outcome.data, endpoint)
            return FinalData(
                data=outcome.data,
                provenance=Provenance.FETCHED,
                attempts=outcome.attempts,
            )

        error: AppError = outcome.error
        logger.warning(
            "Error fetching from %s after %d attempt(s): %s - using fallback data",
            endpoint.url,
            outcome.attempts,
            error,
        )
        logger.debug("Fetch failure detail: %s", error.to_dict())
        await notify(self.on_error, error, endpoint)
        return FinalData(
            data=endpoint.fallback_data,
            provenance=Provenance.FALLBACK,
            attempts=outcome.attempts,
            error=error,
        )
