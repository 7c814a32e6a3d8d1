"""inliner.client module.

This module defines the `EndpointClient` class, the asynchronous networking
boundary of the build-time inliner. It issues the configured request against
one resolved endpoint, bounds every attempt with its own timeout, retries
immediately on any failure and returns a structured outcome.

The client never performs file I/O and never raises for network, timeout,
status or parse failures: it returns a ``FetchSuccess`` or ``FetchFailure``
so that the fallback coordinator can substitute fallback data.

Examples
--------
>>> import aiohttp
>>> from api_inliner.pipeline.inliner.client import EndpointClient
>>> async def main(endpoint):
...     async with aiohttp.ClientSession() as session:
...         outcome = await EndpointClient().fetch(session, endpoint)
...         print(type(outcome).__name__)
>>> # To actually run:
>>> # import asyncio; asyncio.run(main(resolved_endpoint))

Notes
-----
- aiohttp releases the connection of a timed-out request when the response
  context exits, before the next attempt starts.
- ``aiohttp.ServerTimeoutError`` is both a ``ClientError`` and a
  ``TimeoutError``; it is classified as a timeout.
- The response body is read as bytes and decoded as UTF-8 together with the
  JSON parse, so an undecodable 2xx body is a ``ParseError`` like any other
  malformed body.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter

from api_inliner.config import DEFAULT_ACCEPT_HEADER
from api_inliner.exceptions import (
    AppError,
    HttpStatusError,
    NetworkError,
    ParseError,
    TimeoutExceededError,
)

from .models import FetchFailure, FetchOutcome, FetchSuccess, ResolvedEndpoint

logger = logging.getLogger(__name__)


class EndpointClient:
    r"""Asynchronous client performing one endpoint fetch with retries.

    Methods
    -------
    fetch(session, endpoint, rate_limiter=None)
        Request the endpoint up to ``retry_count + 1`` times and return the
        first parsed JSON body or the last failure.

    See Also
    --------
    api_inliner.pipeline.inliner.fallback.FallbackCoordinator : Turns the
        outcome into ``FinalData``.
    """

    @staticmethod
    def _request_kwargs(endpoint: ResolvedEndpoint) -> dict[str, Any]:
        options = endpoint.request_options
        headers = dict(options.headers)
        if not any(name.lower() == "accept" for name in headers):
            headers["Accept"] = DEFAULT_ACCEPT_HEADER
        kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": aiohttp.ClientTimeout(total=endpoint.request_timeout / 1000),
        }
        if options.body is not None:
            if isinstance(options.body, (str, bytes)):
                kwargs["data"] = options.body
            else:
                kwargs["json"] = options.body
        return kwargs

    async def _attempt(
        self, session: aiohttp.ClientSession, endpoint: ResolvedEndpoint
    ) -> Any:
        method = endpoint.request_options.method.upper()
        async with session.request(
            method, endpoint.url, **self._request_kwargs(endpoint)
        ) as response:
            status = response.status
            body = await response.read()

        if not 200 <= status < 300:
            raise HttpStatusError(
                status,
                f"HTTP request failed with status code {status}",
                context={
                    "url": endpoint.url,
                    "body": body[:200].decode("utf-8", errors="replace"),
                },
            )
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise ParseError(
                f"Failed to parse response data: {err}",
                context={"url": endpoint.url},
            ) from err

    async def _throttled_attempt(
        self,
        session: aiohttp.ClientSession,
        endpoint: ResolvedEndpoint,
        rate_limiter: AsyncLimiter | None,
    ) -> Any:
        if rate_limiter is None:
            return await self._attempt(session, endpoint)
        async with rate_limiter:
            return await self._attempt(session, endpoint)

    async def fetch(
        self,
        session: aiohttp.ClientSession,
        endpoint: ResolvedEndpoint,
        rate_limiter: AsyncLimiter | None = None,
    ) -> FetchOutcome:
        r"""Fetch the endpoint's JSON body, retrying every failure immediately.

        Parameters
        ----------
        session : aiohttp.ClientSession
            Session used for the request. Must support an async-context
            ``request`` method. Used and not closed by this method.
        endpoint : ResolvedEndpoint
            Endpoint with concrete method, headers, body, timeout (ms) and
            retry count.
        rate_limiter : AsyncLimiter | None, optional
            Limiter acquired once per attempt, so retries count against the
            build's request rate.

        Returns
        -------
        FetchOutcome
            ``FetchSuccess(data, attempts)`` on the first 2xx response with a
            valid JSON body, otherwise ``FetchFailure(error, attempts)``
            carrying the last ``NetworkError``, ``TimeoutExceededError``,
            ``HttpStatusError`` or ``ParseError``.

        Examples
        --------
        >>> async def run(session, endpoint):
        ...     outcome = await EndpointClient().fetch(session, endpoint)
        ...     assert outcome.attempts <= endpoint.retry_count + 1
        """
        max_attempts = endpoint.retry_count + 1
        attempt = 0

        while True:
            attempt += 1
            error: AppError
            try:
                data = await self._throttled_attempt(session, endpoint, rate_limiter)
                return FetchSuccess(data=data, attempts=attempt)
            except (HttpStatusError, ParseError) as err:
                error = err
            except TimeoutError:
                error = TimeoutExceededError(
                    f"HTTP request timeout after {endpoint.request_timeout}ms",
                    context={"url": endpoint.url},
                )
            except aiohttp.ClientError as err:
                error = NetworkError(
                    f"HTTP request error: {err}", context={"url": endpoint.url}
                )

            if attempt >= max_attempts:
                return FetchFailure(error=error, attempts=attempt)
            logger.warning(
                "Retrying %s due to %s (%d attempts left)",
                endpoint.url,
                error,
                max_attempts - attempt,
            )
