"""ApiInliner: build-time API inlining orchestration layer.

This module drives one build of the inliner: it resolves the configured
endpoints, settles every endpoint concurrently through the fallback
coordinator, persists JSON artifacts, emits the declaration file and finally
publishes the per-build ``BuildState`` that the inline injector reads while
the HTML stage emits pages.

Build phases move ``IDLE -> RESOLVING -> FETCHING -> FINALIZING -> DONE``.
``FAILED`` is reached only when resolution raises ``ConfigurationError``;
that error is re-raised to the build. Every other failure is absorbed into
fallback data plus an ``on_error`` notification.

Examples
--------
>>> from api_inliner.pipeline.inliner import ApiInliner, EndpointConfig, GlobalOptions
>>> inliner = ApiInliner(
...     [EndpointConfig(url="https://x/a", fallback_data={"v": 1}, variable_name="A")],
...     GlobalOptions(production=False),
... )
>>> # In practice, run inside `asyncio.run(...)`
>>> # state = asyncio.run(inliner.run(Path("dist")))
>>> # state.by_variable("A").data == {"v": 1}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter

from api_inliner.config import PLUGIN_NAME
from api_inliner.exceptions import ConfigurationError, WriteError

from .client import EndpointClient
from .declarations import emit_declarations
from .fallback import FallbackCoordinator, notify
from .file_handler import write_artifact
from .injector import InlineInjector
from .models import (
    BuildPhase,
    BuildState,
    EndpointConfig,
    FinalData,
    GlobalOptions,
    Provenance,
    ResolvedEndpoint,
)
from .resolver import resolve_endpoints

logger = logging.getLogger(__name__)


class ApiInliner:
    """Fetch remote data at build time and inline it into the build output.

    Parameters
    ----------
    endpoints : EndpointConfig | Iterable[EndpointConfig]
        One endpoint or an ordered sequence of endpoints.
    options : GlobalOptions | None, optional
        Build-wide defaults and callbacks. ``None`` uses ``GlobalOptions()``.
    client : EndpointClient | None, optional
        Fetch executor; injectable for tests.

    Attributes
    ----------
    state : BuildState | None
        State of the most recent build, ``None`` before the first build.
    """

    def __init__(
        self,
        endpoints: EndpointConfig | Iterable[EndpointConfig],
        options: GlobalOptions | None = None,
        client: EndpointClient | None = None,
    ) -> None:
        if isinstance(endpoints, EndpointConfig):
            self.endpoints: list[EndpointConfig] = [endpoints]
        else:
            self.endpoints = list(endpoints)
        self.options = options if options is not None else GlobalOptions()
        self.client = client if client is not None else EndpointClient()
        self.state: BuildState | None = None

    def apply(self, hooks: Any, output_dir: Path) -> None:
        """Attach the inliner to a host build's lifecycle hooks.

        Parameters
        ----------
        hooks : BuildHooks
            Host hooks exposing ``before_run``, ``watch_run`` and
            ``before_emit``.
        output_dir : Path
            Build output directory artifacts are written to.
        """

        async def _run_build(*_: Any) -> None:
            await self.run(output_dir)

        hooks.before_run.tap(PLUGIN_NAME, _run_build)
        hooks.watch_run.tap(PLUGIN_NAME, _run_build)
        hooks.before_emit.tap(PLUGIN_NAME, InlineInjector(self.wait_until_ready))

    async def wait_until_ready(self) -> BuildState:
        """Return the current build state once it is settled.

        When no build has been started, a state holding only the resolved
        endpoints is returned at once, so injection falls back to each
        endpoint's fallback data.
        """
        if self.state is None:
            logger.warning(
                "HTML emitted before any build was started - inlining fallback data"
            )
            state = BuildState()
            state.endpoints = tuple(resolve_endpoints(self.endpoints, self.options))
            state.mark_ready()
            return state
        return await self.state.wait_until_ready()

    def _new_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(limit=self.options.max_concurrent_requests)
        return aiohttp.ClientSession(connector=connector)

    async def _settle_all(
        self,
        endpoints: list[ResolvedEndpoint],
        session: aiohttp.ClientSession | None,
    ) -> list[FinalData]:
        coordinator = FallbackCoordinator(
            self.client,
            AsyncLimiter(self.options.requests_per_minute, 60),
            asyncio.Semaphore(self.options.max_concurrent_requests),
            on_success=self.options.on_success,
            on_error=self.options.on_error,
        )
        tasks = [coordinator.resolve(session, endpoint) for endpoint in endpoints]
        return list(await asyncio.gather(*tasks))

    async def _fetch_phase(
        self,
        endpoints: list[ResolvedEndpoint],
        session: aiohttp.ClientSession | None,
    ) -> list[FinalData]:
        if session is not None or not any(e.production for e in endpoints):
            return await self._settle_all(endpoints, session)
        async with self._new_session() as own_session:
            return await self._settle_all(endpoints, own_session)

    async def _finalize(self, state: BuildState, output_dir: Path) -> None:
        for endpoint, final in state.results():
            try:
                path = write_artifact(endpoint, final, output_dir)
            except WriteError as err:
                logger.error("Failed to write artifact for %s: %s", endpoint.url, err)
                await notify(self.options.on_error, err, endpoint)
                continue
            if path is not None:
                state.artifacts[endpoint.key] = path
            if endpoint.inline_as_variable:
                logger.info(
                    "Data will be inlined as window.%s", endpoint.variable_name
                )

        try:
            state.declaration_path = emit_declarations(
                state.endpoints, output_dir, self.options
            )
        except WriteError as err:
            logger.error("Failed to write TypeScript declarations: %s", err)
            await notify(self.options.on_error, err, None)

    async def run(
        self, output_dir: Path, session: aiohttp.ClientSession | None = None
    ) -> BuildState:
        """Run one build and return its settled state.

        Parameters
        ----------
        output_dir : Path
            Build output directory.
        session : aiohttp.ClientSession | None, optional
            Session to fetch with. When ``None`` and some endpoint is in
            production mode, a session is created for this build and closed
            before finalizing.

        Returns
        -------
        BuildState
            The state of this build, in phase ``DONE``.

        Raises
        ------
        ConfigurationError
            If the endpoint configuration is invalid. No network call has
            been made at that point and the state is ``FAILED``.
        """
        state = BuildState()
        self.state = state
        output_dir = Path(output_dir)

        state.phase = BuildPhase.RESOLVING
        try:
            endpoints = resolve_endpoints(self.endpoints, self.options)
        except ConfigurationError as err:
            state.phase = BuildPhase.FAILED
            state.mark_ready()
            logger.error("Invalid inliner configuration: %s", err)
            raise
        state.endpoints = tuple(endpoints)

        if not endpoints:
            logger.info("No endpoints configured, skipping data fetch")

        state.phase = BuildPhase.FETCHING
        results = await self._fetch_phase(endpoints, session)

        state.phase = BuildPhase.FINALIZING
        for endpoint, final in zip(endpoints, results):
            state.record(endpoint, final)
        await self._finalize(state, output_dir)

        state.phase = BuildPhase.DONE
        state.mark_ready()
        self._log_summary(state)
        return state

    @staticmethod
    def _log_summary(state: BuildState) -> None:
        results = state.results()
        fetched = sum(1 for _, f in results if f.provenance is Provenance.FETCHED)
        logger.info(
            "Build summary: endpoints=%d fetched=%d fallback=%d artifacts=%d",
            len(results),
            fetched,
            len(results) - fetched,
            len(state.artifacts),
        )
