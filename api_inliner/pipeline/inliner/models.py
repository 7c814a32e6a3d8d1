"""Data model for the build-time API inliner.

Defines the configuration records supplied by the user (``EndpointConfig``,
``GlobalOptions``), the fully merged ``ResolvedEndpoint`` produced by the
resolver, the fetch outcome variants, and the per-build ``BuildState`` that
the orchestrator fills and the inline injector reads.

All configuration records are frozen dataclasses. ``None`` on an endpoint
field means "inherit the global value"; ``MISSING`` marks fallback data that
was never supplied, so that ``None`` stays a legal fallback value.
"""

from __future__ import annotations

import asyncio
import enum
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from api_inliner.config import (
    DEFAULT_DECLARATION_FILE_PATH,
    DEFAULT_EMIT_DECLARATION_FILE,
    DEFAULT_HTTP_METHOD,
    DEFAULT_INLINE_AS_VARIABLE,
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEFAULT_REQUESTS_PER_MINUTE,
    DEFAULT_RETRY_COUNT,
    DEFAULT_SAVE_AS_FILE,
    DEFAULT_TYPE,
    DEFAULT_VARIABLE_PREFIX,
    ENV_BUILD_MODE,
    PRODUCTION_MODE,
)
from api_inliner.exceptions import AppError


class _Missing:
    """Sentinel type for values that were not supplied at all."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

SuccessCallback = Callable[[Any, "ResolvedEndpoint"], Union[Awaitable[None], None]]
ErrorCallback = Callable[
    [AppError, Union["ResolvedEndpoint", None]], Union[Awaitable[None], None]
]
EndpointKey = tuple[str, str]


def is_production_build() -> bool:
    """Return the build-mode flag derived from the environment.

    Returns
    -------
    bool
        ``True`` when ``API_INLINER_MODE`` is ``production``.

    Examples
    --------
    >>> import os
    >>> os.environ["API_INLINER_MODE"] = "production"
    >>> is_production_build()
    True
    """
    return os.getenv(ENV_BUILD_MODE, "").strip().lower() == PRODUCTION_MODE


@dataclass(frozen=True)
class RequestOptions:
    """Method, headers and body sent with every attempt against an endpoint."""

    method: str = DEFAULT_HTTP_METHOD
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True)
class EndpointConfig:
    """User-supplied configuration for one remote data source.

    Attributes
    ----------
    url : str
        Absolute http(s) URL to fetch.
    fallback_data : Any
        Value used in development mode or when every attempt failed.
    output_file : str | None
        JSON artifact path relative to the build output path.
    inline_as_variable, save_as_file, production : bool | None
        Per-endpoint overrides; ``None`` inherits from ``GlobalOptions``.
    variable_name : str | None
        Global name assigned in the generated HTML.
    request_options : RequestOptions | None
        Method, headers and body for the request.
    type_reference : str | None
        Type annotation used in the declaration file.
    request_timeout, retry_count : int | None
        Per-endpoint overrides of the global timeout (ms) and retry count.
    """

    url: str = ""
    fallback_data: Any = MISSING
    output_file: str | None = None
    inline_as_variable: bool | None = None
    variable_name: str | None = None
    request_options: RequestOptions | None = None
    save_as_file: bool | None = None
    type_reference: str | None = None
    production: bool | None = None
    request_timeout: int | None = None
    retry_count: int | None = None


@dataclass(frozen=True)
class GlobalOptions:
    """Build-wide defaults and callbacks for every endpoint."""

    production: bool = field(default_factory=is_production_build)
    inline_as_variable: bool = DEFAULT_INLINE_AS_VARIABLE
    variable_prefix: str = DEFAULT_VARIABLE_PREFIX
    save_as_file: bool = DEFAULT_SAVE_AS_FILE
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_MS
    retry_count: int = DEFAULT_RETRY_COUNT
    output_path: str = DEFAULT_OUTPUT_PATH
    emit_declaration_file: bool = DEFAULT_EMIT_DECLARATION_FILE
    declaration_file_path: str = DEFAULT_DECLARATION_FILE_PATH
    default_type: str = DEFAULT_TYPE
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE
    on_success: SuccessCallback | None = None
    on_error: ErrorCallback | None = None


@dataclass(frozen=True)
class ResolvedEndpoint:
    """An endpoint with every optional field resolved against the globals."""

    index: int
    url: str
    fallback_data: Any
    output_file: str | None
    inline_as_variable: bool
    variable_name: str
    request_options: RequestOptions
    save_as_file: bool
    type_reference: str | None
    production: bool
    request_timeout: int
    retry_count: int
    output_path: str

    @property
    def key(self) -> EndpointKey:
        """Identity of the endpoint inside one build."""
        return (self.url, self.variable_name)


@dataclass(frozen=True)
class FetchSuccess:
    data: Any
    attempts: int


@dataclass(frozen=True)
class FetchFailure:
    error: AppError
    attempts: int


FetchOutcome = Union[FetchSuccess, FetchFailure]


class Provenance(str, enum.Enum):
    FETCHED = "fetched"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FinalData:
    """Data settled for one endpoint together with where it came from."""

    data: Any
    provenance: Provenance
    attempts: int = 0
    error: AppError | None = None


class BuildPhase(str, enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class BuildState:
    """Results of exactly one build invocation.

    The orchestrator is the only writer: it records one ``FinalData`` per
    endpoint, then marks the state ready. Readers (the inline injector) await
    ``wait_until_ready`` and treat the state as read-only afterwards.
    """

    def __init__(self) -> None:
        self.phase: BuildPhase = BuildPhase.IDLE
        self.endpoints: tuple[ResolvedEndpoint, ...] = ()
        self.artifacts: dict[EndpointKey, Path] = {}
        self.declaration_path: Path | None = None
        self._results: dict[EndpointKey, FinalData] = {}
        self._ready = asyncio.Event()

    def record(self, endpoint: ResolvedEndpoint, final: FinalData) -> None:
        """Store the settled data for ``endpoint``; each endpoint is written once."""
        if self._ready.is_set():
            raise RuntimeError("BuildState is read-only once the build is ready")
        if endpoint.key in self._results:
            raise RuntimeError(f"FinalData already recorded for {endpoint.key!r}")
        self._results[endpoint.key] = final

    def mark_ready(self) -> None:
        self._ready.set()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_until_ready(self) -> BuildState:
        await self._ready.wait()
        return self

    def get(self, endpoint: ResolvedEndpoint) -> FinalData | None:
        return self._results.get(endpoint.key)

    def by_variable(self, variable_name: str) -> FinalData | None:
        """Return the entry whose endpoint is inlined as ``variable_name``."""
        for endpoint in self.endpoints:
            if endpoint.variable_name == variable_name:
                return self._results.get(endpoint.key)
        return None

    def results(self) -> list[tuple[ResolvedEndpoint, FinalData]]:
        """Return recorded entries in endpoint configuration order."""
        return [
            (endpoint, self._results[endpoint.key])
            for endpoint in self.endpoints
            if endpoint.key in self._results
        ]

    def __len__(self) -> int:
        return len(self._results)
