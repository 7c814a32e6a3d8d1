"""Endpoint resolution: merge per-endpoint settings over global defaults.

``resolve_endpoints`` is a pure function. It normalizes a single endpoint or
an ordered sequence of them into ``ResolvedEndpoint`` records, where every
field an endpoint leaves as ``None`` takes the ``GlobalOptions`` value. All
configuration problems are detected here, before any network I/O, and raised
as ``ConfigurationError``.

Examples
--------
>>> from api_inliner.pipeline.inliner.models import EndpointConfig, GlobalOptions
>>> [ep] = resolve_endpoints(
...     EndpointConfig(url="https://x/a", fallback_data={"v": 1}),
...     GlobalOptions(production=False),
... )
>>> ep.variable_name
'API_DATA_0'
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlparse

from api_inliner.exceptions import ConfigurationError

from .models import (
    MISSING,
    EndpointConfig,
    GlobalOptions,
    RequestOptions,
    ResolvedEndpoint,
)

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_int(value: Any, name: str, url: str, index: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"{name} for {url} must be an integer, got {value!r}",
            context={"index": index, "url": url, name: repr(value)},
        )
    return value


def _validate_limits(options: GlobalOptions) -> None:
    for name in ("max_concurrent_requests", "requests_per_minute"):
        value = getattr(options, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigurationError(
                f"{name} must be a positive integer, got {value!r}",
                context={"option": name},
            )


def _validate_url(url: Any, index: int) -> str:
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError(
            f"Endpoint #{index} is missing the required 'url' field",
            context={"index": index},
        )
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"Endpoint #{index} url must be an absolute http(s) URL: {url!r}",
            context={"index": index, "url": url},
        )
    return url.strip()


def resolve_endpoint(
    endpoint: EndpointConfig, options: GlobalOptions, index: int
) -> ResolvedEndpoint:
    """Merge one endpoint over the global options.

    Parameters
    ----------
    endpoint : EndpointConfig
        The user-supplied endpoint.
    options : GlobalOptions
        Build-wide defaults.
    index : int
        Position of the endpoint in configuration order, used for
        auto-generated variable names.

    Returns
    -------
    ResolvedEndpoint
        The immutable merged record.

    Raises
    ------
    ConfigurationError
        If ``url`` or ``fallback_data`` is missing, the URL is not absolute,
        the timeout or retry count is out of range, or an inlined variable
        name is not a valid identifier.
    """
    url = _validate_url(endpoint.url, index)
    if endpoint.fallback_data is MISSING:
        raise ConfigurationError(
            f"Endpoint {url} is missing the required 'fallback_data' field",
            context={"index": index, "url": url},
        )

    inline = bool(_pick(endpoint.inline_as_variable, options.inline_as_variable))
    variable_name = endpoint.variable_name or ""
    if inline and not variable_name:
        variable_name = f"{options.variable_prefix}_{index}"
    if inline and not _IDENTIFIER_RE.match(variable_name):
        raise ConfigurationError(
            f"Variable name {variable_name!r} for {url} is not a valid identifier",
            context={"index": index, "url": url, "variable_name": variable_name},
        )

    request_timeout = _as_int(
        _pick(endpoint.request_timeout, options.request_timeout),
        "request_timeout",
        url,
        index,
    )
    retry_count = _as_int(
        _pick(endpoint.retry_count, options.retry_count), "retry_count", url, index
    )
    if request_timeout <= 0:
        raise ConfigurationError(
            f"request_timeout for {url} must be positive, got {request_timeout}",
            context={"index": index, "url": url},
        )
    if retry_count < 0:
        raise ConfigurationError(
            f"retry_count for {url} must be non-negative, got {retry_count}",
            context={"index": index, "url": url},
        )

    return ResolvedEndpoint(
        index=index,
        url=url,
        fallback_data=endpoint.fallback_data,
        output_file=endpoint.output_file or None,
        inline_as_variable=inline,
        variable_name=variable_name,
        request_options=endpoint.request_options or RequestOptions(),
        save_as_file=bool(_pick(endpoint.save_as_file, options.save_as_file)),
        type_reference=endpoint.type_reference or None,
        production=bool(_pick(endpoint.production, options.production)),
        request_timeout=request_timeout,
        retry_count=retry_count,
        output_path=options.output_path,
    )


def _as_sequence(
    endpoints: EndpointConfig | Iterable[EndpointConfig],
) -> list[EndpointConfig]:
    if isinstance(endpoints, EndpointConfig):
        return [endpoints]
    if isinstance(endpoints, (str, bytes, Mapping)):
        raise ConfigurationError(
            "endpoints must be an EndpointConfig or a sequence of them",
            context={"type": type(endpoints).__name__},
        )
    items = list(endpoints)
    for index, item in enumerate(items):
        if not isinstance(item, EndpointConfig):
            raise ConfigurationError(
                f"Endpoint #{index} is a {type(item).__name__}, expected EndpointConfig",
                context={"index": index},
            )
    return items


def resolve_endpoints(
    endpoints: EndpointConfig | Iterable[EndpointConfig], options: GlobalOptions
) -> list[ResolvedEndpoint]:
    """Resolve an endpoint or an ordered sequence of endpoints.

    Parameters
    ----------
    endpoints : EndpointConfig | Iterable[EndpointConfig]
        One endpoint or an ordered sequence.
    options : GlobalOptions
        Build-wide defaults.

    Returns
    -------
    list[ResolvedEndpoint]
        Resolved endpoints in configuration order.

    Raises
    ------
    ConfigurationError
        On any invalid endpoint, on two inlined endpoints sharing a variable
        name, on two endpoints with the same ``(url, variable_name)``
        identity, or when ``max_concurrent_requests`` or
        ``requests_per_minute`` is below 1.
    """
    _validate_limits(options)
    resolved = [
        resolve_endpoint(endpoint, options, index)
        for index, endpoint in enumerate(_as_sequence(endpoints))
    ]

    inlined_names: dict[str, str] = {}
    identities: set[tuple[str, str]] = set()
    for endpoint in resolved:
        if endpoint.inline_as_variable:
            previous = inlined_names.get(endpoint.variable_name)
            if previous is not None:
                raise ConfigurationError(
                    f"Duplicate variable name {endpoint.variable_name!r} "
                    f"for {previous} and {endpoint.url}",
                    context={"variable_name": endpoint.variable_name},
                )
            inlined_names[endpoint.variable_name] = endpoint.url
        if endpoint.key in identities:
            raise ConfigurationError(
                f"Endpoint {endpoint.url} is configured more than once",
                context={"url": endpoint.url, "variable_name": endpoint.variable_name},
            )
        identities.add(endpoint.key)

    logger.debug("Resolved %d endpoint(s)", len(resolved))
    return resolved
