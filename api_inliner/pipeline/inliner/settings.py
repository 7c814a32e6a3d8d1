"""Configuration and environment loader for the inliner.

This module provides ``InlinerSettings``, which reads environment variables
(and an optional project ``.env`` file) into build-wide defaults, and
``load_config_file``, which reads an ``api-inliner.json`` file into
``EndpointConfig`` records and ``GlobalOptions``.

The JSON file uses the camelCase keys of the webpack plugin configuration
(``inlineAsVariable``, ``fallbackData`` ...). Unknown keys are ignored;
values of the wrong type raise ``ConfigurationError``. Values set in the file
take precedence over the environment, which takes precedence over the
defaults in ``api_inliner.config``.

Examples
--------
>>> from api_inliner.pipeline.inliner.settings import InlinerSettings
>>> settings = InlinerSettings()
>>> assert settings.retry_count >= 0
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

import api_inliner.config as _project_config
from api_inliner.config import (
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEFAULT_REQUESTS_PER_MINUTE,
    DEFAULT_RETRY_COUNT,
    DEVELOPMENT_MODE,
    ENV_BUILD_MODE,
    ENV_LOG_LEVEL,
    ENV_MAX_CONCURRENT_REQUESTS,
    ENV_REQUEST_TIMEOUT,
    ENV_REQUESTS_PER_MINUTE,
    ENV_RETRY_COUNT,
    PRODUCTION_MODE,
)
from api_inliner.exceptions import ConfigurationError

from .models import EndpointConfig, GlobalOptions, RequestOptions

# camelCase file key -> (attribute name, accepted types)
_OPTION_FIELDS: dict[str, tuple[str, tuple[type, ...]]] = {
    "production": ("production", (bool,)),
    "inlineAsVariable": ("inline_as_variable", (bool,)),
    "variablePrefix": ("variable_prefix", (str,)),
    "saveAsFile": ("save_as_file", (bool,)),
    "requestTimeout": ("request_timeout", (int,)),
    "retryCount": ("retry_count", (int,)),
    "outputPath": ("output_path", (str,)),
    "emitDeclarationFile": ("emit_declaration_file", (bool,)),
    "declarationFilePath": ("declaration_file_path", (str,)),
    "defaultType": ("default_type", (str,)),
    "maxConcurrentRequests": ("max_concurrent_requests", (int,)),
    "requestsPerMinute": ("requests_per_minute", (int,)),
}

_ENDPOINT_FIELDS: dict[str, tuple[str, tuple[type, ...]]] = {
    "url": ("url", (str,)),
    "outputFile": ("output_file", (str,)),
    "inlineAsVariable": ("inline_as_variable", (bool,)),
    "variableName": ("variable_name", (str,)),
    "saveAsFile": ("save_as_file", (bool,)),
    "typeReference": ("type_reference", (str,)),
    "production": ("production", (bool,)),
    "requestTimeout": ("request_timeout", (int,)),
    "retryCount": ("retry_count", (int,)),
}


class InlinerSettings:
    r"""Environment-derived defaults for the inliner.

    Attributes
    ----------
    production : bool
        ``True`` when ``API_INLINER_MODE`` is ``production``.
    request_timeout : int
        Default request timeout in milliseconds.
    retry_count : int
        Default number of retries after a failed attempt.
    max_concurrent_requests : int
        Maximum endpoints fetched at the same time.
    requests_per_minute : int
        Request rate limit shared by all endpoints of a build.
    log_level : str
        Logging level name for the CLI.

    Notes
    -----
    Instantiate once at process start. A ``.env`` file in the project root is
    loaded first when present.
    """

    def __init__(self, env_file: Path | None = None) -> None:
        r"""Read settings from the environment and an optional ``.env`` file.

        Parameters
        ----------
        env_file : Path | None, optional
            Explicit ``.env`` path. Defaults to ``PROJECT_ROOT / ".env"``.

        Raises
        ------
        ConfigurationError
            If a numeric variable cannot be parsed or the mode is unknown.
        """
        # Resolve the project root at call time so tests can monkeypatch
        # ``api_inliner.config.PROJECT_ROOT``.
        env_path = env_file or Path(_project_config.PROJECT_ROOT) / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)

        mode = os.getenv(ENV_BUILD_MODE, DEVELOPMENT_MODE).strip().lower()
        if mode not in (PRODUCTION_MODE, DEVELOPMENT_MODE):
            raise ConfigurationError(
                f"{ENV_BUILD_MODE} must be '{PRODUCTION_MODE}' or "
                f"'{DEVELOPMENT_MODE}', got {mode!r}"
            )
        self.production: bool = mode == PRODUCTION_MODE
        self.request_timeout = self._int_env(ENV_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT_MS)
        self.retry_count = self._int_env(ENV_RETRY_COUNT, DEFAULT_RETRY_COUNT)
        self.max_concurrent_requests = self._int_env(
            ENV_MAX_CONCURRENT_REQUESTS, DEFAULT_MAX_CONCURRENT_REQUESTS
        )
        self.requests_per_minute = self._int_env(
            ENV_REQUESTS_PER_MINUTE, DEFAULT_REQUESTS_PER_MINUTE
        )
        self.log_level: str = os.getenv(ENV_LOG_LEVEL, "INFO")

    @staticmethod
    def _int_env(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw)
        except ValueError as err:
            raise ConfigurationError(
                f"Environment variable {name} must be an integer, got {raw!r}"
            ) from err

    def global_options(self) -> GlobalOptions:
        """Return ``GlobalOptions`` populated from these settings."""
        return GlobalOptions(
            production=self.production,
            request_timeout=self.request_timeout,
            retry_count=self.retry_count,
            max_concurrent_requests=self.max_concurrent_requests,
            requests_per_minute=self.requests_per_minute,
        )


def _check_type(value: Any, types: tuple[type, ...], where: str) -> Any:
    # bool is an int subclass; reject it where an int is expected.
    if isinstance(value, bool) and bool not in types:
        raise ConfigurationError(f"{where} must be {types[0].__name__}, got bool")
    if not isinstance(value, types):
        raise ConfigurationError(
            f"{where} must be {types[0].__name__}, got {type(value).__name__}"
        )
    return value


def _request_options_from_mapping(raw: Any, where: str) -> RequestOptions:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{where} must be an object")
    method = _check_type(raw.get("method", "GET"), (str,), f"{where}.method")
    headers = raw.get("headers", {})
    if not isinstance(headers, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
    ):
        raise ConfigurationError(f"{where}.headers must map strings to strings")
    return RequestOptions(method=method, headers=dict(headers), body=raw.get("body"))


def endpoint_from_mapping(raw: Mapping[str, Any], index: int = 0) -> EndpointConfig:
    """Build an ``EndpointConfig`` from a camelCase mapping.

    Raises
    ------
    ConfigurationError
        If ``raw`` is not a mapping or a known field has the wrong type.
    """
    where = f"endpoints[{index}]"
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{where} must be an object")
    kwargs: dict[str, Any] = {}
    for key, (attr, types) in _ENDPOINT_FIELDS.items():
        if key in raw and raw[key] is not None:
            kwargs[attr] = _check_type(raw[key], types, f"{where}.{key}")
    if "fallbackData" in raw:
        kwargs["fallback_data"] = raw["fallbackData"]
    if raw.get("requestOptions") is not None:
        kwargs["request_options"] = _request_options_from_mapping(
            raw["requestOptions"], f"{where}.requestOptions"
        )
    return EndpointConfig(**kwargs)


def options_from_mapping(
    raw: Mapping[str, Any], base: GlobalOptions | None = None
) -> GlobalOptions:
    """Overlay camelCase option keys from ``raw`` onto ``base``."""
    overrides: dict[str, Any] = {}
    for key, (attr, types) in _OPTION_FIELDS.items():
        if key in raw and raw[key] is not None:
            overrides[attr] = _check_type(raw[key], types, key)
    return replace(base if base is not None else GlobalOptions(), **overrides)


def load_config_file(
    path: Path, settings: InlinerSettings | None = None
) -> tuple[list[EndpointConfig], GlobalOptions]:
    """Load an ``api-inliner.json`` configuration file.

    Parameters
    ----------
    path : Path
        JSON file with an ``endpoints`` list (or single object) and optional
        global options.
    settings : InlinerSettings | None, optional
        Environment defaults underneath the file's options.

    Returns
    -------
    tuple[list[EndpointConfig], GlobalOptions]
        Endpoints in file order and the merged global options.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid JSON, or has invalid fields.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as err:
        raise ConfigurationError(
            f"Configuration file not found: {path}", context={"path": str(path)}
        ) from err
    except json.JSONDecodeError as err:
        raise ConfigurationError(
            f"Configuration file {path} is not valid JSON: {err}",
            context={"path": str(path)},
        ) from err
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Configuration file {path} must contain an object")

    raw_endpoints = raw.get("endpoints", [])
    if isinstance(raw_endpoints, Mapping):
        raw_endpoints = [raw_endpoints]
    if not isinstance(raw_endpoints, list):
        raise ConfigurationError("'endpoints' must be an object or a list of objects")

    base = settings.global_options() if settings is not None else None
    endpoints = [
        endpoint_from_mapping(item, index) for index, item in enumerate(raw_endpoints)
    ]
    return endpoints, options_from_mapping(raw, base)
