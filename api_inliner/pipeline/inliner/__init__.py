"""The inliner package fetches remote API data at build time and inlines it.

This package is the core of the project. It resolves endpoint
configuration, fetches every endpoint concurrently with timeout and retry,
substitutes fallback data on failure, writes JSON artifacts and a
TypeScript declaration file, and injects ``<script>`` assignments into the
HTML emitted by the site builder.

Modules exported
----------------
ApiInliner
    Orchestrates one build and attaches to the site builder's hooks.
EndpointConfig, GlobalOptions, RequestOptions
    Configuration records.
BuildState, FinalData, Provenance, BuildPhase
    Per-build results.
resolve_endpoints
    Pure merge of endpoint settings over global defaults.
InlinerSettings, load_config_file
    Environment and ``api-inliner.json`` loading.

Examples
--------
>>> from api_inliner.pipeline.inliner import ApiInliner, EndpointConfig, GlobalOptions
>>> inliner = ApiInliner(
...     [EndpointConfig(url="https://api.example.com/products",
...                     fallback_data={"products": []},
...                     variable_name="EXAMPLE_PRODUCTS",
...                     output_file="products.json")],
...     GlobalOptions(production=True),
... )
>>> # Attach to a build: run_build(pages_dir, output_dir, [inliner])
"""

from __future__ import annotations

from .client import EndpointClient
from .models import (
    MISSING,
    BuildPhase,
    BuildState,
    EndpointConfig,
    FetchFailure,
    FetchSuccess,
    FinalData,
    GlobalOptions,
    Provenance,
    RequestOptions,
    ResolvedEndpoint,
)
from .orchestrator import ApiInliner
from .resolver import resolve_endpoints
from .settings import InlinerSettings, load_config_file

__all__ = [
    "MISSING",
    "ApiInliner",
    "BuildPhase",
    "BuildState",
    "EndpointClient",
    "EndpointConfig",
    "FetchFailure",
    "FetchSuccess",
    "FinalData",
    "GlobalOptions",
    "InlinerSettings",
    "Provenance",
    "RequestOptions",
    "ResolvedEndpoint",
    "load_config_file",
    "resolve_endpoints",
]
