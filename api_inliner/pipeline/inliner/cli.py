"""CLI entrypoint and logging/argument utilities for the inliner build.

This module implements the command-line interface that runs one static-site
build with the API inliner attached: argument parsing, logging setup,
configuration loading and a summary table of every endpoint's outcome. All
build logic is delegated to :class:`ApiInliner` and
:func:`api_inliner.pipeline.site_builder.run_build`.

Exit codes: ``0`` when the build finished (fallback data included), ``1``
when some page could not be written, ``2`` on a configuration error and
``130`` when interrupted.

See Also
--------
api_inliner.pipeline.inliner.orchestrator
    Core :class:`ApiInliner` attached to the build.
api_inliner.pipeline.inliner.settings
    Environment and ``api-inliner.json`` loading.

Examples
--------
CLI usage:

>>> # In shell
>>> python -m api_inliner.pipeline.inliner.cli --config api-inliner.json --pages pages --output dist --mode production
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.table import Table

from api_inliner.config import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PAGES_DIR,
    DEVELOPMENT_MODE,
    LOG_DIR,
    LOG_FILENAME_BUILD,
    LOG_FORMAT,
    PRODUCTION_MODE,
)
from api_inliner.exceptions import ConfigurationError
from api_inliner.pipeline.site_builder import run_build

from .models import BuildState
from .orchestrator import ApiInliner
from .settings import InlinerSettings, load_config_file

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO", enable_file: bool = True) -> None:
    r"""Configure logging output for the inliner CLI.

    Sets up a console handler (always) and optionally a file handler in
    ``LOG_DIR`` using ``LOG_FORMAT`` from :mod:`api_inliner.config`. Existing
    root handlers are replaced. A file handler that cannot be created is
    reported on the console and skipped.

    Parameters
    ----------
    level : str, optional
        Logging level name, e.g. "DEBUG" or "WARNING". Defaults to "INFO".
    enable_file : bool, optional
        Whether to add a file handler. Defaults to True.

    Examples
    --------
    >>> configure_logging("DEBUG", enable_file=False)
    """
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_error: OSError | None = None
    if enable_file:
        try:
            LOG_DIR.mkdir(exist_ok=True)
            handlers.insert(
                0, logging.FileHandler(LOG_DIR / LOG_FILENAME_BUILD, mode="a")
            )
        except OSError as err:
            file_error = err
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    if file_error is not None:
        logger.warning("File logging disabled: %s", file_error)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the inliner build.

    Returns
    -------
    argparse.Namespace
        Parsed arguments with attributes ``config``, ``pages``, ``output``,
        ``mode`` and ``log_level``.
    """
    parser = argparse.ArgumentParser(
        description="Fetch API data at build time and inline it into a static site."
    )
    parser.add_argument("-c", "--config", type=Path, default=Path(DEFAULT_CONFIG_FILENAME))
    parser.add_argument("-p", "--pages", type=Path, default=DEFAULT_PAGES_DIR)
    parser.add_argument("-o", "--output", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument(
        "--mode",
        choices=(PRODUCTION_MODE, DEVELOPMENT_MODE),
        default=None,
        help="Override the build mode from the environment",
    )
    parser.add_argument("--log-level", type=str, default=None)
    return parser.parse_args(argv)


def render_summary(state: BuildState) -> Table:
    """Build a Rich table describing every endpoint's outcome."""
    table = Table(title="API inliner", show_header=True, header_style="bold blue")
    table.add_column("Endpoint", style="bold")
    table.add_column("Global")
    table.add_column("Source")
    table.add_column("Attempts", justify="right")
    table.add_column("Artifact")
    for endpoint, final in state.results():
        artifact = state.artifacts.get(endpoint.key)
        table.add_row(
            endpoint.url,
            endpoint.variable_name if endpoint.inline_as_variable else "-",
            final.provenance.value,
            str(final.attempts),
            str(artifact) if artifact is not None else "-",
        )
    return table


def main(argv: list[str] | None = None) -> int:
    """Run the inliner CLI entrypoint.

    Returns
    -------
    int
        Process exit code.
    """
    args = parse_arguments(argv)
    try:
        settings = InlinerSettings()
    except ConfigurationError as err:
        configure_logging("INFO", enable_file=False)
        logger.error("Configuration error: %s", err)
        return 2

    configure_logging(
        args.log_level or settings.log_level,
        enable_file=not os.environ.get("DISABLE_FILE_LOGS"),
    )
    logger.info("Starting API inliner build")

    try:
        endpoints, options = load_config_file(args.config, settings)
        if args.mode is not None:
            options = replace(options, production=args.mode == PRODUCTION_MODE)
        inliner = ApiInliner(endpoints, options)
        report = asyncio.run(run_build(args.pages, args.output, [inliner]))
    except ConfigurationError as err:
        logger.error("Configuration error: %s", err)
        return 2
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    if inliner.state is not None:
        Console().print(render_summary(inliner.state))
    return 1 if report.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())


__all__ = ["configure_logging", "main", "parse_arguments", "render_summary"]
