"""Run a static-site build with plugins attached to its lifecycle hooks.

This module provides a headless runner that copies HTML page templates into
the build output directory. Plugins tap the build's hooks through their
``apply(hooks, output_dir)`` method; the runner fires ``before_run`` (or
``watch_run`` for a watch-mode rebuild), passes every page through
``before_emit``, writes it, and finally fires ``after_emit``.

Usage Examples
--------------
Typical programmatic usage::

    import asyncio
    from pathlib import Path
    from api_inliner.pipeline.site_builder.runner import run_build

    report = asyncio.run(run_build(Path("pages"), Path("dist"), [inliner]))
    assert report.failed == []

"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .hooks import BuildHooks, HtmlPage
from .renderer import find_html_templates, write_html_output

logger = logging.getLogger(__name__)


class BuildPlugin(Protocol):
    def apply(self, hooks: BuildHooks, output_dir: Path) -> Any: ...


@dataclass
class BuildReport:
    """Pages written (and failed) during one build."""

    written: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)


async def run_build(
    pages_dir: Path,
    output_dir: Path,
    plugins: Iterable[BuildPlugin],
    *,
    watch: bool = False,
    hooks: BuildHooks | None = None,
) -> BuildReport:
    """Generate the site from ``pages_dir`` into ``output_dir``.

    Parameters
    ----------
    pages_dir : pathlib.Path
        Directory holding ``*.html`` page templates.
    output_dir : pathlib.Path
        Destination directory; pages keep their path relative to
        ``pages_dir``.
    plugins : Iterable[BuildPlugin]
        Objects whose ``apply`` taps the build hooks.
    watch : bool, optional
        Fire ``watch_run`` instead of ``before_run``.
    hooks : BuildHooks | None, optional
        Pre-built hooks, for callers that tap extra callbacks.

    Returns
    -------
    BuildReport
        Written and failed page paths.

    Raises
    ------
    Exception
        Whatever a ``before_run``/``watch_run`` tap raises (for the inliner,
        ``ConfigurationError``) aborts the build before any page is written.
    """
    pages_dir = Path(pages_dir)
    output_dir = Path(output_dir)
    hooks = hooks if hooks is not None else BuildHooks()
    for plugin in plugins:
        plugin.apply(hooks, output_dir)

    if watch:
        await hooks.watch_run.call()
    else:
        await hooks.before_run.call()

    report = BuildReport()
    templates = find_html_templates(pages_dir)
    if not templates:
        logger.warning("No HTML templates found in %s", pages_dir.resolve())
    for template in templates:
        page = HtmlPage(
            name=template.relative_to(pages_dir).as_posix(),
            html=template.read_text(encoding="utf-8"),
        )
        await hooks.before_emit.call(page)
        target = output_dir / page.name
        if write_html_output(page.html, target):
            report.written.append(target)
        else:
            report.failed.append(target)

    await hooks.after_emit.call()
    logger.info(
        "Site build finished: %d page(s) written, %d failed",
        len(report.written),
        len(report.failed),
    )
    return report


__all__ = ["BuildPlugin", "BuildReport", "run_build"]
