"""Lifecycle hooks exposed by the site builder to its plugins.

A hook holds an ordered list of named taps. Calling the hook awaits each tap
in registration order; a tap may be a plain function or a coroutine
function. Completion of a tap is the return of its coroutine.

Examples
--------
>>> hooks = BuildHooks()
>>> hooks.before_emit.tap("Example", lambda page: None)
>>> hooks.before_emit.names
['Example']
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class HtmlPage:
    """A generated HTML document that ``before_emit`` taps may rewrite."""

    name: str
    html: str


class AsyncHook:
    """An ordered series of callbacks fired by the site builder."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._taps: list[tuple[str, Callable[..., Any]]] = []

    def tap(self, plugin_name: str, callback: Callable[..., Any]) -> None:
        """Register ``callback`` under ``plugin_name``."""
        self._taps.append((plugin_name, callback))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._taps]

    async def call(self, *args: Any) -> None:
        """Run every tap in registration order, awaiting coroutine results."""
        for plugin_name, callback in self._taps:
            logger.debug("Hook %s -> %s", self.name, plugin_name)
            result = callback(*args)
            if inspect.isawaitable(result):
                await result


@dataclass
class BuildHooks:
    """The hook points a build exposes.

    Attributes
    ----------
    before_run : AsyncHook
        Fired once per build before any page is generated.
    watch_run : AsyncHook
        Fired instead of ``before_run`` on watch-mode rebuilds.
    before_emit : AsyncHook
        Fired once per generated page with a mutable ``HtmlPage``.
    after_emit : AsyncHook
        Fired once after every page has been written.
    """

    before_run: AsyncHook = field(default_factory=lambda: AsyncHook("before_run"))
    watch_run: AsyncHook = field(default_factory=lambda: AsyncHook("watch_run"))
    before_emit: AsyncHook = field(default_factory=lambda: AsyncHook("before_emit"))
    after_emit: AsyncHook = field(default_factory=lambda: AsyncHook("after_emit"))
