"""Inline injector: assign build-time data to globals in generated HTML.

The injector is tapped on the HTML stage's ``before_emit`` hook. It waits
until the orchestrator's build state is ready, so the order in which the host
fires its hooks cannot leak fallback data into a production page. It then
inserts one ``<script>`` per inlined endpoint, in configuration order,
immediately before the closing ``</head>`` marker.

Examples
--------
>>> inject_scripts("<html><head></head></html>", ['<script>x</script>'])
'<html><head><script>x</script>\\n</head></html>'
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from api_inliner.config import HEAD_CLOSE_MARKER

from .models import BuildState, ResolvedEndpoint

logger = logging.getLogger(__name__)

_HEAD_CLOSE_RE = re.compile(re.escape(HEAD_CLOSE_MARKER), re.IGNORECASE)

# Characters that would end the script element or break older JS parsers.
_SCRIPT_ESCAPES = {
    "</": "<\\/",
    "<!--": "\\u003C!--",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def serialize_for_script(data: Any) -> str:
    """Serialize ``data`` as JSON that is safe inside a ``<script>`` element."""
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _SCRIPT_ESCAPES.items():
        text = text.replace(raw, escaped)
    return text


def build_script_tag(variable_name: str, data: Any) -> str:
    """Return the script element assigning ``data`` to ``window[variable_name]``."""
    return (
        f"<script>window[{json.dumps(variable_name)}] = "
        f"{serialize_for_script(data)};</script>"
    )


def build_script_tags(
    endpoints: Sequence[ResolvedEndpoint], state: BuildState | None
) -> list[str]:
    """Build script tags for every inlining-enabled endpoint, in order.

    Endpoints without a recorded entry in ``state`` contribute their fallback
    data.
    """
    tags: list[str] = []
    for endpoint in endpoints:
        if not endpoint.inline_as_variable:
            continue
        final = state.get(endpoint) if state is not None else None
        data = final.data if final is not None else endpoint.fallback_data
        if final is None:
            logger.warning(
                "No resolved data for %s yet - inlining fallback data",
                endpoint.variable_name,
            )
        tags.append(build_script_tag(endpoint.variable_name, data))
    return tags


def inject_scripts(html: str, tags: Sequence[str]) -> str:
    """Insert ``tags`` right before the first closing head marker of ``html``.

    Markup without a closing head marker is returned unchanged.
    """
    if not tags:
        return html
    match = _HEAD_CLOSE_RE.search(html)
    if match is None:
        logger.warning("No %s marker found; skipping data inlining", HEAD_CLOSE_MARKER)
        return html
    block = "\n".join(tags) + "\n"
    return html[: match.start()] + block + html[match.start() :]


class InlineInjector:
    """``before_emit`` hook callback that inlines resolved endpoint data.

    Parameters
    ----------
    wait_for_state : Callable[[], Awaitable[BuildState | None]]
        Coroutine function returning the build state once it is ready, or
        ``None`` when no build has been started.
    """

    def __init__(
        self, wait_for_state: Callable[[], Awaitable[BuildState | None]]
    ) -> None:
        self.wait_for_state = wait_for_state

    async def __call__(self, page: Any) -> None:
        """Rewrite ``page.html`` in place."""
        state = await self.wait_for_state()
        endpoints = state.endpoints if state is not None else ()
        tags = build_script_tags(endpoints, state)
        if not tags:
            return
        page.html = inject_scripts(page.html, tags)
        logger.info(
            "Inlined %d global(s) into %s", len(tags), getattr(page, "name", "page")
        )
