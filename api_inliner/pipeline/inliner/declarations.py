"""TypeScript declaration emitter for inlined globals.

Produces a module augmentation that adds one typed property to ``Window``
for every inlining-enabled endpoint. The output contains no timestamps, so
repeated emission for the same endpoints is byte-identical.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from api_inliner.config import DECLARATION_HEADER

from .file_handler import resolve_output_file, write_text_atomic
from .models import GlobalOptions, ResolvedEndpoint

logger = logging.getLogger(__name__)


def render_declarations(
    endpoints: Sequence[ResolvedEndpoint], default_type: str
) -> str:
    """Render the declaration text for ``endpoints``.

    Parameters
    ----------
    endpoints : Sequence[ResolvedEndpoint]
        Endpoints in configuration order; non-inlined ones are skipped.
    default_type : str
        Type used when an endpoint has no ``type_reference``.

    Returns
    -------
    str
        The declaration file content.

    Examples
    --------
    >>> print(render_declarations([], "any"))  # doctest: +ELLIPSIS
    /**
    ...
    declare global {
      interface Window {
      }
    }
    <BLANKLINE>
    export {}; // This file is a module
    <BLANKLINE>
    """
    lines = [DECLARATION_HEADER, "declare global {", "  interface Window {"]
    for endpoint in endpoints:
        if not endpoint.inline_as_variable:
            continue
        type_ref = endpoint.type_reference or default_type
        lines.append(f"    {endpoint.variable_name}: {type_ref};")
    lines += ["  }", "}", "", "export {}; // This file is a module", ""]
    return "\n".join(lines)


def emit_declarations(
    endpoints: Sequence[ResolvedEndpoint], output_dir: Path, options: GlobalOptions
) -> Path | None:
    """Write the declaration file when ``options.emit_declaration_file`` is set.

    Returns
    -------
    Path | None
        The written file, or ``None`` when emission is disabled or there are
        no endpoints.

    Raises
    ------
    WriteError
        If the file cannot be written.
    """
    if not options.emit_declaration_file:
        return None
    if not endpoints:
        logger.info("No endpoints to generate TypeScript declarations for")
        return None
    target = resolve_output_file(output_dir, options.declaration_file_path)
    write_text_atomic(target, render_declarations(endpoints, options.default_type))
    logger.info("TypeScript declarations generated at %s", target)
    return target
