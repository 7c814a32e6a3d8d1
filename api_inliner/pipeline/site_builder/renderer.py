"""Page rendering utilities for the site builder.

This module finds HTML page templates and writes generated pages into the
build output directory. It is agnostic to plugins: rewriting of the markup
happens through the ``before_emit`` hook before ``write_html_output`` runs.

Example
-------
>>> from pathlib import Path
>>> from api_inliner.pipeline.site_builder import renderer
>>> pages = renderer.find_html_templates(Path("pages"))
>>> renderer.write_html_output("<html></html>", Path("/tmp/out/index.html"))
True
"""

from __future__ import annotations

import logging
from pathlib import Path

from api_inliner.config import HTML_TEMPLATE_GLOB

logger = logging.getLogger(__name__)


def find_html_templates(pages_dir: Path) -> list[Path]:
    """Find HTML page templates below ``pages_dir``.

    Parameters
    ----------
    pages_dir : Path
        Directory searched recursively for ``*.html`` files.

    Returns
    -------
    list[Path]
        Sorted template paths; empty when the directory does not exist.
    """
    pages_dir = Path(pages_dir)
    if not pages_dir.is_dir():
        return []
    return sorted(p for p in pages_dir.rglob(HTML_TEMPLATE_GLOB) if p.is_file())


def write_html_output(html_content: str, output_file: Path) -> bool:
    r"""Write the provided HTML content to disk, creating parent directories.

    Parameters
    ----------
    html_content : str
        Full HTML string to be written.
    output_file : Path
        Output file path.

    Returns
    -------
    bool
        ``True`` when the file was written, ``False`` on an I/O error (which
        is logged).

    Notes
    -----
    Output encoding is UTF-8.

    Examples
    --------
    >>> import tempfile
    >>> from pathlib import Path
    >>> file_path = Path(tempfile.gettempdir()) / "test_site.html"
    >>> write_html_output("<html><body>Test</body></html>", file_path)
    True
    """
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(html_content, encoding="utf-8")
    except OSError:
        logger.exception("Failed to write %s", output_file)
        return False
    return True
