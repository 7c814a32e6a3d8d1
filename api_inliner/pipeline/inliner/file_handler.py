"""File handling utilities for build artifacts.

This module knows how to place JSON artifacts and text files under the build
output directory. It performs only file I/O and does not contact external
services. Every write goes through a temporary file in the target directory
followed by ``os.replace`` so readers never observe a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from api_inliner.config import ARTIFACT_FILE_MODE
from api_inliner.exceptions import WriteError

from .models import FinalData, ResolvedEndpoint

logger = logging.getLogger(__name__)


def resolve_output_file(output_dir: Path, *parts: str) -> Path:
    """Join ``parts`` onto ``output_dir`` and refuse paths that leave it.

    Parameters
    ----------
    output_dir : Path
        Build output directory.
    *parts : str
        Relative path segments (e.g. the global output path and the file).

    Returns
    -------
    Path
        Absolute target path inside ``output_dir``.

    Raises
    ------
    WriteError
        If the joined path resolves outside ``output_dir``.
    """
    root = Path(output_dir).resolve()
    target = root.joinpath(*(p for p in parts if p)).resolve()
    if target != root and root not in target.parents:
        raise WriteError(
            f"Refusing to write outside the output directory: {target}",
            context={"output_dir": str(root), "target": str(target)},
        )
    return target


def write_text_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` atomically, creating parent directories.

    The file is created with ``ARTIFACT_FILE_MODE`` permissions.

    Raises
    ------
    WriteError
        If the directory cannot be created or the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            # mkstemp creates owner-only (0600) files.
            os.chmod(tmp_name, ARTIFACT_FILE_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as err:
        raise WriteError(
            f"Failed to write {path}: {err}", context={"path": str(path)}
        ) from err


def serialize_json(data: Any) -> str:
    """Serialize ``data`` as compact JSON text.

    Raises
    ------
    WriteError
        If ``data`` is not JSON-serializable.
    """
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as err:
        raise WriteError(f"Data is not JSON-serializable: {err}") from err


def write_artifact(
    endpoint: ResolvedEndpoint, final: FinalData, output_dir: Path
) -> Path | None:
    """Persist an endpoint's settled data as a JSON file.

    Parameters
    ----------
    endpoint : ResolvedEndpoint
        Endpoint whose ``save_as_file``, ``output_path`` and ``output_file``
        decide whether and where to write.
    final : FinalData
        Settled data; only ``final.data`` is written.
    output_dir : Path
        Build output directory.

    Returns
    -------
    Path | None
        The written file, or ``None`` when the endpoint does not save files.

    Raises
    ------
    WriteError
        If serialization or the write fails; nothing is written in that case.
    """
    if not endpoint.save_as_file or not endpoint.output_file:
        return None
    target = resolve_output_file(output_dir, endpoint.output_path, endpoint.output_file)
    try:
        payload = serialize_json(final.data)
    except WriteError as err:
        err.context.update({"url": endpoint.url, "path": str(target)})
        raise
    write_text_atomic(target, payload)
    logger.info("Data written to %s", target)
    return target
