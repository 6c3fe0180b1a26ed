"""Seek index creation for video sources."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from subprep.errors import IndexingError
from subprep.models import StepStatus

logger = logging.getLogger(__name__)

INDEX_SUFFIX = ".ffindex"


def index_path(video: Path) -> Path:
    """Return where the indexer writes the index for *video* (``<name>.ffindex``)."""
    return video.with_name(video.name + INDEX_SUFFIX)


def build_index(video: Path, tool: str = "ffmsindex") -> StepStatus:
    """Build the seek index for *video* unless it already exists.

    Returns
    -------
    StepStatus
        ``EXISTS`` when the index file is already present, otherwise
        ``SUCCESS``.

    Raises
    ------
    IndexingError
        If the indexer is not installed or fails.
    """
    target = index_path(video)
    if target.exists():
        logger.debug("%s: index already present", video.name)
        return StepStatus.EXISTS

    cmd = [tool, str(video), str(target)]
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise IndexingError(video, f"{tool} not found (is it installed and in PATH?)") from exc
    except subprocess.CalledProcessError as exc:
        target.unlink(missing_ok=True)
        raise IndexingError(video, f"{tool} failed: {(exc.stderr or '').strip()[-300:]}") from exc

    return StepStatus.SUCCESS
