"""Subtitle stream and attachment extraction with FFmpeg.

Stream copies run through ``FfmpegProcess`` so the user sees a percentage
progress bar.  Every step is idempotent: outputs that already exist are left
alone and reported as ``StepStatus.EXISTS``.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from better_ffmpeg_progress import FfmpegProcess
from better_ffmpeg_progress.exceptions import FfmpegProcessError

from subprep.errors import ExtractionError
from subprep.models import Attachment, StepStatus

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^\w.\- ]")


def extract_stream(source: Path, stream_index: int, destination: Path) -> StepStatus:
    """Copy stream *stream_index* of *source* into *destination*.

    Returns
    -------
    StepStatus
        ``EXISTS`` if a non-empty *destination* is already present,
        ``SUCCESS`` after a fresh extraction.

    Raises
    ------
    ExtractionError
        If FFmpeg fails or produces no output.  A partial output file is
        removed.
    """
    if destination.exists() and destination.stat().st_size > 0:
        return StepStatus.EXISTS

    destination.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        "ffmpeg", "-y",
        "-i", str(source),
        "-map", f"0:{stream_index}",
        "-c", "copy",
        str(destination),
    ]
    logger.debug("extracting stream %d: %s", stream_index, " ".join(cmd))

    try:
        process = FfmpegProcess(cmd)
        process.run()
    except FfmpegProcessError as exc:
        _remove_partial(destination)
        raise ExtractionError(source, f"Stream {stream_index}: {exc}") from exc

    # FFmpeg can exit 0 and still write nothing (e.g. unsupported codec copy)
    if not destination.exists() or destination.stat().st_size == 0:
        _remove_partial(destination)
        raise ExtractionError(source, f"Stream {stream_index} produced an empty file.")

    return StepStatus.SUCCESS


def extract_attachments(
    source: Path,
    attachments: list[Attachment],
    destination_dir: Path,
    fonts_only: bool = True,
) -> list[Path]:
    """Dump the attachments of *source* into *destination_dir*.

    Returns the paths of all selected attachments, whether freshly written or
    already present.

    Raises
    ------
    ExtractionError
        If FFmpeg is missing or fails to write an attachment.
    """
    selected = [a for a in attachments if a.is_font or not fonts_only]
    paths: list[Path] = []
    if not selected:
        return paths

    destination_dir.mkdir(parents=True, exist_ok=True)
    for attachment in selected:
        out_path = destination_dir / safe_filename(attachment.filename)
        paths.append(out_path)
        if out_path.exists():
            continue
        # -dump_attachment needs an output; a zero-length null output satisfies it.
        cmd = [
            "ffmpeg", "-y",
            f"-dump_attachment:{attachment.index}", str(out_path),
            "-i", str(source),
            "-t", "0", "-f", "null", "-",
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as exc:
            raise ExtractionError(source, "ffmpeg not found (is FFmpeg installed and in PATH?)") from exc
        if not out_path.exists():
            raise ExtractionError(
                source,
                f"Attachment '{attachment.filename}' was not written: {result.stderr.strip()[-300:]}",
            )

    logger.info("%s: %d attachment(s) in %s", source.name, len(paths), destination_dir)
    return paths


def safe_filename(name: str) -> str:
    """Strip path separators and odd characters from an attachment filename."""
    cleaned = _UNSAFE_CHARS_RE.sub("_", Path(name).name).strip()
    return cleaned or "attachment"


def _remove_partial(path: Path) -> None:
    """Delete *path* if it exists, silently ignoring any OS errors."""
    try:
        path.unlink()
    except OSError:
        pass
