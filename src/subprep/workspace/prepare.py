"""Per-directory comparison workspace preparation.

For every release in a directory:
  1. Probe the container (resolution, subtitle track, attachments)
  2. Build the seek index next to the video
  3. Extract the subtitle track into the workspace
  4. Extract font attachments into ``<workspace>/fonts``
  5. Render the playback script from the template
  6. Export typesetting bookmarks for ASS/SSA subtitles

Releases are independent: a failure is recorded in that release's
ReleaseReport and the batch continues.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional

from subprep.config import SubprepConfig
from subprep.errors import SubprepError
from subprep.ingestion.extract import extract_attachments, extract_stream
from subprep.ingestion.index import build_index
from subprep.ingestion.probe import probe_media
from subprep.models import MediaInfo, ReleaseReport, StepStatus
from subprep.typesetting import detect_typesetting
from subprep.workspace.script import ScriptValues, load_template, write_script

logger = logging.getLogger(__name__)

_GROUP_RE = re.compile(r"^\s*\[([^\]]+)\]")


def group_name(video: Path) -> str:
    """Return the release group from a ``[Group] Title.mkv`` name, else the stem."""
    m = _GROUP_RE.match(video.name)
    return m.group(1).strip() if m else video.stem


def find_videos(directory: Path, extensions: list[str]) -> list[Path]:
    exts = {e.lower() for e in extensions}
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in exts)


def target_resolution(infos: list[MediaInfo], target_height: Optional[int] = None) -> tuple[int, int]:
    """Pick the common output resolution for a batch.

    The height is *target_height* or the tallest video; the width follows the
    aspect ratio of the video with that height (the first one if none
    matches), rounded to an even number.
    """
    if not infos:
        raise ValueError("target_resolution() needs at least one video")
    tallest = max(infos, key=lambda i: i.height)
    height = target_height or tallest.height
    reference = next((i for i in infos if i.height == height), tallest)
    width = round(reference.width * height / reference.height / 2) * 2
    return width, height


def _setup_workspace(directory: Path, dirname: str) -> Path:
    """Create <directory>/<dirname>/fonts. Idempotent."""
    workspace = directory / dirname
    workspace.mkdir(exist_ok=True)
    (workspace / "fonts").mkdir(exist_ok=True)
    return workspace


def prepare_release(
    info: MediaInfo,
    workspace: Path,
    config: SubprepConfig,
    resolution: tuple[int, int],
    template: tuple[str, str],
) -> ReleaseReport:
    """Run steps 2-6 for one probed release. Raises SubprepError on failure."""
    settings = config.prepare
    video = info.path
    report = ReleaseReport(video=video, group=group_name(video))

    if settings.build_index:
        report.index = build_index(video, settings.index_tool)

    if info.subtitle is not None:
        subtitle_path = workspace / f"{video.stem}{info.subtitle.extension}"
        report.subtitle = extract_stream(video, info.subtitle.index, subtitle_path)
        report.subtitle_path = subtitle_path
    else:
        logger.warning("%s: no subtitle track", video.name)

    if settings.extract_fonts and info.attachments:
        fonts = extract_attachments(video, info.attachments, workspace / "fonts")
        report.font_count = len(fonts)
        report.fonts = StepStatus.SUCCESS if fonts else StepStatus.SKIPPED

    width, height = resolution
    values = ScriptValues(
        video_path=str(video),
        subtitle_path=str(report.subtitle_path or ""),
        group=report.group,
        target_width=width,
        target_height=height,
        upscale=info.height < height,
    )
    template_text, template_name = template
    report.script_path = write_script(
        template_text,
        workspace / f"{video.stem}{settings.script_extension}",
        values,
        template_name,
    )

    if settings.detect_typesetting and info.subtitle is not None and info.subtitle.is_ass:
        bookmarks_path = workspace / f"{video.stem}.bookmarks"
        entries = detect_typesetting(report.subtitle_path, bookmarks_path, config.detection)
        report.bookmarks_path = bookmarks_path
        report.bookmark_count = len(entries)

    return report


def prepare_directory(
    directory: Path,
    config: SubprepConfig,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> list[ReleaseReport]:
    """Prepare a comparison workspace for every release in *directory*.

    Args:
        directory: Folder holding the releases.
        config: Effective configuration.
        progress_callback: Called with (done, total) after each release.

    Returns:
        One ReleaseReport per video, in name order.  Failed releases carry
        the error message in ``error``.
    """
    settings = config.prepare
    videos = find_videos(directory, settings.video_extensions)
    if not videos:
        return []

    template = load_template(Path(settings.template) if settings.template else None)
    workspace = _setup_workspace(directory, settings.workspace_dirname)

    reports: dict[Path, ReleaseReport] = {}
    infos: list[MediaInfo] = []
    for video in videos:
        try:
            infos.append(probe_media(video))
        except SubprepError as exc:
            logger.error("%s: %s", video.name, exc)
            reports[video] = ReleaseReport(video=video, group=group_name(video), error=str(exc))

    resolution = target_resolution(infos, settings.target_height) if infos else (0, 0)

    total = len(videos)
    done = total - len(infos)
    for info in infos:
        try:
            reports[info.path] = prepare_release(info, workspace, config, resolution, template)
        except SubprepError as exc:
            logger.error("%s: %s", info.path.name, exc)
            reports[info.path] = ReleaseReport(
                video=info.path, group=group_name(info.path), error=str(exc),
            )
        done += 1
        if progress_callback is not None:
            progress_callback(done, total)

    return [reports[v] for v in videos]
