"""Container introspection through ffprobe.

All subprocess errors are translated into ``ProbeError``; raw stderr never
escapes to callers.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from subprep.errors import ProbeError
from subprep.models import Attachment, MediaInfo, SubtitleTrack


def probe_media(source: Path) -> MediaInfo:
    """Return resolution, first subtitle track and attachments of *source*.

    Raises
    ------
    ProbeError
        If ffprobe is not installed, fails on the file, its output cannot be
        parsed, or the container has no video stream.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_streams",
        str(source),
    ]
    try:
        result = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as exc:
        raise ProbeError(source, f"ffprobe failed: {(exc.stderr or '').strip()}") from exc
    except FileNotFoundError as exc:
        raise ProbeError(source, "ffprobe not found (is FFmpeg installed and in PATH?)") from exc

    try:
        streams = json.loads(result.stdout)["streams"]
    except (KeyError, TypeError, json.JSONDecodeError) as exc:
        raise ProbeError(source, f"Could not parse ffprobe output: {exc}") from exc

    return parse_streams(source, streams)


def parse_streams(source: Path, streams: list[dict]) -> MediaInfo:
    """Build a MediaInfo from ffprobe's ``streams`` array."""
    video = next((s for s in streams if s.get("codec_type") == "video"
                  and not s.get("disposition", {}).get("attached_pic")), None)
    if video is None:
        raise ProbeError(source, "No video stream found.")
    try:
        width, height = int(video["width"]), int(video["height"])
    except (KeyError, ValueError) as exc:
        raise ProbeError(source, f"Video stream has no usable resolution: {exc}") from exc
    if width <= 0 or height <= 0:
        raise ProbeError(source, f"Video stream has no usable resolution: {width}x{height}")

    subtitle = None
    attachments: list[Attachment] = []
    for stream in streams:
        codec_type = stream.get("codec_type")
        if codec_type == "subtitle" and subtitle is None:
            subtitle = SubtitleTrack(index=int(stream["index"]), codec=stream.get("codec_name", ""))
        elif codec_type == "attachment":
            tags = stream.get("tags", {})
            filename = tags.get("filename")
            if not filename:
                continue
            attachments.append(Attachment(
                index=int(stream["index"]),
                filename=filename,
                mimetype=tags.get("mimetype", ""),
            ))

    return MediaInfo(
        path=source,
        width=width,
        height=height,
        subtitle=subtitle,
        attachments=attachments,
    )
