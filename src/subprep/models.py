from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class DialogueEvent:
    """A single parsed line from the events section of a subtitle document."""

    line_type: str      # "Dialogue" | "Comment" | ...
    start_ms: int       # Centisecond start time, stored in milliseconds
    effect: str
    text: str           # Raw text, override blocks included
    index: int          # Position in file order


@dataclass(frozen=True)
class BookmarkEntry:
    """A detected typesetting line as consumed by the external editor."""

    line_number: int    # Chronological index among dialogue events
    timestamp_ms: int   # Start time plus the editor seek offset

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.timestamp_ms)


def format_timestamp(ms: int) -> str:
    """Format milliseconds as ``HH:MM:SS.mmm``."""
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


class StepStatus(str, Enum):
    """Completion signal of an external extraction or indexing step."""
    SUCCESS = "success"
    EXISTS = "exists"
    SKIPPED = "skipped"
    FAILED = "failed"


_FONT_EXTS = {".ttf", ".otf", ".ttc", ".otc"}


@dataclass
class SubtitleTrack:
    index: int          # Absolute stream index in the container
    codec: str          # ffprobe codec_name, e.g. "ass", "subrip"

    @property
    def extension(self) -> str:
        return {"ass": ".ass", "ssa": ".ssa", "subrip": ".srt", "webvtt": ".vtt"}.get(self.codec, ".sub")

    @property
    def is_ass(self) -> bool:
        return self.codec in ("ass", "ssa")


@dataclass
class Attachment:
    index: int
    filename: str
    mimetype: str = ""

    @property
    def is_font(self) -> bool:
        mime = self.mimetype.lower()
        if mime.startswith(("font/", "application/font-", "application/x-font", "application/x-truetype")):
            return True
        if mime == "application/vnd.ms-opentype":
            return True
        return Path(self.filename).suffix.lower() in _FONT_EXTS


@dataclass
class MediaInfo:
    """Container metadata needed to set up a comparison workspace."""

    path: Path
    width: int
    height: int
    subtitle: Optional[SubtitleTrack] = None
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class FontFile:
    path: Path
    families: set[str]


@dataclass
class ReleaseReport:
    """Outcome of preparing one release in a batch."""

    video: Path
    group: str
    index: StepStatus = StepStatus.SKIPPED
    subtitle: StepStatus = StepStatus.SKIPPED
    fonts: StepStatus = StepStatus.SKIPPED
    script_path: Optional[Path] = None
    subtitle_path: Optional[Path] = None
    bookmarks_path: Optional[Path] = None
    bookmark_count: int = 0
    font_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
