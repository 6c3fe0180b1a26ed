"""Typesetting detection: event parsing, override-tag scoring, dedup, bookmark export."""
import logging
from pathlib import Path
from typing import Optional

from subprep.config import DetectionSettings
from subprep.ingestion.subtitles import read_subtitle_document
from subprep.models import BookmarkEntry
from subprep.typesetting.bookmarks import write_bookmarks
from subprep.typesetting.classifier import classify
from subprep.typesetting.parser import parse_events
from subprep.typesetting.scorer import DEFAULT_TAG_WEIGHTS

logger = logging.getLogger(__name__)

BOOKMARK_SUFFIX = ".bookmarks"


def default_bookmark_path(subtitle_path: Path) -> Path:
    return subtitle_path.with_suffix(BOOKMARK_SUFFIX)


def detect_typesetting(
    subtitle_path: Path,
    destination: Optional[Path] = None,
    settings: Optional[DetectionSettings] = None,
) -> list[BookmarkEntry]:
    """Detect typesetting in *subtitle_path* and write the bookmark file.

    The document is read in full before anything is parsed, so a missing or
    unreadable input raises SubtitleReadError without touching *destination*.

    Args:
        subtitle_path: ASS/SSA document to scan.
        destination: Bookmark file; defaults to ``<subtitle>.bookmarks``.
        settings: Detection thresholds; defaults to DetectionSettings().

    Returns:
        The bookmark entries that were written.
    """
    settings = settings or DetectionSettings()
    destination = destination or default_bookmark_path(subtitle_path)

    document = read_subtitle_document(subtitle_path)
    events = parse_events(document)
    entries = classify(
        events,
        DEFAULT_TAG_WEIGHTS,
        score_threshold=settings.score_threshold,
        time_gap_s=settings.time_gap_s,
        line_gap=settings.line_gap,
        effect_qualifies=settings.effect_qualifies,
    )
    write_bookmarks(entries, destination)
    logger.debug(
        "%s: %d events, %d bookmarks -> %s",
        subtitle_path.name, len(events), len(entries), destination,
    )
    return entries


__all__ = [
    "BOOKMARK_SUFFIX",
    "default_bookmark_path",
    "detect_typesetting",
]
