"""Typesetting classification and bookmark deduplication."""

from __future__ import annotations

from typing import Iterable

from subprep.models import BookmarkEntry, DialogueEvent
from subprep.typesetting.scorer import DEFAULT_TAG_WEIGHTS, TagWeight, score

DIALOGUE = "Dialogue"

# Editors land one frame early when seeking to the exact start time.
SEEK_OFFSET_MS = 100


def classify(
    events: Iterable[DialogueEvent],
    table: tuple[TagWeight, ...] = DEFAULT_TAG_WEIGHTS,
    score_threshold: int = 5,
    time_gap_s: float = 2.0,
    line_gap: int = 2,
    effect_qualifies: bool = False,
) -> list[BookmarkEntry]:
    """Detect typesetting lines in chronologically sorted *events*.

    A dialogue event qualifies when its override-tag score reaches
    *score_threshold* (or, with *effect_qualifies*, when its Effect field is
    non-empty).  A qualifying event is bookmarked only if it starts at least
    *time_gap_s* seconds after, and lies at least *line_gap* dialogue lines
    after, the previous bookmark, so a dense run of signs yields a single
    bookmark.

    Parameters
    ----------
    events:
        Parsed events sorted by start time (as returned by ``parse_events``).
        Non-dialogue events are ignored and do not advance the line counter.

    Returns
    -------
    list[BookmarkEntry]
        Bookmarks in ascending line order.  Line numbers count dialogue events
        in chronological order, starting at 0.
    """
    time_gap_ms = round(time_gap_s * 1000)
    last_time_ms = -time_gap_ms
    last_line = -line_gap
    entries: list[BookmarkEntry] = []

    line_number = 0
    for event in events:
        if event.line_type != DIALOGUE:
            continue

        qualifies = score(event.text, table) >= score_threshold
        if effect_qualifies and event.effect:
            qualifies = True

        if (
            qualifies
            and event.start_ms - last_time_ms >= time_gap_ms
            and line_number - last_line >= line_gap
        ):
            entries.append(BookmarkEntry(line_number, event.start_ms + SEEK_OFFSET_MS))
            last_time_ms = event.start_ms
            last_line = line_number

        line_number += 1

    return entries
