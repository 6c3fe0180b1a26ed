"""Events-section parser for ASS/SSA subtitle documents.

The document is scanned line by line.  Section headers switch the scanner
state; only lines inside ``[Events]`` become :class:`DialogueEvent` records.
The column layout is taken from the section's ``Format:`` line, falling back
to the ASS v4+ layout when the document has none.  Lines that do not fit the
layout are skipped: subtitle files are routinely hand-edited and a single
broken line must not abort detection.
"""

from __future__ import annotations

import logging
import re

from subprep.models import DialogueEvent

logger = logging.getLogger(__name__)

EVENTS_SECTION = "[events]"

# Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
DEFAULT_EVENT_FORMAT: tuple[str, ...] = (
    "layer", "start", "end", "style", "name",
    "marginl", "marginr", "marginv", "effect", "text",
)

_TIME_RE = re.compile(r"^(\d+):([0-5]\d):([0-5]\d)\.(\d\d)$")
_LINE_RE = re.compile(r"^([A-Za-z]+):\s?(.*)$")


def parse_time(value: str) -> int | None:
    """Parse ``H:MM:SS.CC`` into milliseconds, or ``None`` if malformed."""
    m = _TIME_RE.match(value.strip())
    if m is None:
        return None
    hours, minutes, seconds, centis = (int(g) for g in m.groups())
    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + centis * 10


def parse_events(document: str) -> list[DialogueEvent]:
    """Parse the events section of *document*.

    Returns
    -------
    list[DialogueEvent]
        Every well-formed event (dialogue, comment, ...) sorted by start
        time, ties kept in file order.
    """
    events: list[DialogueEvent] = []
    section: str | None = None
    columns: tuple[str, ...] = DEFAULT_EVENT_FORMAT
    position = 0

    for lineno, raw in enumerate(document.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(";"):
            continue

        if line.startswith("[") and line.endswith("]"):
            section = line.lower()
            if section == EVENTS_SECTION:
                columns = DEFAULT_EVENT_FORMAT
            continue

        if section != EVENTS_SECTION:
            continue

        m = _LINE_RE.match(line)
        if m is None:
            logger.debug("line %d: not an event line, skipped", lineno)
            continue
        line_type, body = m.group(1), m.group(2)

        if line_type.lower() == "format":
            parsed = tuple(c.strip().lower() for c in body.split(","))
            if {"start", "effect", "text"} <= set(parsed) and parsed[-1] == "text":
                columns = parsed
            else:
                logger.debug("line %d: unusable Format line, keeping previous layout", lineno)
            continue

        event = _parse_event(line_type, body, columns, position)
        if event is None:
            logger.debug("line %d: malformed %s line, skipped", lineno, line_type)
            continue
        events.append(event)
        position += 1

    events.sort(key=lambda e: (e.start_ms, e.index))
    return events


def _parse_event(
    line_type: str,
    body: str,
    columns: tuple[str, ...],
    position: int,
) -> DialogueEvent | None:
    fields = body.split(",", len(columns) - 1)
    if len(fields) != len(columns):
        return None
    record = dict(zip(columns, fields))
    start_ms = parse_time(record["start"])
    if start_ms is None:
        return None
    return DialogueEvent(
        line_type=line_type,
        start_ms=start_ms,
        effect=record["effect"].strip(),
        text=record["text"],
        index=position,
    )
