"""Override-tag scoring.

A line's typesetting score is the weighted count of the override tags found
in its ``{...}`` blocks.  Tags that plain dialogue uses occasionally (scale,
position) weigh little; tags that only make sense for signs (movement,
transforms, clipping) or karaoke weigh the most.
"""

from __future__ import annotations

import re
from typing import NamedTuple

_BLOCK_RE = re.compile(r"\{([^{}]*)\}")


class TagWeight(NamedTuple):
    pattern: re.Pattern[str]    # Matched against the start of a tag name (no backslash)
    weight: int


def _tag(expr: str, weight: int) -> TagWeight:
    return TagWeight(re.compile(expr), weight)


# Ordered: scale/position < styling < rotation/shear/alpha < movement/clip/karaoke.
# Patterns are mutually exclusive so a tag is counted at most once.
DEFAULT_TAG_WEIGHTS: tuple[TagWeight, ...] = (
    _tag(r"fsc[xy]?(?![a-z])", 1),         # \fscx \fscy \fsc
    _tag(r"pos\(", 1),
    _tag(r"[xy]?bord(?![a-z])", 2),        # \bord \xbord \ybord
    _tag(r"fn", 2),
    _tag(r"fs[\d.+-]", 2),                 # \fs<size>, not \fsc or \fsp
    _tag(r"[1-4]?c(?:&|$)", 2),            # \c&H..& \1c..\4c
    _tag(r"fr[xyz]?(?![a-z])", 3),         # \fr \frx \fry \frz
    _tag(r"fa[xy]", 3),
    _tag(r"(?:alpha|[1-4]a)(?:&|$)", 3),
    _tag(r"move\(", 5),
    _tag(r"org\(", 5),
    _tag(r"t\(", 5),
    _tag(r"i?clip\(", 5),
    _tag(r"(?:k[fo]?|K)\d", 5),            # \k \K \kf \ko
)


def iter_tags(text: str):
    """Yield the override tag names in *text*, without their backslash.

    Tags nested inside ``\\t(...)`` are yielded as well.
    """
    for block in _BLOCK_RE.findall(text):
        for token in block.split("\\")[1:]:
            token = token.strip()
            if token:
                yield token


def score(text: str, table: tuple[TagWeight, ...] = DEFAULT_TAG_WEIGHTS) -> int:
    """Return the typesetting score of *text* under *table*."""
    total = 0
    for tag in iter_tags(text):
        for entry in table:
            if entry.pattern.match(tag):
                total += entry.weight
    return total
