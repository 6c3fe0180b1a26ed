"""Subtitle document loading and font reference discovery.

Documents are read as UTF-8 first.  Non-UTF-8 files are detected with
charset-normalizer before a second attempt; if encoding detection also fails,
``SubtitleReadError`` is raised rather than guessing.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import pysubs2
from charset_normalizer import from_path

from subprep.errors import SubtitleReadError

logger = logging.getLogger(__name__)

_FN_TAG_RE = re.compile(r"\\fn([^\\}]*)")


def read_subtitle_document(subtitle_path: Path) -> str:
    """Return the full text of *subtitle_path*.

    Raises
    ------
    SubtitleReadError
        If the file is missing, unreadable, or its encoding cannot be
        determined.
    """
    try:
        return subtitle_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        pass
    except OSError as exc:
        raise SubtitleReadError(subtitle_path, exc.strerror or str(exc)) from exc

    # Not UTF-8: let charset-normalizer pick the encoding
    best = from_path(subtitle_path).best()
    if best is None:
        raise SubtitleReadError(
            subtitle_path,
            "Could not determine file encoding. Re-save as UTF-8.",
        )
    logger.info("%s: decoded as %s", subtitle_path.name, best.encoding)
    return str(best)


def fonts_used(subtitle_path: Path) -> set[str]:
    """Return the font family names an ASS/SSA subtitle needs.

    Collects the font of every style referenced by a non-comment event plus
    inline ``\\fn`` overrides.  Vertical-writing names (``@Font``) are
    reported without the ``@``.
    """
    document = read_subtitle_document(subtitle_path)
    try:
        subs = pysubs2.SSAFile.from_string(document)
    except Exception as exc:
        raise SubtitleReadError(subtitle_path, str(exc)) from exc

    names: set[str] = set()
    for event in subs:
        if event.is_comment:
            continue
        style = subs.styles.get(event.style)
        if style is not None:
            names.add(style.fontname)
        for match in _FN_TAG_RE.findall(event.text):
            names.add(match)

    return {n.strip().lstrip("@") for n in names if n.strip().lstrip("@")}
