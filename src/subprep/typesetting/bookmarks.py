"""Bookmark list serialization (``<line>=<HH:MM:SS.mmm>`` per line)."""
import os
import tempfile
from pathlib import Path

from subprep.errors import BookmarkWriteError
from subprep.models import BookmarkEntry


def render_bookmarks(entries: list[BookmarkEntry]) -> str:
    return "".join(f"{e.line_number}={e.timestamp}\n" for e in entries)


def write_bookmarks(entries: list[BookmarkEntry], destination: Path) -> Path:
    """Atomically write *entries* to *destination*, replacing any existing file.

    The temp file lives next to the destination so os.replace() stays on one
    filesystem.  On failure the destination is left untouched and
    BookmarkWriteError is raised.
    """
    data = render_bookmarks(entries).encode("utf-8")
    try:
        fd, tmp_path = tempfile.mkstemp(dir=destination.parent, suffix=".bookmarks.tmp")
    except OSError as exc:
        raise BookmarkWriteError(destination, str(exc)) from exc
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp_path, destination)
    except OSError as exc:
        try:
            os.close(fd)
        except OSError:
            pass
        Path(tmp_path).unlink(missing_ok=True)
        raise BookmarkWriteError(destination, str(exc)) from exc
    return destination
