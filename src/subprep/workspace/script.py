"""Playback script rendering from a ``string.Template`` template."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, asdict
from pathlib import Path
from string import Template

from subprep.errors import ScriptTemplateError

PLACEHOLDERS = ("video_path", "subtitle_path", "group", "target_width", "target_height", "upscale")

DEFAULT_TEMPLATE = """\
import vapoursynth as vs

core = vs.core

clip = core.ffms2.Source(r"$video_path")
if $upscale:
    clip = core.resize.Spline36(clip, $target_width, $target_height)
clip = core.sub.TextFile(clip, r"$subtitle_path")
clip = core.text.Text(clip, "$group", alignment=9)
clip.set_output()
"""


@dataclass
class ScriptValues:
    video_path: str
    subtitle_path: str
    group: str
    target_width: int
    target_height: int
    upscale: bool

    def as_mapping(self) -> dict[str, str]:
        return {k: str(v) for k, v in asdict(self).items()}


def render_script(template_text: str, values: ScriptValues, name: str = "<template>") -> str:
    """Substitute *values* into *template_text*.

    Raises ScriptTemplateError for placeholders outside PLACEHOLDERS or a
    stray ``$``.
    """
    try:
        return Template(template_text).substitute(values.as_mapping())
    except KeyError as exc:
        raise ScriptTemplateError(Path(name), f"Unknown placeholder ${exc.args[0]}") from exc
    except ValueError as exc:
        raise ScriptTemplateError(Path(name), str(exc)) from exc


def load_template(path: Path | None) -> tuple[str, str]:
    """Return ``(template_text, name)``; the built-in template when *path* is None."""
    if path is None:
        return DEFAULT_TEMPLATE, "default.vpy"
    try:
        return path.read_text(encoding="utf-8"), path.name
    except (OSError, UnicodeDecodeError) as exc:
        raise ScriptTemplateError(path, str(exc)) from exc


def write_script(template_text: str, destination: Path, values: ScriptValues, name: str = "<template>") -> Path:
    """Render the template and atomically write it to *destination*."""
    rendered = render_script(template_text, values, name)
    try:
        fd, tmp_path = tempfile.mkstemp(dir=destination.parent, suffix=".script.tmp")
    except OSError as exc:
        raise ScriptTemplateError(destination, str(exc)) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(rendered)
        os.replace(tmp_path, destination)
    except OSError as exc:
        Path(tmp_path).unlink(missing_ok=True)
        raise ScriptTemplateError(destination, str(exc)) from exc
    return destination
