"""Installed-font enumeration and font file inspection.

Installed families come from fontconfig (``fc-list``) on Linux/macOS and from
the ``Fonts`` registry keys on Windows.  Font files are read with fontTools.
"""

from __future__ import annotations

import logging
import platform
import re
import subprocess
from pathlib import Path

from fontTools.ttLib import TTCollection, TTFont, TTLibError

from subprep.errors import FontError
from subprep.models import FontFile

logger = logging.getLogger(__name__)

FONT_EXTS = {".ttf", ".otf", ".ttc", ".otc"}

# 1 = family, 4 = full name, 16 = typographic family
_NAME_IDS = (1, 4, 16)

_REGISTRY_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion\Fonts"
_REGISTRY_SUFFIX_RE = re.compile(r"\s*\((?:TrueType|OpenType|All res)\)\s*$", re.IGNORECASE)


def list_installed_families() -> set[str]:
    """Return the family names of all fonts installed on this host."""
    if platform.system() == "Windows":
        return _registry_families()
    return _fontconfig_families()


def _fontconfig_families() -> set[str]:
    cmd = ["fc-list", ":", "family"]
    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise FontError(Path("fc-list"), "fc-list not found (is fontconfig installed?)") from exc
    except subprocess.CalledProcessError as exc:
        raise FontError(Path("fc-list"), f"fc-list failed: {(exc.stderr or '').strip()}") from exc

    families: set[str] = set()
    for line in result.stdout.splitlines():
        # Localized names are comma separated; fontconfig escapes '-' as '\-'
        for name in line.split(","):
            name = name.replace("\\", "").strip()
            if name:
                families.add(name)
    return families


def _registry_families() -> set[str]:
    import winreg

    families: set[str] = set()
    for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
        try:
            key = winreg.OpenKey(hive, _REGISTRY_KEY)
        except OSError:
            continue
        with key:
            i = 0
            while True:
                try:
                    value_name = winreg.EnumValue(key, i)[0]
                except OSError:
                    break
                i += 1
                for name in _REGISTRY_SUFFIX_RE.sub("", value_name).split(" & "):
                    if name.strip():
                        families.add(name.strip())
    return families


def font_families(path: Path) -> set[str]:
    """Return family and full names declared by the font file at *path*.

    Raises FontError if fontTools cannot read the file.
    """
    try:
        if path.suffix.lower() in (".ttc", ".otc"):
            collection = TTCollection(str(path), lazy=True)
            fonts = list(collection.fonts)
        else:
            fonts = [TTFont(str(path), lazy=True)]
    except (TTLibError, OSError, AssertionError) as exc:
        raise FontError(path, str(exc)) from exc

    names: set[str] = set()
    for font in fonts:
        name_table = font.get("name")
        if name_table is None:
            continue
        for record in name_table.names:
            if record.nameID not in _NAME_IDS:
                continue
            try:
                text = record.toUnicode().strip()
            except UnicodeDecodeError:
                continue
            if text:
                names.add(text)
        font.close()
    return names


def scan_font_dir(directory: Path) -> list[FontFile]:
    """Inspect every font file directly inside *directory*.

    Unreadable files are logged and skipped.
    """
    found: list[FontFile] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in FONT_EXTS:
            continue
        try:
            found.append(FontFile(path=path, families=font_families(path)))
        except FontError as exc:
            logger.warning("Skipping unreadable font %s: %s", path.name, exc.detail)
    return found


def missing_fonts(directory: Path, installed: set[str]) -> list[FontFile]:
    """Return the fonts in *directory* none of whose names are installed."""
    installed_folded = {n.casefold() for n in installed}
    return [
        f for f in scan_font_dir(directory)
        if not {n.casefold() for n in f.families} & installed_folded
    ]


def unresolved_fonts(used: set[str], installed: set[str], available: list[FontFile]) -> list[str]:
    """Return the names in *used* provided neither by the host nor by *available*."""
    provided = {n.casefold() for n in installed}
    for font in available:
        provided.update(n.casefold() for n in font.families)
    return sorted(n for n in used if n.casefold() not in provided)
