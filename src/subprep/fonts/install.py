"""Temporary loading and persistent installation of font files.

``load``/``unload`` make a font available for the current login session only:
``AddFontResourceW`` on Windows, a dedicated session folder inside the user
font directory elsewhere.  ``install``/``uninstall`` copy the font into the
user font directory (and register it under HKCU on Windows).
"""

from __future__ import annotations

import ctypes
import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from subprep.errors import FontError
from subprep.fonts.inventory import font_families

logger = logging.getLogger(__name__)

SESSION_DIRNAME = "subprep-session"

_HWND_BROADCAST = 0xFFFF
_WM_FONTCHANGE = 0x001D
_USER_FONTS_KEY = r"Software\Microsoft\Windows NT\CurrentVersion\Fonts"


def user_font_dir(system: Optional[str] = None) -> Path:
    """Return the per-user font directory for *system* (default: this host)."""
    system = system or platform.system()
    if system == "Windows":
        return Path(os.environ["LOCALAPPDATA"]) / "Microsoft" / "Windows" / "Fonts"
    if system == "Darwin":
        return Path.home() / "Library" / "Fonts"
    return Path.home() / ".local" / "share" / "fonts"


class FontInstaller:
    """Loads, unloads, installs and uninstalls font files.

    Used as a context manager, every font loaded through the instance is
    unloaded again on exit.
    """

    def __init__(self, font_dir: Optional[Path] = None) -> None:
        self.system = platform.system()
        self.font_dir = font_dir or user_font_dir(self.system)
        self.loaded: dict[Path, Path] = {}   # source path -> path registered with the OS

    @property
    def session_dir(self) -> Path:
        return self.font_dir / SESSION_DIRNAME

    # -- session -----------------------------------------------------------

    def load(self, font: Path) -> Path:
        """Make *font* available until it is unloaded or the session ends."""
        font = font.resolve()
        if font in self.loaded:
            return self.loaded[font]
        if not font.is_file():
            raise FontError(font, "File not found.")

        if self.system == "Windows":
            if _gdi32().AddFontResourceW(str(font)) <= 0:
                raise FontError(font, "AddFontResourceW rejected the file.")
            _broadcast_font_change()
            sys_path = font
        else:
            sys_path = self._copy_into(font, self.session_dir)
            self.refresh_cache()

        self.loaded[font] = sys_path
        logger.info("Loaded font %s", font.name)
        return sys_path

    def unload(self, font: Path) -> bool:
        """Undo :meth:`load`. Returns False if *font* was not loaded."""
        font = font.resolve()
        sys_path = self.loaded.pop(font, None)

        if self.system == "Windows":
            removed = _gdi32().RemoveFontResourceW(str(sys_path or font)) != 0
            if removed:
                _broadcast_font_change()
        else:
            sys_path = sys_path or self.session_dir / font.name
            removed = self._remove(sys_path)
            if removed:
                self.refresh_cache()

        if removed:
            logger.info("Unloaded font %s", font.name)
        return removed

    def unload_all(self) -> None:
        for font in list(self.loaded):
            self.unload(font)

    # -- persistent --------------------------------------------------------

    def install(self, font: Path) -> Path:
        """Copy *font* into the user font directory and register it."""
        font = font.resolve()
        if not font.is_file():
            raise FontError(font, "File not found.")
        dest = self._copy_into(font, self.font_dir)

        if self.system == "Windows":
            import winreg

            with winreg.CreateKey(winreg.HKEY_CURRENT_USER, _USER_FONTS_KEY) as key:
                winreg.SetValueEx(key, _registry_name(dest), 0, winreg.REG_SZ, str(dest))
            _gdi32().AddFontResourceW(str(dest))
            _broadcast_font_change()
        else:
            self.refresh_cache()

        logger.info("Installed font %s to %s", font.name, dest)
        return dest

    def uninstall(self, font: Path) -> bool:
        """Remove a font previously installed under *font*'s file name."""
        dest = self.font_dir / font.name
        if not dest.exists():
            return False

        if self.system == "Windows":
            import winreg

            _gdi32().RemoveFontResourceW(str(dest))
            try:
                with winreg.OpenKey(winreg.HKEY_CURRENT_USER, _USER_FONTS_KEY, 0, winreg.KEY_SET_VALUE) as key:
                    winreg.DeleteValue(key, _registry_name(dest))
            except OSError:
                logger.debug("No registry entry for %s", dest.name)
            _broadcast_font_change()

        removed = self._remove(dest)
        if removed and self.system != "Windows":
            self.refresh_cache()
        return removed

    def refresh_cache(self) -> None:
        """Rebuild the fontconfig cache (Linux only)."""
        if self.system != "Linux":
            return
        try:
            subprocess.run(["fc-cache", "-f", str(self.font_dir)], check=True, capture_output=True)
        except (FileNotFoundError, subprocess.CalledProcessError) as exc:
            logger.warning("Could not refresh font cache: %s", exc)

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _copy_into(font: Path, directory: Path) -> Path:
        dest = directory / font.name
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if not dest.exists():
                shutil.copy2(font, dest)
        except OSError as exc:
            raise FontError(font, f"Could not copy into {directory}: {exc}") from exc
        return dest

    @staticmethod
    def _remove(path: Path) -> bool:
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise FontError(path, f"Could not remove: {exc}") from exc
        return True

    def __enter__(self) -> "FontInstaller":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unload_all()


def _registry_name(path: Path) -> str:
    try:
        family = min(font_families(path))
    except (FontError, ValueError):
        family = path.stem
    return f"{family} (TrueType)"


def _gdi32():
    gdi32 = ctypes.WinDLL("gdi32")
    gdi32.AddFontResourceW.argtypes = [ctypes.c_wchar_p]
    gdi32.AddFontResourceW.restype = ctypes.c_int
    gdi32.RemoveFontResourceW.argtypes = [ctypes.c_wchar_p]
    gdi32.RemoveFontResourceW.restype = ctypes.c_int
    return gdi32


def _broadcast_font_change() -> None:
    ctypes.windll.user32.SendMessageTimeoutW(
        _HWND_BROADCAST, _WM_FONTCHANGE, 0, 0, 0x0002, 1000, None,
    )
