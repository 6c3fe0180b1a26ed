"""Unit tests for subprep.fonts.

Fonts are built on the fly with fontTools' FontBuilder.  fc-list/fc-cache
calls are mocked, and the installer is pinned to the Linux code path.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from subprep.errors import FontError
from subprep.fonts.install import SESSION_DIRNAME, FontInstaller, user_font_dir
from subprep.fonts.inventory import (
    font_families,
    list_installed_families,
    missing_fonts,
    scan_font_dir,
    unresolved_fonts,
)
from subprep.models import FontFile


def _build_font(path: Path, family: str) -> Path:
    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder([".notdef"])
    fb.setupCharacterMap({})
    fb.setupGlyf({".notdef": TTGlyphPen(None).glyph()})
    fb.setupHorizontalMetrics({".notdef": (500, 0)})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": "Regular"})
    fb.setupOS2()
    fb.setupPost()
    fb.save(str(path))
    return path


class TestFontFamilies:
    def test_reads_family_name(self, tmp_path: Path) -> None:
        font = _build_font(tmp_path / "test.ttf", "Test Sans")
        assert "Test Sans" in font_families(font)

    def test_garbage_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.ttf"
        bad.write_bytes(b"not a font at all")
        with pytest.raises(FontError):
            font_families(bad)

    def test_scan_skips_unreadable(self, tmp_path: Path) -> None:
        _build_font(tmp_path / "good.ttf", "Good Font")
        (tmp_path / "bad.otf").write_bytes(b"junk" * 8)
        (tmp_path / "readme.txt").write_text("hi", encoding="utf-8")
        found = scan_font_dir(tmp_path)
        assert [f.path.name for f in found] == ["good.ttf"]


class TestInstalledFamilies:
    def test_fc_list_parsing(self) -> None:
        result = MagicMock()
        result.stdout = "DejaVu Sans\nNoto Sans CJK JP,Noto Sans CJK JP Regular\nA\\-Font\n\n"
        with patch("subprep.fonts.inventory.platform.system", return_value="Linux"), \
             patch("subprep.fonts.inventory.subprocess.run", return_value=result):
            families = list_installed_families()
        assert families == {"DejaVu Sans", "Noto Sans CJK JP", "Noto Sans CJK JP Regular", "A-Font"}

    def test_fc_list_missing(self) -> None:
        with patch("subprep.fonts.inventory.platform.system", return_value="Linux"), \
             patch("subprep.fonts.inventory.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(FontError):
                list_installed_families()


class TestMatching:
    def test_missing_fonts_casefold(self, tmp_path: Path) -> None:
        _build_font(tmp_path / "a.ttf", "Installed Face")
        _build_font(tmp_path / "b.ttf", "New Face")
        missing = missing_fonts(tmp_path, {"installed face"})
        assert [f.path.name for f in missing] == ["b.ttf"]

    def test_unresolved_fonts(self, tmp_path: Path) -> None:
        available = [FontFile(path=tmp_path / "x.ttf", families={"Bebas Neue"})]
        used = {"Arial", "bebas neue", "Comic Sans MS"}
        assert unresolved_fonts(used, {"ARIAL"}, available) == ["Comic Sans MS"]


class TestFontInstaller:
    @pytest.fixture
    def installer(self, tmp_path: Path):
        with patch("subprep.fonts.install.platform.system", return_value="Linux"):
            inst = FontInstaller(font_dir=tmp_path / "userfonts")
        with patch("subprep.fonts.install.subprocess.run") as mock_run:
            inst.mock_run = mock_run
            yield inst

    def test_user_font_dir_linux(self) -> None:
        assert user_font_dir("Linux") == Path.home() / ".local" / "share" / "fonts"

    def test_load_and_unload(self, tmp_path: Path, installer: FontInstaller) -> None:
        font = _build_font(tmp_path / "f.ttf", "Session Face")
        sys_path = installer.load(font)
        assert sys_path == tmp_path / "userfonts" / SESSION_DIRNAME / "f.ttf"
        assert sys_path.exists()
        assert installer.mock_run.call_args[0][0][0] == "fc-cache"

        assert installer.unload(font) is True
        assert not sys_path.exists()
        assert installer.loaded == {}

    def test_unload_unknown(self, tmp_path: Path, installer: FontInstaller) -> None:
        assert installer.unload(tmp_path / "never.ttf") is False

    def test_load_missing(self, tmp_path: Path, installer: FontInstaller) -> None:
        with pytest.raises(FontError):
            installer.load(tmp_path / "missing.ttf")

    def test_context_manager_unloads(self, tmp_path: Path, installer: FontInstaller) -> None:
        font = _build_font(tmp_path / "f.ttf", "Scoped Face")
        with installer as inst:
            sys_path = inst.load(font)
        assert not sys_path.exists()

    def test_install_and_uninstall(self, tmp_path: Path, installer: FontInstaller) -> None:
        font = _build_font(tmp_path / "f.ttf", "Kept Face")
        dest = installer.install(font)
        assert dest == tmp_path / "userfonts" / "f.ttf"
        assert dest.exists()
        assert installer.uninstall(font) is True
        assert not dest.exists()
        assert installer.uninstall(font) is False

    def test_cache_failure_is_not_fatal(self, tmp_path: Path, installer: FontInstaller) -> None:
        installer.mock_run.side_effect = FileNotFoundError
        font = _build_font(tmp_path / "f.ttf", "Face")
        assert installer.install(font).exists()
