"""Unit tests for subprep.workspace.prepare.

Probing, indexing and extraction are mocked at the prepare module boundary.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from better_ffmpeg_progress.exceptions import FfmpegProcessError

from subprep.config import SubprepConfig
from subprep.errors import IndexingError, ProbeError
from subprep.models import Attachment, BookmarkEntry, MediaInfo, StepStatus, SubtitleTrack
from subprep.workspace.prepare import (
    find_videos,
    group_name,
    prepare_directory,
    target_resolution,
)

_MOD = "subprep.workspace.prepare"


def _info(path: Path, width: int = 1920, height: int = 1080, codec: str = "ass") -> MediaInfo:
    return MediaInfo(
        path=path,
        width=width,
        height=height,
        subtitle=SubtitleTrack(index=2, codec=codec),
        attachments=[Attachment(index=3, filename="Bebas.ttf", mimetype="font/ttf")],
    )


class TestGroupName:
    def test_bracket_prefix(self) -> None:
        assert group_name(Path("[SubsPlease] Show - 01 (1080p).mkv")) == "SubsPlease"

    def test_fallback_to_stem(self) -> None:
        assert group_name(Path("Show.S01E01.mkv")) == "Show.S01E01"


class TestFindVideos:
    def test_filters_and_sorts(self, tmp_path: Path) -> None:
        for name in ("b.mkv", "a.MP4", "notes.txt", "c.ass"):
            (tmp_path / name).touch()
        (tmp_path / "sub.mkv").mkdir()
        assert find_videos(tmp_path, [".mkv", ".mp4"]) == [tmp_path / "a.MP4", tmp_path / "b.mkv"]


class TestTargetResolution:
    def test_tallest_wins(self, tmp_path: Path) -> None:
        infos = [_info(tmp_path / "a", 1280, 720), _info(tmp_path / "b", 1920, 1080)]
        assert target_resolution(infos) == (1920, 1080)

    def test_explicit_height_keeps_aspect(self, tmp_path: Path) -> None:
        infos = [_info(tmp_path / "a", 1920, 1080)]
        assert target_resolution(infos, 720) == (1280, 720)

    def test_width_rounded_even(self, tmp_path: Path) -> None:
        infos = [_info(tmp_path / "a", 1440, 1080)]
        width, height = target_resolution(infos, 481)
        assert height == 481
        assert width % 2 == 0

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError):
            target_resolution([])


class TestPrepareDirectory:
    def test_empty_directory(self, tmp_path: Path) -> None:
        assert prepare_directory(tmp_path, SubprepConfig()) == []
        assert not (tmp_path / "compare").exists()

    def test_full_release(self, tmp_path: Path) -> None:
        low = tmp_path / "[A] Show - 01.mkv"
        high = tmp_path / "[B] Show - 01.mkv"
        low.touch()
        high.touch()
        infos = {low: _info(low, 1280, 720), high: _info(high, 1920, 1080)}
        progress: list[tuple[int, int]] = []

        with patch(f"{_MOD}.probe_media", side_effect=lambda p: infos[p]), \
             patch(f"{_MOD}.build_index", return_value=StepStatus.SUCCESS) as mock_index, \
             patch(f"{_MOD}.extract_stream", return_value=StepStatus.SUCCESS) as mock_extract, \
             patch(f"{_MOD}.extract_attachments", return_value=[tmp_path / "compare" / "fonts" / "Bebas.ttf"]), \
             patch(f"{_MOD}.detect_typesetting", return_value=[BookmarkEntry(0, 100)]) as mock_detect:
            reports = prepare_directory(tmp_path, SubprepConfig(), lambda d, t: progress.append((d, t)))

        workspace = tmp_path / "compare"
        assert (workspace / "fonts").is_dir()
        assert [r.group for r in reports] == ["A", "B"]
        assert all(r.ok for r in reports)
        assert mock_index.call_count == 2
        assert mock_extract.call_args_list[0][0] == (low, 2, workspace / "[A] Show - 01.ass")
        assert progress == [(1, 2), (2, 2)]

        first = reports[0]
        assert first.subtitle is StepStatus.SUCCESS
        assert first.fonts is StepStatus.SUCCESS
        assert first.font_count == 1
        assert first.bookmark_count == 1
        assert first.bookmarks_path == workspace / "[A] Show - 01.bookmarks"
        mock_detect.assert_any_call(workspace / "[A] Show - 01.ass", first.bookmarks_path,
                                    SubprepConfig().detection)

        script = (workspace / "[A] Show - 01.vpy").read_text(encoding="utf-8")
        assert "if True:" in script
        assert "1920, 1080" in script
        assert "if False:" in (workspace / "[B] Show - 01.vpy").read_text(encoding="utf-8")

    def test_no_index_and_srt(self, tmp_path: Path) -> None:
        video = tmp_path / "ep.mkv"
        video.touch()
        config = SubprepConfig.model_validate({"prepare": {"build_index": False}})

        with patch(f"{_MOD}.probe_media", return_value=_info(video, codec="subrip")), \
             patch(f"{_MOD}.build_index") as mock_index, \
             patch(f"{_MOD}.extract_stream", return_value=StepStatus.EXISTS), \
             patch(f"{_MOD}.extract_attachments", return_value=[]), \
             patch(f"{_MOD}.detect_typesetting") as mock_detect:
            [report] = prepare_directory(tmp_path, config)

        mock_index.assert_not_called()
        mock_detect.assert_not_called()
        assert report.index is StepStatus.SKIPPED
        assert report.subtitle is StepStatus.EXISTS
        assert report.subtitle_path == tmp_path / "compare" / "ep.srt"
        assert report.bookmarks_path is None

    def test_failures_are_isolated(self, tmp_path: Path) -> None:
        bad_probe = tmp_path / "a.mkv"
        bad_index = tmp_path / "b.mkv"
        good = tmp_path / "c.mkv"
        for p in (bad_probe, bad_index, good):
            p.touch()

        def _probe(p: Path) -> MediaInfo:
            if p == bad_probe:
                raise ProbeError(p, "Invalid data")
            return _info(p)

        def _index(p: Path, tool: str) -> StepStatus:
            if p == bad_index:
                raise IndexingError(p, "ffmsindex failed")
            return StepStatus.SUCCESS

        with patch(f"{_MOD}.probe_media", side_effect=_probe), \
             patch(f"{_MOD}.build_index", side_effect=_index), \
             patch(f"{_MOD}.extract_stream", return_value=StepStatus.SUCCESS), \
             patch(f"{_MOD}.extract_attachments", return_value=[]), \
             patch(f"{_MOD}.detect_typesetting", return_value=[]):
            reports = prepare_directory(tmp_path, SubprepConfig())

        assert [r.video for r in reports] == [bad_probe, bad_index, good]
        assert "Invalid data" in reports[0].error
        assert "ffmsindex failed" in reports[1].error
        assert reports[2].ok

    def test_ffmpeg_failure_is_isolated(self, tmp_path: Path) -> None:
        broken = tmp_path / "a.mkv"
        good = tmp_path / "b.mkv"
        broken.touch()
        good.touch()

        def _ffmpeg(cmd: list[str]) -> MagicMock:
            process = MagicMock()
            if str(broken) in cmd:
                process.run.side_effect = FfmpegProcessError("Invalid data found when processing input")
            else:
                process.run.side_effect = lambda *a, **kw: Path(cmd[-1]).write_text("[Script Info]\n")
            return process

        with patch(f"{_MOD}.probe_media", side_effect=lambda p: _info(p)), \
             patch(f"{_MOD}.build_index", return_value=StepStatus.SUCCESS), \
             patch("subprep.ingestion.extract.FfmpegProcess", side_effect=_ffmpeg), \
             patch(f"{_MOD}.extract_attachments", return_value=[]), \
             patch(f"{_MOD}.detect_typesetting", return_value=[]):
            reports = prepare_directory(tmp_path, SubprepConfig())

        assert "Invalid data" in reports[0].error
        assert not (tmp_path / "compare" / "a.ass").exists()
        assert reports[1].ok
        assert reports[1].subtitle is StepStatus.SUCCESS
        assert (tmp_path / "compare" / "b.ass").exists()
