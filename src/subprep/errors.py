from pathlib import Path


class SubprepError(Exception):
    """Base class for all subprep errors."""


class ConfigError(SubprepError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot load configuration '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file valid JSON matching the subprep config schema?\n"
            f"  Tip: Delete the file to fall back to built-in defaults."
        )
        self.path = path
        self.detail = detail


class SubtitleReadError(SubprepError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot read subtitle file '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Does the file exist and is it readable?\n"
            f"  Tip: Try re-saving the file as UTF-8 in a text editor."
        )
        self.path = path
        self.detail = detail


class BookmarkWriteError(SubprepError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Failed to write bookmark file '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is '{path.parent}' writable and is there free disk space?"
        )
        self.path = path
        self.detail = detail


class ProbeError(SubprepError):
    def __init__(self, source: Path, detail: str) -> None:
        super().__init__(
            f"Failed to inspect container '{source.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is FFmpeg installed and in PATH? Is '{source.name}' a valid media file?\n"
            f"  Tip: Run `ffprobe '{source}' -v quiet -show_streams` to verify the file is readable."
        )
        self.source = source
        self.detail = detail


class ExtractionError(SubprepError):
    def __init__(self, source: Path, detail: str) -> None:
        super().__init__(
            f"Failed to extract a stream from '{source.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is FFmpeg installed and in PATH? Is there free space in the workspace?"
        )
        self.source = source
        self.detail = detail


class IndexingError(SubprepError):
    def __init__(self, source: Path, detail: str) -> None:
        super().__init__(
            f"Failed to index '{source.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the indexer (ffmsindex) installed and in PATH?\n"
            f"  Tip: Pass --no-index to skip indexing."
        )
        self.source = source
        self.detail = detail


class ScriptTemplateError(SubprepError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot render playback script '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Does the template only use $video_path, $subtitle_path, $group, "
            f"$target_width, $target_height and $upscale?\n"
            f"  Tip: Write a literal dollar sign as $$."
        )
        self.path = path
        self.detail = detail


class FontError(SubprepError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Font operation failed for '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file a valid TrueType/OpenType font? Is fontconfig installed?"
        )
        self.path = path
        self.detail = detail
