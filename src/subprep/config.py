"""Configuration model and loader.

Settings come from an optional JSON file; every field has a built-in default
so an empty object (or no file at all) is a valid configuration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from subprep.errors import ConfigError

CONFIG_FILENAME = "subprep.json"
CONFIG_ENV_VAR = "SUBPREP_CONFIG"


class DetectionSettings(BaseModel):
    """Thresholds for typesetting detection."""
    score_threshold: int = Field(default=5, ge=0, description="Minimum override-tag score")
    time_gap_s: float = Field(default=2.0, ge=0.0, description="Minimum seconds between bookmarks")
    line_gap: int = Field(default=2, ge=0, description="Minimum dialogue lines between bookmarks")
    effect_qualifies: bool = False  # non-empty Effect field counts as typesetting


class PrepareSettings(BaseModel):
    template: Optional[str] = None      # None -> built-in VapourSynth template
    script_extension: str = ".vpy"
    target_height: Optional[int] = Field(default=None, gt=0)
    build_index: bool = True
    index_tool: str = "ffmsindex"
    extract_fonts: bool = True
    detect_typesetting: bool = True
    workspace_dirname: str = "compare"
    video_extensions: list[str] = Field(default_factory=lambda: [".mkv", ".mp4", ".avi", ".m2ts"])

    @field_validator("script_extension", mode="before")
    @classmethod
    def dotted_extension(cls, v: str) -> str:
        return v if v.startswith(".") else f".{v}"

    @field_validator("video_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]


class SubprepConfig(BaseModel):
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    prepare: PrepareSettings = Field(default_factory=PrepareSettings)


def load_config(path: Path) -> SubprepConfig:
    """Load and validate a JSON config file. Raises ConfigError on failure."""
    try:
        return SubprepConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        field_errors = "; ".join(
            f"{' -> '.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(path, f"Schema validation failed: {field_errors}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(path, str(e)) from e


def resolve_config(explicit: Optional[Path] = None, directory: Optional[Path] = None) -> SubprepConfig:
    """Return the effective configuration.

    Looks at *explicit*, then the SUBPREP_CONFIG environment variable, then
    ``subprep.json`` inside *directory*. Falls back to defaults when none of
    them points at a file.
    """
    if explicit is not None:
        return load_config(explicit)
    env_val = os.environ.get(CONFIG_ENV_VAR)
    if env_val:
        return load_config(Path(env_val).expanduser().resolve())
    if directory is not None:
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return load_config(candidate)
    return SubprepConfig()
