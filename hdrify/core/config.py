"""
Configuration management for hdrify.

Provides a flat settings object that can be loaded from a JSON file and
overridden with environment variables.
"""

import json
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any


ENV_PREFIX = "HDRIFY_"


@dataclass
class Settings:
    """
    Settings shared by the engine, the orchestrator and the outer surfaces.

    Example:
        settings = Settings.load("hdrify.json")
        engine = FFmpegEngine(settings.ffmpeg_path, settings.scratch_dir)
    """
    ffmpeg_path: str = ""  # empty = look up "ffmpeg" on PATH
    scratch_dir: str = ""  # empty = system temp directory
    load_timeout: float = 30.0
    input_name: str = "input-video.mp4"
    output_name: str = "hdr-output.mp4"
    log_capacity: int = 25
    result_filename: str = "hdr-video.mp4"
    result_media_type: str = "video/mp4"
    default_intensity: float = 1.25
    default_curve: str = "hable"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load settings from a JSON file."""
        return load_config(path)

    def save(self, path: str | Path) -> None:
        """Save settings to a JSON file."""
        save_config(self, path)

    def to_dict(self) -> dict:
        """Convert settings to a dictionary."""
        return asdict(self)

    def with_overrides(self, overrides: dict[str, Any]) -> "Settings":
        """
        Return a copy with string overrides applied.

        Values are coerced to the type of the field default. Unknown keys
        are ignored.
        """
        data = self.to_dict()
        for f in fields(self):
            if f.name not in overrides:
                continue
            value = overrides[f.name]
            current = data[f.name]
            if isinstance(current, bool):
                value = str(value).lower() in ("true", "yes", "1", "on")
            elif isinstance(current, int):
                value = int(value)
            elif isinstance(current, float):
                value = float(value)
            else:
                value = str(value)
            data[f.name] = value
        return Settings(**data)


def load_config(path: str | Path) -> Settings:
    """
    Load settings from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed Settings object

    Raises:
        FileNotFoundError: If the config file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    return Settings().with_overrides(data)


def save_config(settings: Settings, path: str | Path) -> None:
    """
    Save settings to a JSON file.

    Args:
        settings: Settings object to save
        path: Output path for the JSON file
    """
    path = Path(path)
    with open(path, "w") as f:
        json.dump(settings.to_dict(), f, indent=2)


def get_env_config(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    Get configuration from environment variables.

    All environment variables starting with the prefix will be included.
    Variable names are converted to lowercase with the prefix removed.

    Example:
        HDRIFY_FFMPEG_PATH=/opt/bin/ffmpeg -> {"ffmpeg_path": "/opt/bin/ffmpeg"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            config[config_key] = value
    return config


def resolve_settings(path: str | Path | None = None) -> Settings:
    """
    Build the effective settings: defaults, then the file, then environment.

    Args:
        path: Optional JSON configuration file
    """
    settings = load_config(path) if path else Settings()
    return settings.with_overrides(get_env_config())
