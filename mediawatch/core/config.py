"""Configuration dataclasses with validation."""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class MediaType(Enum):
    """Archive category a file is sorted into."""
    VIDEOS = "videos"
    IMAGES = "images"
    AUDIO = "audio"


class IngestSource(Enum):
    """How a file reached the ingestor."""
    DROP = "drop"      # Explicit user action (CLI ingest, dropped items)
    WATCH = "watch"    # Live filesystem event in the watched folder
    SCAN = "scan"      # Pre-existing file discovered when the watcher starts


# --- File Type Definitions ---
VIDEO_EXTS = frozenset({".mp4", ".mov", ".avi", ".mkv", ".mxf"})
AUDIO_EXTS = frozenset({".mp3", ".wav", ".aac", ".flac"})
IMAGE_EXTS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".arw"})

EXT_TO_TYPE: dict[str, MediaType] = {}
for _ext in VIDEO_EXTS:
    EXT_TO_TYPE[_ext] = MediaType.VIDEOS
for _ext in AUDIO_EXTS:
    EXT_TO_TYPE[_ext] = MediaType.AUDIO
for _ext in IMAGE_EXTS:
    EXT_TO_TYPE[_ext] = MediaType.IMAGES

MANIFEST_FILENAME = "media-history.json"
ENV_PREFIX = "MEDIAWATCH_"


@dataclass(slots=True)
class WatcherConfig:
    """Main configuration for ingestion, watching and history.

    All fields are validated on construction.
    """
    # Required
    archive_root: Path

    # Watched folder (only needed by the watch command)
    watch_dir: Optional[Path] = None

    # Manifest
    manifest_path: Optional[Path] = None

    # External tools
    ffprobe_bin: str = "ffprobe"
    exiftool_bin: str = "exiftool"
    probe_timeout: float = 30.0

    # Watcher: wait until a new file stops growing before ingesting it
    stability_threshold: float = 2.0
    poll_interval: float = 0.1

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.archive_root = Path(self.archive_root).expanduser().resolve()
        if self.watch_dir is not None:
            self.watch_dir = Path(self.watch_dir).expanduser().resolve()

        if self.probe_timeout <= 0:
            raise ValueError("Probe timeout must be positive")

        if self.stability_threshold < 0:
            raise ValueError("Stability threshold cannot be negative")

        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")

        if self.manifest_path is None:
            self.manifest_path = self.archive_root / MANIFEST_FILENAME
        else:
            self.manifest_path = Path(self.manifest_path).expanduser()

    @property
    def resolved_manifest_path(self) -> Path:
        return self.manifest_path or (self.archive_root / MANIFEST_FILENAME)

    @classmethod
    def from_env(cls, **overrides) -> "WatcherConfig":
        """Build a config from MEDIAWATCH_* variables; keyword overrides win.

        Overrides whose value is None are ignored so CLI flags that were not
        given fall through to the environment.
        """
        env = os.environ
        values: dict = {
            "archive_root": env.get(f"{ENV_PREFIX}ARCHIVE", "sorted-media"),
            "watch_dir": env.get(f"{ENV_PREFIX}WATCH_DIR"),
            "manifest_path": env.get(f"{ENV_PREFIX}MANIFEST"),
            "ffprobe_bin": env.get(f"{ENV_PREFIX}FFPROBE", "ffprobe"),
            "exiftool_bin": env.get(f"{ENV_PREFIX}EXIFTOOL", "exiftool"),
        }
        if f"{ENV_PREFIX}PROBE_TIMEOUT" in env:
            values["probe_timeout"] = float(env[f"{ENV_PREFIX}PROBE_TIMEOUT"])
        if f"{ENV_PREFIX}STABILITY" in env:
            values["stability_threshold"] = float(env[f"{ENV_PREFIX}STABILITY"])

        values.update({k: v for k, v in overrides.items() if v is not None})

        for key in ("archive_root", "watch_dir", "manifest_path"):
            if values.get(key) is not None:
                values[key] = Path(values[key])

        return cls(**values)
