"""Test doubles and factories shared by the test modules.

The fakes stand in for the external tools (ffprobe, exiftool) and for the
console observer, so the pipeline can run against a temporary directory.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from mediawatch.core.config import IngestSource, MediaType
from mediawatch.core.errors import ProbeFailure, TagReadFailure
from mediawatch.core.models import ManifestEntry, ProgressState
from mediawatch.engines.metadata import MetadataExtractor
from mediawatch.persistence.manifest import JsonManifestStore
from mediawatch.services.file_ops import FileManager
from mediawatch.services.ingest import IngestDependencies, MediaIngestor
from mediawatch.services.progress import ProgressTracker


SAMPLE_PROBE = {
    "format": {
        "filename": "clip.mov",
        "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
        "format_long_name": "QuickTime / MOV",
        "duration": "90.000000",
        "size": "10485760",
        "bit_rate": "932067",
        "start_time": "0.000000",
        "tags": {
            "creation_time": "2024-03-15T10:30:00.000000Z",
            "timecode": "01:00:00:00",
            "make": "Apple",
            "model": "iPhone 15 Pro",
            "com.apple.quicktime.location.ISO6709": "+48.8584+002.2945/",
        },
    },
    "streams": [
        {
            "index": 0,
            "codec_type": "video",
            "codec_name": "h264",
            "codec_long_name": "H.264 / AVC",
            "width": 1920,
            "height": 1080,
            "display_aspect_ratio": "16:9",
            "r_frame_rate": "30/1",
            "avg_frame_rate": "30/1",
            "pix_fmt": "yuv420p",
            "bit_rate": "800000",
            "duration": "90.000000",
        },
        {
            "index": 1,
            "codec_type": "audio",
            "codec_name": "aac",
            "codec_long_name": "AAC (Advanced Audio Coding)",
            "sample_rate": "48000",
            "channels": 2,
            "channel_layout": "stereo",
            "bit_rate": "128000",
        },
        {
            "index": 2,
            "codec_type": "data",
            "codec_name": "timecode",
            "tags": {"timecode": "01:00:00:00"},
        },
    ],
}

SAMPLE_IMAGE_TAGS = {
    "Make": "SONY",
    "Model": "ILCE-7M4",
    "DateTimeOriginal": "2024:03:15 10:30:00",
    "ISO": 400,
    "FNumber": 2.8,
    "ExposureTime": 0.004,
    "FocalLength": 35,
    "ExifImageWidth": 7008,
    "ExifImageHeight": 4672,
    "GPSLatitude": 48.8584,
    "GPSLongitude": 2.2945,
}


class FakeProbe:
    """MediaProbe returning a canned result or raising ProbeFailure."""

    def __init__(self, result: Optional[dict] = None, error: Optional[str] = None):
        self.result = result
        self.error = error
        self.calls: list[Path] = []

    def probe(self, path: Path) -> dict[str, Any]:
        self.calls.append(Path(path))
        if self.error is not None or self.result is None:
            raise ProbeFailure(path, self.error or "FFprobe failed: no result")
        return self.result


class FakeTagReader:
    """TagReader returning canned tags or raising TagReadFailure."""

    def __init__(self, tags: Optional[dict] = None, error: Optional[str] = None):
        self.tags = tags
        self.error = error
        self.calls: list[Path] = []

    @property
    def name(self) -> str:
        return "fake"

    def read(self, path: Path, fields) -> Optional[dict[str, Any]]:
        self.calls.append(Path(path))
        if self.error is not None:
            raise TagReadFailure(path, self.error)
        if self.tags is None:
            return None
        return {k: v for k, v in self.tags.items() if k in set(fields)}


@dataclass
class RecordingObserver:
    """ProgressObserver that keeps everything it is told."""
    states: list[ProgressState] = field(default_factory=list)
    messages: list[tuple[str, str]] = field(default_factory=list)

    def on_progress(self, state: ProgressState) -> None:
        self.states.append(state)

    def on_message(self, message: str, level: str = "info") -> None:
        self.messages.append((message, level))

    def levels(self, level: str) -> list[str]:
        return [m for m, lvl in self.messages if lvl == level]


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def local_noon(year: int, month: int, day: int) -> float:
    """POSIX timestamp of local noon, far from any day boundary."""
    return datetime(year, month, day, 12, 0, 0).timestamp()


def write_media(path: Path, size: int = 1024, mtime: Optional[float] = None) -> Path:
    """Create a file of ``size`` bytes, optionally with a given mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        f.truncate(size)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def make_entry(**overrides) -> ManifestEntry:
    """ManifestEntry with sensible defaults."""
    values = dict(
        file_name="clip.mov",
        original_path="/drop/clip.mov",
        original_drop_path="/drop/clip.mov",
        sorted_path="/archive/videos/2024-03-15/clip.mov",
        file_size=1024,
        processed_date=utc(2024, 3, 15, 12, 0, 0),
        file_date=utc(2024, 3, 15, 10, 0, 0),
        media_type=MediaType.VIDEOS,
        metadata=None,
        ingest_source=IngestSource.DROP,
    )
    values.update(overrides)
    return ManifestEntry(**values)


@dataclass
class Harness:
    """Ingestor wired to a temporary archive with fake tools."""
    archive: Path
    store: JsonManifestStore
    file_manager: FileManager
    tracker: ProgressTracker
    observer: RecordingObserver
    probe: FakeProbe
    tag_reader: FakeTagReader
    extractor: MetadataExtractor
    ingestor: MediaIngestor


def build_harness(
    archive: Path,
    probe: Optional[FakeProbe] = None,
    tag_reader: Optional[FakeTagReader] = None,
) -> Harness:
    archive = archive.resolve()
    probe = probe or FakeProbe(error="FFprobe failed: not a media file")
    tag_reader = tag_reader or FakeTagReader()
    observer = RecordingObserver()
    tracker = ProgressTracker([observer])
    store = JsonManifestStore(archive / "media-history.json", archive)
    file_manager = FileManager(archive)
    extractor = MetadataExtractor(probe, tag_reader)
    ingestor = MediaIngestor(IngestDependencies(extractor, file_manager, store, tracker))
    return Harness(archive, store, file_manager, tracker, observer, probe, tag_reader, extractor, ingestor)
