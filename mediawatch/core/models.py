"""Domain models for manifest entries, media metadata and progress."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .config import IngestSource, MediaType
from .date_utils import parse_iso, to_iso

# Legacy manifests marked passively discovered files inside the path text
LEGACY_SCAN_MARKER = "detected on startup"

_ACRONYMS = {"utc", "uid", "umid"}


def camel_key(name: str) -> str:
    """Map a snake_case field name to its manifest key (``creation_time_utc`` -> ``creationTimeUTC``)."""
    first, *rest = name.split("_")
    return first + "".join(p.upper() if p in _ACRONYMS else p.capitalize() for p in rest)


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, enums and datetimes to JSON types."""
    if is_dataclass(value) and not isinstance(value, type):
        return {camel_key(f.name): to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


def _from_flat(cls, data: Optional[dict]):
    """Build a flat dataclass from a camelCase dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return None
    kwargs = {}
    for f in fields(cls):
        key = camel_key(f.name)
        if key in data:
            kwargs[f.name] = data[key]
    return cls(**kwargs)


# ============ Video / audio metadata ============

@dataclass(slots=True)
class TimecodeInfo:
    """Timecode block for professional video workflows."""
    start_timecode: Optional[str] = None
    end_timecode: Optional[str] = None
    duration: Optional[float] = None
    frame_rate: Optional[str] = None
    drop_frame: Any = None
    alt_timecode: Optional[str] = None
    source_timecode: Optional[str] = None
    creation_timecode: Optional[str] = None
    timecode_track: Optional[dict] = None
    all_timecode_fields: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TimecodeInfo":
        info = _from_flat(cls, data) or cls()
        if info.all_timecode_fields is None:
            info.all_timecode_fields = {}
        return info


@dataclass(slots=True)
class VideoStreamInfo:
    codec: Optional[str] = None
    codec_long_name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[str] = None
    frame_rate: Optional[str] = None
    avg_frame_rate: Optional[str] = None
    pixel_format: Optional[str] = None
    color_space: Optional[str] = None
    color_range: Optional[str] = None
    bit_rate: Optional[int] = None
    quality: Optional[str] = None


@dataclass(slots=True)
class AudioStreamInfo:
    codec: Optional[str] = None
    codec_long_name: Optional[str] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    channel_layout: Optional[str] = None
    bit_rate: Optional[int] = None
    bits_per_sample: Optional[int] = None


@dataclass(slots=True)
class DeviceTags:
    """Container-level tags written by cameras and recorders."""
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    date: Optional[str] = None
    genre: Optional[str] = None
    comment: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    software: Optional[str] = None
    encoder: Optional[str] = None
    product_name: Optional[str] = None
    product_version: Optional[str] = None
    product_uid: Optional[str] = None
    recorded_date: Optional[str] = None
    shooting_date: Optional[str] = None
    material_package_umid: Optional[str] = None
    package_uid: Optional[str] = None
    reel: Optional[str] = None
    scene: Optional[str] = None
    take: Optional[str] = None
    angle: Optional[str] = None
    location: Optional[str] = None
    gps_coordinates: Optional[str] = None
    copyright: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None


@dataclass(slots=True)
class StreamSummary:
    index: Optional[int] = None
    codec_type: Optional[str] = None
    codec_name: Optional[str] = None
    duration: Optional[float] = None


@dataclass(slots=True)
class VideoAudioMetadata:
    """Normalized probe output for video and audio files."""
    duration: Optional[float] = None
    size: Optional[int] = None
    bit_rate: Optional[int] = None
    format_name: Optional[str] = None
    format_long_name: Optional[str] = None
    start_time: Optional[float] = None
    creation_time: Optional[str] = None
    creation_time_utc: Optional[str] = None
    timecode: TimecodeInfo = field(default_factory=TimecodeInfo)
    video: Optional[VideoStreamInfo] = None
    audio: Optional[AudioStreamInfo] = None
    tags: DeviceTags = field(default_factory=DeviceTags)
    streams_count: int = 0
    streams: list[StreamSummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "VideoAudioMetadata":
        return cls(
            duration=data.get("duration"),
            size=data.get("size"),
            bit_rate=data.get("bitRate"),
            format_name=data.get("formatName"),
            format_long_name=data.get("formatLongName"),
            start_time=data.get("startTime"),
            creation_time=data.get("creationTime"),
            creation_time_utc=data.get("creationTimeUTC"),
            timecode=TimecodeInfo.from_dict(data.get("timecode")),
            video=_from_flat(VideoStreamInfo, data.get("video")),
            audio=_from_flat(AudioStreamInfo, data.get("audio")),
            tags=_from_flat(DeviceTags, data.get("tags")) or DeviceTags(),
            streams_count=data.get("streamsCount") or 0,
            streams=[_from_flat(StreamSummary, s) for s in data.get("streams") or [] if isinstance(s, dict)],
        )


# ============ Image metadata ============

@dataclass(slots=True)
class ImageMetadata:
    """Normalized embedded-tag output for still images."""
    make: Optional[str] = None
    model: Optional[str] = None
    software: Optional[str] = None

    date_time_original: Optional[str] = None
    date_time_digitized: Optional[str] = None
    date_time: Optional[str] = None
    date_time_original_utc: Optional[str] = None
    date_time_digitized_utc: Optional[str] = None
    date_time_utc: Optional[str] = None

    iso: Optional[float] = None
    f_number: Optional[float] = None
    exposure_time: Optional[float] = None
    focal_length: Optional[float] = None
    white_balance: Any = None
    flash: Any = None

    orientation: Any = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    color_space: Any = None

    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    gps_altitude: Optional[float] = None

    artist: Optional[str] = None
    copyright: Optional[str] = None
    image_description: Optional[str] = None
    x_resolution: Optional[float] = None
    y_resolution: Optional[float] = None
    resolution_unit: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> "ImageMetadata":
        return _from_flat(cls, data)


Metadata = Union[VideoAudioMetadata, ImageMetadata]


def metadata_from_dict(media_type: MediaType, data: Optional[dict]) -> Optional[Metadata]:
    """Rebuild the metadata variant that belongs to a media type."""
    if not isinstance(data, dict):
        return None
    if media_type == MediaType.IMAGES:
        return ImageMetadata.from_dict(data)
    return VideoAudioMetadata.from_dict(data)


# ============ Manifest ============

@dataclass(slots=True)
class ManifestEntry:
    """One ingested file.

    Identity fields never change after append; only ``removed`` and
    ``removed_date`` may transition, and only from false to true.
    """
    file_name: str
    original_path: str
    original_drop_path: str
    sorted_path: str
    file_size: int
    processed_date: datetime
    file_date: datetime
    media_type: MediaType
    metadata: Optional[Metadata] = None
    removed: bool = False
    removed_date: Optional[datetime] = None
    ingest_source: IngestSource = IngestSource.DROP

    @property
    def is_passive_scan(self) -> bool:
        return self.ingest_source == IngestSource.SCAN

    def mark_removed(self, when: datetime) -> bool:
        """Soft-delete the entry. Returns False if it was already removed."""
        if self.removed:
            return False
        self.removed = True
        self.removed_date = when
        return True

    def to_dict(self) -> dict:
        data = {
            "fileName": self.file_name,
            "originalPath": self.original_path,
            "originalDropPath": self.original_drop_path,
            "sortedPath": self.sorted_path,
            "fileSize": self.file_size,
            "processedDate": to_iso(self.processed_date),
            "fileDate": to_iso(self.file_date),
            "mediaType": self.media_type.value,
            "ingestSource": self.ingest_source.value,
            "metadata": to_jsonable(self.metadata),
            "removed": self.removed,
        }
        if self.removed_date is not None:
            data["removedDate"] = to_iso(self.removed_date)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ManifestEntry":
        """Parse a persisted entry.

        Raises:
            KeyError/ValueError: If a required field is missing or malformed.
        """
        media_type = MediaType(data["mediaType"])
        processed = parse_iso(data["processedDate"])
        file_date = parse_iso(data["fileDate"])
        if processed is None or file_date is None:
            raise ValueError(f"Invalid timestamps in entry {data.get('fileName')!r}")

        original_path = data["originalPath"]
        source_value = data.get("ingestSource")
        if source_value:
            source = IngestSource(source_value)
        elif LEGACY_SCAN_MARKER in (original_path or ""):
            source = IngestSource.SCAN
        else:
            source = IngestSource.DROP

        return cls(
            file_name=data["fileName"],
            original_path=original_path,
            original_drop_path=data.get("originalDropPath") or original_path,
            sorted_path=data["sortedPath"],
            file_size=int(data.get("fileSize") or 0),
            processed_date=processed,
            file_date=file_date,
            media_type=media_type,
            metadata=metadata_from_dict(media_type, data.get("metadata")),
            removed=bool(data.get("removed", False)),
            removed_date=parse_iso(data.get("removedDate")),
            ingest_source=source,
        )


# ============ Progress ============

@dataclass(slots=True)
class ProgressState:
    """Snapshot of the current top-level operation."""
    is_processing: bool = False
    current_file: str = ""
    processed_count: int = 0
    total_count: int = 0
    current_operation: str = ""
    start_time: Optional[datetime] = None

    def elapsed_seconds(self, now: datetime) -> float:
        if self.start_time is None:
            return 0.0
        return (now - self.start_time).total_seconds()

    def to_dict(self) -> dict:
        return to_jsonable(self)


# ============ Ingestion results ============

class IngestAction(Enum):
    """What happened to a single file."""
    COPIED = "copied"
    SKIPPED_UNSUPPORTED = "skipped_unsupported"
    SKIPPED_KNOWN = "skipped_known"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Result of ingesting a single file."""
    path: Path
    action: IngestAction
    entry: Optional[ManifestEntry] = None
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.action == IngestAction.COPIED


@dataclass(slots=True)
class IngestStats:
    """Mutable statistics for one top-level operation."""
    total_files: int = 0
    processed: int = 0
    copied: int = 0
    unsupported: int = 0
    skipped_known: int = 0
    errors: int = 0
    elapsed_seconds: float = 0.0

    def record(self, result: IngestResult) -> None:
        """Record a processing result."""
        match result.action:
            case IngestAction.COPIED:
                self.processed += 1
                self.copied += 1
            case IngestAction.ERROR:
                self.processed += 1
                self.errors += 1
            case IngestAction.SKIPPED_UNSUPPORTED:
                self.unsupported += 1
            case IngestAction.SKIPPED_KNOWN:
                self.skipped_known += 1

    def summary(self) -> dict[str, int]:
        return {
            "total": self.total_files,
            "processed": self.processed,
            "copied": self.copied,
            "unsupported": self.unsupported,
            "skipped_known": self.skipped_known,
            "errors": self.errors,
        }
