"""Core domain models, configuration and protocols."""
from .config import WatcherConfig, MediaType, IngestSource
from .errors import (
    MediaWatchError,
    UnsupportedType,
    ExtractionFailure,
    ProbeFailure,
    TagReadFailure,
    CopyFailure,
    ManifestIOFailure,
    ReconcileObservationFailure,
)
from .models import (
    ManifestEntry,
    VideoAudioMetadata,
    ImageMetadata,
    ProgressState,
    IngestResult,
    IngestStats,
)
from .protocols import MediaProbe, TagReader, ProgressObserver

__all__ = [
    # Config
    "WatcherConfig",
    "MediaType",
    "IngestSource",
    # Errors
    "MediaWatchError",
    "UnsupportedType",
    "ExtractionFailure",
    "ProbeFailure",
    "TagReadFailure",
    "CopyFailure",
    "ManifestIOFailure",
    "ReconcileObservationFailure",
    # Models
    "ManifestEntry",
    "VideoAudioMetadata",
    "ImageMetadata",
    "ProgressState",
    "IngestResult",
    "IngestStats",
    # Protocols
    "MediaProbe",
    "TagReader",
    "ProgressObserver",
]
