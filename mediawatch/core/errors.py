"""Exception hierarchy for ingestion, extraction and manifest operations."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class MediaWatchError(Exception):
    """Base exception for all mediawatch errors."""


class UnsupportedType(MediaWatchError):
    """File extension is not in any known media set."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Unsupported file type: {self.path.suffix or self.path.name}")


class ExtractionFailure(MediaWatchError):
    """Metadata could not be read from a file."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path.name}: {reason}")


class ProbeFailure(ExtractionFailure):
    """ffprobe exited non-zero, timed out, or printed unparsable output."""


class TagReadFailure(ExtractionFailure):
    """The embedded-tag reader could not read the file."""


class CopyFailure(MediaWatchError):
    """Source could not be copied into the archive."""

    def __init__(self, source: Path, target: Path, cause: Optional[BaseException] = None):
        self.source = Path(source)
        self.target = Path(target)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to copy {self.source} -> {self.target}{detail}")


class ManifestIOFailure(MediaWatchError):
    """Manifest file is unreadable, corrupt or unwritable."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Manifest I/O failed for {self.path}{detail}")


class ReconcileObservationFailure(MediaWatchError):
    """A directory could not be listed while walking the archive."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not observe {self.path}{detail}")
