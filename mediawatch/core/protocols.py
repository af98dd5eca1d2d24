"""Protocol definitions (interfaces) for dependency injection."""
from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from .models import ProgressState


class MediaProbe(Protocol):
    """Interface for the external video/audio probe.

    Implementations:
    - FFprobe: runs the ffprobe binary and parses its JSON output
    """

    @abstractmethod
    def probe(self, path: Path) -> dict[str, Any]:
        """Return the raw ``{"format": ..., "streams": [...]}`` structure.

        Raises:
            ProbeFailure: Non-zero exit, timeout or unparsable output.
        """
        ...


class TagReader(Protocol):
    """Interface for reading embedded image tags.

    Implementations:
    - ExifToolReader: runs exiftool (preferred, broad format support)
    - PillowTagReader: pure Python fallback when exiftool is not installed
    """

    @abstractmethod
    def read(self, path: Path, fields: Sequence[str]) -> Optional[dict[str, Any]]:
        """Return a flat ``{TagName: value}`` map, or None if nothing was found.

        Missing fields are simply absent from the map.

        Raises:
            TagReadFailure: The reader could not process the file at all.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Reader name for logging."""
        ...


class ProgressObserver(Protocol):
    """Receives progress snapshots and status lines."""

    @abstractmethod
    def on_progress(self, state: ProgressState) -> None:
        """Called with the merged state after every update."""
        ...

    @abstractmethod
    def on_message(self, message: str, level: str = "info") -> None:
        """Called with a human-readable status line (info/success/warning/error)."""
        ...
