"""JSON manifest store: the durable, ordered history of ingested files."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..core.config import MediaType
from ..core.date_utils import utcnow
from ..core.errors import ManifestIOFailure, ReconcileObservationFailure
from ..core.models import ManifestEntry

logger = logging.getLogger(__name__)


class JsonManifestStore:
    """Manifest persisted as a single UTF-8 JSON array.

    Every mutation reads the whole manifest, changes it in memory and writes
    it back in full. Writes go to a temporary file that replaces the manifest
    atomically, and read-modify-write cycles are serialized by a lock so
    concurrent callers in one process cannot drop each other's entries.
    """

    def __init__(self, manifest_path: Path, archive_root: Path):
        """Initialize the store.

        Args:
            manifest_path: Location of the JSON manifest.
            archive_root: Root of the sorted archive, walked by reconcile().
        """
        self._path = Path(manifest_path)
        self._archive_root = Path(archive_root)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # --- Raw I/O ---

    def _read_raw(self) -> list[dict]:
        if not self._path.exists():
            return []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestIOFailure(self._path, e) from e
        if not isinstance(data, list):
            raise ManifestIOFailure(self._path, ValueError("manifest is not a JSON array"))
        return data

    def _write_raw(self, data: list[dict]) -> None:
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ManifestIOFailure(self._path, e) from e

    def _parse(self, data: list[dict]) -> list[ManifestEntry]:
        try:
            return [ManifestEntry.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise ManifestIOFailure(self._path, e) from e

    def _save(self, entries: list[ManifestEntry]) -> None:
        self._write_raw([entry.to_dict() for entry in entries])

    # --- Public API ---

    def ensure_initialized(self) -> bool:
        """Create an empty manifest if none exists. Returns True if created."""
        with self._lock:
            if self._path.exists():
                return False
            self._write_raw([])
            logger.info("Created new manifest file %s", self._path)
            return True

    def load_all(self) -> list[ManifestEntry]:
        """Read the full manifest in insertion order.

        Raises:
            ManifestIOFailure: The file is unreadable or corrupt.
        """
        with self._lock:
            return self._parse(self._read_raw())

    def append(self, entry: ManifestEntry) -> int:
        """Add an entry at the end. Returns the new manifest length.

        Raises:
            ManifestIOFailure: The manifest could not be read or written.
        """
        with self._lock:
            data = self._read_raw()
            data.append(entry.to_dict())
            self._write_raw(data)
        logger.info("Added to manifest: %s", entry.file_name)
        return len(data)

    def clear(self) -> None:
        """Replace the manifest with an empty list."""
        with self._lock:
            self._write_raw([])
        logger.info("History cleared")

    def known_original_paths(self) -> set[str]:
        return {entry.original_path for entry in self.load_all()}

    def scan_archive(self, on_error: Optional[Callable[[ReconcileObservationFailure], None]] = None) -> set[str]:
        """Collect every file at ``<archive>/<type>/<day>/<file>``.

        Directories that cannot be listed are reported and skipped.
        """
        def report(error: ReconcileObservationFailure) -> None:
            if on_error:
                on_error(error)
            else:
                logger.warning("%s", error)

        existing: set[str] = set()
        for media_type in MediaType:
            type_dir = self._archive_root / media_type.value
            if not type_dir.exists():
                continue
            try:
                day_dirs = [d for d in type_dir.iterdir() if d.is_dir()]
            except OSError as e:
                report(ReconcileObservationFailure(type_dir, e))
                continue

            for day_dir in day_dirs:
                try:
                    for item in day_dir.iterdir():
                        if item.is_file():
                            existing.add(str(item))
                except OSError as e:
                    report(ReconcileObservationFailure(day_dir, e))
        return existing

    def reconcile(self, now: Optional[datetime] = None) -> int:
        """Soft-delete entries whose archived file has disappeared.

        Entries are never dropped and ``removed`` never reverts. The manifest
        is rewritten only when at least one entry changed.

        Returns:
            Number of entries newly marked as removed.

        Raises:
            ManifestIOFailure: The manifest could not be read or written.
        """
        now = now or utcnow()
        with self._lock:
            entries = self.load_all()
            existing = self.scan_archive()

            changed = 0
            for entry in entries:
                if entry.sorted_path and entry.sorted_path not in existing:
                    if entry.mark_removed(now):
                        changed += 1
                        logger.debug("Marked as removed: %s", entry.file_name)

            if changed:
                self._save(entries)
                logger.info("Updated manifest with %d missing files", changed)

        logger.debug("Reconcile complete: %d files present in archive", len(existing))
        return changed
