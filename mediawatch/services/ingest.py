"""Ingestion pipeline - orchestrates classification, extraction, copy and manifest."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..core.config import IngestSource
from ..core.date_utils import from_timestamp, utcnow
from ..core.errors import CopyFailure, ManifestIOFailure, ReconcileObservationFailure
from ..core.models import IngestAction, IngestResult, IngestStats, ManifestEntry
from ..engines.classifier import classify, is_media
from ..engines.metadata import MetadataExtractor
from ..persistence.manifest import JsonManifestStore
from .file_ops import FileManager
from .progress import ProgressTracker
from .scanner import count_media_files, count_media_in_paths, walk_media_files

logger = logging.getLogger(__name__)


@dataclass
class IngestDependencies:
    """All collaborators needed by the ingestor.

    This is explicitly passed in - no globals or singletons.
    """
    extractor: MetadataExtractor
    file_manager: FileManager
    store: JsonManifestStore
    progress: ProgressTracker


class MediaIngestor:
    """Runs files through classify -> extract -> allocate -> copy -> append.

    Everything is sequential: a top-level operation (one file, one folder,
    or a batch of dropped items) finishes each file before starting the next.
    A failure on one file is reported and the loop moves on.
    """

    def __init__(self, deps: IngestDependencies, clock: Callable[[], datetime] = utcnow):
        """Initialize ingestor with its dependencies.

        Args:
            deps: All required collaborators.
            clock: Source of the ingestion timestamp.
        """
        self._deps = deps
        self._clock = clock

    @property
    def progress(self) -> ProgressTracker:
        return self._deps.progress

    # --- Top-level operations ---

    def ingest_file(self, path: Path, source: IngestSource = IngestSource.DROP) -> IngestResult:
        """Ingest a single file as its own operation.

        Raises:
            ManifestIOFailure: The file was copied but could not be recorded.
        """
        path = Path(path)
        self.progress.reset(total=1 if is_media(path) else 0, operation="Processing file")
        try:
            return self._ingest_one(path, path, source)
        finally:
            self.progress.finish("File completed")

    def ingest_folder(
        self,
        folder: Path,
        source: IngestSource = IngestSource.DROP,
    ) -> IngestStats:
        """Ingest every media file below a folder.

        A first pass counts eligible files so progress has a total; the
        second pass ingests them depth-first. Every file keeps ``folder`` as
        its ``original_drop_path``.
        """
        folder = Path(folder)
        stats = IngestStats(total_files=count_media_files(folder))
        self.progress.reset(total=stats.total_files, operation=f"Scanning folder: {folder.name}")
        self.progress.message(f"Found {stats.total_files} media files in {folder.name}")

        try:
            self._ingest_tree(folder, folder, source, stats)
        except ReconcileObservationFailure as e:
            self.progress.message(f"Error processing folder {folder.name}: {e}", "error")
            self.progress.finish("Processing failed")
            return stats

        stats.elapsed_seconds = self.progress.elapsed_seconds()
        self.progress.finish(
            f"Completed processing {folder.name} ({stats.elapsed_seconds:.1f}s)"
        )
        self.progress.message(
            f"Processed {stats.processed} media files from {folder.name} "
            f"in {stats.elapsed_seconds:.1f} seconds",
            "success",
        )
        return stats

    def ingest_paths(
        self,
        paths: Iterable[Path],
        source: IngestSource = IngestSource.DROP,
    ) -> IngestStats:
        """Ingest a batch of dropped items (files and folders) as one operation."""
        items = [Path(p) for p in paths]
        stats = IngestStats(total_files=count_media_in_paths(items))
        self.progress.message(f"Processing {len(items)} dropped items...")
        self.progress.reset(total=stats.total_files, operation="Starting processing")

        for item in items:
            if item.is_dir():
                try:
                    self._ingest_tree(item, item, source, stats)
                except ReconcileObservationFailure as e:
                    self.progress.message(f"Error processing {item.name}: {e}", "error")
            elif item.is_file():
                if is_media(item):
                    stats.record(self._ingest_guarded(item, item, source))
                else:
                    stats.unsupported += 1
                    self.progress.message(f"Skipped unsupported file type: {item.name}", "warning")
            else:
                stats.errors += 1
                self.progress.message(f"Error processing {item.name}: no such file or directory", "error")

        stats.elapsed_seconds = self.progress.elapsed_seconds()
        self.progress.finish(f"All items processed ({stats.elapsed_seconds:.1f}s)")
        logger.info("Batch finished: %s", stats.summary())
        return stats

    # --- Per-file work ---

    def _ingest_tree(self, folder: Path, drop_path: Path, source: IngestSource, stats: IngestStats) -> None:
        def report(error: ReconcileObservationFailure) -> None:
            self.progress.message(f"Skipping unreadable folder: {error}", "warning")

        for path in walk_media_files(folder, on_error=report):
            stats.record(self._ingest_guarded(path, drop_path, source))

    def _ingest_guarded(self, path: Path, drop_path: Path, source: IngestSource) -> IngestResult:
        """Ingest one file inside a batch; manifest and stat errors stay local."""
        try:
            return self._ingest_one(path, drop_path, source)
        except (ManifestIOFailure, OSError) as e:
            self.progress.message(f"Error processing {path.name}: {e}", "error")
            self.progress.advance("File failed")
            return IngestResult(path=path, action=IngestAction.ERROR, error=str(e))

    def _ingest_one(self, path: Path, drop_path: Path, source: IngestSource) -> IngestResult:
        """Run one file through the pipeline.

        Raises:
            ManifestIOFailure: Copy succeeded but the manifest write failed.
            OSError: The source could not be stat'ed.
        """
        deps = self._deps
        self.progress.update(current_file=str(path), current_operation="Processing file")

        media_type = classify(path)
        if media_type is None:
            self.progress.message(f"Unsupported file type: {path.suffix or path.name}", "error")
            return IngestResult(path=path, action=IngestAction.SKIPPED_UNSUPPORTED)

        stat = path.stat()
        file_date = from_timestamp(stat.st_mtime)

        self.progress.update(current_file=str(path), current_operation="Reading metadata")
        metadata = deps.extractor.extract(path, media_type)

        self.progress.update(current_file=str(path), current_operation="Copying file")
        try:
            target = deps.file_manager.allocate(path, media_type, file_date)
            deps.file_manager.copy_file(path, target)
        except (CopyFailure, OSError) as e:
            error = e if isinstance(e, CopyFailure) else CopyFailure(path, deps.file_manager.archive_root, e)
            self.progress.message(f"Error: {error}", "error")
            self.progress.advance("File failed")
            return IngestResult(path=path, action=IngestAction.ERROR, error=str(error))

        entry = ManifestEntry(
            file_name=path.name,
            original_path=str(path.absolute()),
            original_drop_path=str(Path(drop_path).absolute()),
            sorted_path=str(target),
            file_size=stat.st_size,
            processed_date=self._clock(),
            file_date=file_date,
            media_type=media_type,
            metadata=metadata,
            ingest_source=source,
        )
        deps.store.append(entry)

        self.progress.advance("File completed")
        self.progress.message(
            f"Sorted: {path.name} -> {media_type.value}/{target.parent.name}/",
            "success",
        )
        return IngestResult(path=path, action=IngestAction.COPIED, entry=entry)


def filter_unknown(paths: Iterable[Path], known: Optional[set[str]]) -> list[Path]:
    """Drop paths whose absolute form is already recorded as an original path."""
    known = known or set()
    return [p for p in paths if str(Path(p).absolute()) not in known]
