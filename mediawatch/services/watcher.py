"""Watched-folder service: ingests media files as they appear."""
from __future__ import annotations

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.config import IngestSource
from ..core.errors import MediaWatchError, ReconcileObservationFailure
from ..core.models import IngestStats
from ..engines.classifier import is_media
from ..persistence.manifest import JsonManifestStore
from .ingest import MediaIngestor, filter_unknown
from .scanner import walk_media_files

logger = logging.getLogger(__name__)


def is_hidden(path: Path, root: Path) -> bool:
    """True if any component below ``root`` is a dotfile or dot-directory."""
    try:
        parts = Path(path).relative_to(root).parts
    except ValueError:
        parts = (Path(path).name,)
    return any(part.startswith(".") for part in parts)


def wait_for_stable_size(
    path: Path,
    threshold: float,
    poll_interval: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Block until a file's size has not changed for ``threshold`` seconds.

    Returns False if the file disappears while waiting.
    """
    last_size: Optional[int] = None
    stable_since = 0.0
    while True:
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False

        now = clock()
        if size != last_size:
            last_size = size
            stable_since = now
        elif now - stable_since >= threshold:
            return True
        sleep(poll_interval)


class MediaEventHandler(FileSystemEventHandler):
    """Forwards newly created or moved-in media files to a callback."""

    def __init__(self, root: Path, on_file: Callable[[Path], None]):
        super().__init__()
        self._root = Path(root)
        self._on_file = on_file

    def should_process(self, path: Path) -> bool:
        return not is_hidden(path, self._root) and is_media(path)

    def _submit(self, raw_path) -> None:
        path = Path(raw_path if isinstance(raw_path, str) else raw_path.decode())
        if self.should_process(path):
            logger.debug("Detected: %s", path)
            self._on_file(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(event.dest_path)


class FolderWatcher:
    """Watches a folder with watchdog and ingests new media one file at a time.

    Events arrive on the observer thread and are queued; a single worker
    thread waits for each file to stop growing and then ingests it with
    ``IngestSource.WATCH``. Source files are copied, never moved.
    """

    def __init__(
        self,
        watch_dir: Path,
        ingestor: MediaIngestor,
        store: JsonManifestStore,
        stability_threshold: float = 2.0,
        poll_interval: float = 0.1,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self._watch_dir = Path(watch_dir)
        self._ingestor = ingestor
        self._store = store
        self._stability_threshold = stability_threshold
        self._poll_interval = poll_interval
        self._observer_factory = observer_factory

        self._queue: "queue.Queue[Optional[Path]]" = queue.Queue()
        self._observer = None
        self._worker: Optional[threading.Thread] = None

    @property
    def watch_dir(self) -> Path:
        return self._watch_dir

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def enqueue(self, path: Path) -> None:
        self._queue.put(Path(path))

    # --- Startup scan ---

    def scan_existing(self) -> IngestStats:
        """Ingest media already in the watch folder that the manifest does not know."""
        try:
            candidates = list(walk_media_files(self._watch_dir, include_hidden=False))
        except ReconcileObservationFailure as e:
            logger.error("Startup scan failed: %s", e)
            return IngestStats()

        new_files = filter_unknown(candidates, self._store.known_original_paths())
        skipped = len(candidates) - len(new_files)
        if skipped:
            logger.info("Startup scan: %d files already in history", skipped)
        if not new_files:
            return IngestStats(skipped_known=skipped)

        stats = self._ingestor.ingest_paths(new_files, source=IngestSource.SCAN)
        stats.skipped_known += skipped
        return stats

    # --- Worker ---

    def process(self, path: Path) -> bool:
        """Wait for a file to settle, then ingest it. Returns True if it was copied."""
        if not wait_for_stable_size(path, self._stability_threshold, self._poll_interval):
            logger.info("File vanished before it settled: %s", path)
            return False
        try:
            result = self._ingestor.ingest_file(path, source=IngestSource.WATCH)
        except (MediaWatchError, OSError) as e:
            logger.error("Error processing %s: %s", path.name, e)
            self._ingestor.progress.message(f"Error processing {path.name}: {e}", "error")
            return False
        return result.is_success

    def _run(self) -> None:
        while True:
            path = self._queue.get()
            try:
                if path is None:
                    return
                self.process(path)
            finally:
                self._queue.task_done()

    # --- Lifecycle ---

    def start(self, scan: bool = True) -> Optional[IngestStats]:
        """Run the startup scan (optional), then begin watching.

        Files that land during the startup scan are picked up on the next start.
        """
        self._watch_dir.mkdir(parents=True, exist_ok=True)
        stats = self.scan_existing() if scan else None

        self._worker = threading.Thread(target=self._run, name="mediawatch-ingest", daemon=True)
        self._worker.start()

        self._observer = self._observer_factory()
        self._observer.schedule(MediaEventHandler(self._watch_dir, self.enqueue), str(self._watch_dir), recursive=True)
        self._observer.start()

        logger.info("Watching %s", self._watch_dir)
        self._ingestor.progress.message("Watching for new media files...", "success")
        return stats

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the observer, let queued files finish, then stop the worker."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout)
            self._observer = None
        if self._worker is not None:
            self._queue.put(None)
            self._worker.join(timeout)
            self._worker = None
        logger.info("Stopped watching %s", self._watch_dir)

    def join(self) -> None:
        """Block until every queued file has been handled."""
        self._queue.join()

    def __enter__(self) -> "FolderWatcher":
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()
