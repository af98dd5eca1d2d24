"""Application context - wires services together for CLI commands.

Every command needs the same object graph built from one WatcherConfig:
manifest store, archive file manager, metadata extractor, progress tracker
and the ingestor on top of them. Building it in one place keeps the CLI
handlers small and makes the graph easy to replace in tests.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import WatcherConfig
from ..core.protocols import MediaProbe, ProgressObserver, TagReader
from ..engines.exiftool import create_tag_reader
from ..engines.ffprobe import FFprobe
from ..engines.metadata import MetadataExtractor
from ..persistence.manifest import JsonManifestStore
from .file_ops import FileManager
from .history import HistoryReconstructor
from .ingest import IngestDependencies, MediaIngestor
from .progress import ProgressTracker
from .watcher import FolderWatcher

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """All services for one run of the application."""
    config: WatcherConfig
    store: JsonManifestStore
    file_manager: FileManager
    extractor: MetadataExtractor
    progress: ProgressTracker
    ingestor: MediaIngestor

    def history(self) -> HistoryReconstructor:
        return HistoryReconstructor()

    def watcher(self) -> FolderWatcher:
        """Build the folder watcher for ``config.watch_dir``.

        Raises:
            ValueError: No watch directory is configured.
        """
        if self.config.watch_dir is None:
            raise ValueError("No watch directory configured (use --watch-dir or MEDIAWATCH_WATCH_DIR)")
        return FolderWatcher(
            self.config.watch_dir,
            self.ingestor,
            self.store,
            stability_threshold=self.config.stability_threshold,
            poll_interval=self.config.poll_interval,
        )


def create_app_context(
    config: WatcherConfig,
    observers: Optional[list[ProgressObserver]] = None,
    probe: Optional[MediaProbe] = None,
    tag_reader: Optional[TagReader] = None,
) -> AppContext:
    """Create an application context from configuration.

    ``probe`` and ``tag_reader`` default to the ffprobe and exiftool (or
    Pillow) collaborators named in the config.
    """
    store = JsonManifestStore(config.resolved_manifest_path, config.archive_root)
    file_manager = FileManager(config.archive_root)
    extractor = MetadataExtractor(
        probe or FFprobe(config.ffprobe_bin, timeout=config.probe_timeout),
        tag_reader or create_tag_reader(config.exiftool_bin, timeout=config.probe_timeout),
    )
    progress = ProgressTracker(observers)
    ingestor = MediaIngestor(IngestDependencies(extractor, file_manager, store, progress))

    logger.debug("Archive root: %s, manifest: %s", config.archive_root, store.path)
    return AppContext(
        config=config,
        store=store,
        file_manager=file_manager,
        extractor=extractor,
        progress=progress,
        ingestor=ingestor,
    )
