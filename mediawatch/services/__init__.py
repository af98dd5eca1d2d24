"""Service layer - ingestion, history, watching and file operations."""
from .app_context import AppContext, create_app_context
from .file_ops import FileManager
from .history import DayGroup, HistoryReconstructor, HistoryStats, HistoryView
from .ingest import IngestDependencies, MediaIngestor
from .progress import ProgressTracker
from .scanner import count_media_files, walk_files, walk_media_files
from .watcher import FolderWatcher, MediaEventHandler, wait_for_stable_size

__all__ = [
    # Wiring
    "AppContext",
    "create_app_context",
    # Archive
    "FileManager",
    "walk_files",
    "walk_media_files",
    "count_media_files",
    # Ingestion
    "IngestDependencies",
    "MediaIngestor",
    "ProgressTracker",
    # History
    "HistoryReconstructor",
    "HistoryView",
    "HistoryStats",
    "DayGroup",
    # Watching
    "FolderWatcher",
    "MediaEventHandler",
    "wait_for_stable_size",
]
