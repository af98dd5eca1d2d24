"""Media ingestion into a date-sharded archive with a JSON history manifest.

Services take their collaborators explicitly; nothing is a global.
"""

__version__ = "1.0.0"

# Core exports
from .core.config import WatcherConfig, MediaType, IngestSource
from .core.errors import MediaWatchError
from .core.models import ManifestEntry, ProgressState, IngestResult, IngestStats
from .core.protocols import MediaProbe, TagReader, ProgressObserver

# Engine exports
from .engines.classifier import classify
from .engines.metadata import MetadataExtractor

# Service exports
from .services.app_context import AppContext, create_app_context
from .services.file_ops import FileManager
from .services.history import HistoryReconstructor
from .services.ingest import MediaIngestor, IngestDependencies
from .services.progress import ProgressTracker
from .services.watcher import FolderWatcher

# Persistence exports
from .persistence.manifest import JsonManifestStore

# Logging exports
from .logging.rich_logger import RichProgressObserver

__all__ = [
    # Core
    "WatcherConfig",
    "MediaType",
    "IngestSource",
    "MediaWatchError",
    "ManifestEntry",
    "ProgressState",
    "IngestResult",
    "IngestStats",
    "MediaProbe",
    "TagReader",
    "ProgressObserver",
    # Engines
    "classify",
    "MetadataExtractor",
    # Services
    "AppContext",
    "create_app_context",
    "FileManager",
    "HistoryReconstructor",
    "MediaIngestor",
    "IngestDependencies",
    "ProgressTracker",
    "FolderWatcher",
    # Persistence
    "JsonManifestStore",
    # Logging
    "RichProgressObserver",
]
