"""Console output and logging setup."""
from .rich_logger import QuietProgressObserver, RichProgressObserver, setup_logging

__all__ = ["QuietProgressObserver", "RichProgressObserver", "setup_logging"]
