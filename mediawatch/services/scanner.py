"""Directory traversal for bulk ingestion."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterator, Optional

from ..core.errors import ReconcileObservationFailure
from ..engines.classifier import is_media

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[ReconcileObservationFailure], None]


def _log_error(error: ReconcileObservationFailure) -> None:
    logger.warning("%s", error)


def _sorted_entries(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def walk_files(
    root: Path,
    on_error: Optional[ErrorHandler] = None,
    include_hidden: bool = True,
) -> Iterator[Path]:
    """Yield every regular file under root, depth-first, in name order.

    Uses an explicit stack of directory iterators instead of recursion. A
    directory that cannot be listed is reported to ``on_error`` and skipped;
    the walk continues with its siblings. If ``root`` itself cannot be listed
    the error is raised.

    Raises:
        ReconcileObservationFailure: The root directory could not be listed.
    """
    on_error = on_error or _log_error
    try:
        stack: list[Iterator[os.DirEntry]] = [iter(_sorted_entries(root))]
    except OSError as e:
        raise ReconcileObservationFailure(root, e) from e

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        if not include_hidden and entry.name.startswith("."):
            continue

        try:
            if entry.is_dir():
                try:
                    stack.append(iter(_sorted_entries(Path(entry.path))))
                except OSError as e:
                    on_error(ReconcileObservationFailure(Path(entry.path), e))
            elif entry.is_file():
                yield Path(entry.path)
        except OSError as e:
            on_error(ReconcileObservationFailure(Path(entry.path), e))


def walk_media_files(
    root: Path,
    on_error: Optional[ErrorHandler] = None,
    include_hidden: bool = True,
) -> Iterator[Path]:
    """Like :func:`walk_files` but only yields classifier-eligible files."""
    for path in walk_files(root, on_error, include_hidden):
        if is_media(path):
            yield path


def count_media_files(root: Path) -> int:
    """Count media files under a folder (first pass of a bulk operation).

    Listing failures are logged and counted as zero files.
    """
    try:
        return sum(1 for _ in walk_media_files(root))
    except ReconcileObservationFailure as e:
        logger.warning("Error counting files: %s", e)
        return 0


def count_media_in_paths(paths: list[Path]) -> int:
    """Count media files across a mix of dropped files and folders."""
    total = 0
    for path in paths:
        try:
            if path.is_dir():
                total += count_media_files(path)
            elif path.is_file() and is_media(path):
                total += 1
        except OSError as e:
            logger.warning("Error counting files in %s: %s", path, e)
    return total
