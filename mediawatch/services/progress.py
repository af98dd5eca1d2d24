"""Progress accounting for single-file and bulk operations."""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..core.date_utils import utcnow
from ..core.models import ProgressState
from ..core.protocols import ProgressObserver

logger = logging.getLogger(__name__)

_FIELDS = {f.name for f in dataclasses.fields(ProgressState)}


class ProgressTracker:
    """Holds the current ProgressState and broadcasts every change.

    One tracker is created per application and handed to the ingestor; it is
    not a module-level singleton. Updates are merge-patches: fields that are
    not mentioned keep their current value.
    """

    def __init__(
        self,
        observers: Optional[list[ProgressObserver]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._state = ProgressState()
        self._observers: list[ProgressObserver] = list(observers or [])
        self._clock = clock

    @property
    def state(self) -> ProgressState:
        """A copy of the current state."""
        return dataclasses.replace(self._state)

    def subscribe(self, observer: ProgressObserver) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: ProgressObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def update(self, **patch) -> ProgressState:
        """Merge a partial state and broadcast the result.

        Raises:
            TypeError: A key is not a ProgressState field.
        """
        unknown = set(patch) - _FIELDS
        if unknown:
            raise TypeError(f"Unknown progress fields: {', '.join(sorted(unknown))}")

        self._state = dataclasses.replace(self._state, **patch)
        snapshot = self.state

        for observer in self._observers:
            observer.on_progress(snapshot)

        if patch.get("current_file"):
            self.message(
                f"{snapshot.current_operation}: {Path(snapshot.current_file).name} "
                f"({snapshot.processed_count}/{snapshot.total_count})",
            )
        return snapshot

    def reset(self, total: int, operation: str) -> ProgressState:
        """Start a new top-level operation."""
        return self.update(
            is_processing=True,
            current_file="",
            processed_count=0,
            total_count=total,
            current_operation=operation,
            start_time=self._clock(),
        )

    def advance(self, operation: str) -> ProgressState:
        """Count one more file as done (succeeded or failed)."""
        return self.update(
            processed_count=self._state.processed_count + 1,
            current_operation=operation,
        )

    def finish(self, operation: str) -> ProgressState:
        """Mark the operation finished; counters keep their final values."""
        return self.update(is_processing=False, current_file="", current_operation=operation)

    def elapsed_seconds(self) -> float:
        return self._state.elapsed_seconds(self._clock())

    def message(self, text: str, level: str = "info") -> None:
        """Send a status line to observers and the log."""
        logger.debug("[%s] %s", level, text)
        for observer in self._observers:
            observer.on_message(text, level)
