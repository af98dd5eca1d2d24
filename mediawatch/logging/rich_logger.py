"""Rich-based progress observer and console output."""
from __future__ import annotations

import logging
import sys
from datetime import tzinfo
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ..core.formatting import format_bytes, format_duration, format_local_time, truncate_path
from ..core.models import ImageMetadata, IngestStats, ManifestEntry, ProgressState, VideoAudioMetadata
from ..services.history import DayGroup, HistoryStats

LEVEL_MARKERS = {
    "info": "[blue]ℹ[/blue]",
    "success": "[green]✓[/green]",
    "warning": "[yellow]⚠[/yellow]",
    "error": "[red]✗[/red]",
}


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route stdlib logging through a RichHandler on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


class RichProgressObserver:
    """Progress observer using Rich for terminal output.

    Implements the ProgressObserver protocol: ``ProgressState`` snapshots
    drive a progress bar and status messages are printed with a level marker.
    """

    def __init__(self, verbose: bool = False, quiet: bool = False, console: Optional[Console] = None):
        """Initialize the observer.

        Args:
            verbose: Also print per-file info messages.
            quiet: Suppress all non-essential output.
            console: Console to print to (stderr by default).
        """
        self._console = console or Console(stderr=True)
        self._verbose = verbose
        self._quiet = quiet
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self._operation_start = None

    @property
    def console(self) -> Console:
        return self._console

    # --- ProgressObserver ---

    def on_progress(self, state: ProgressState) -> None:
        if self._quiet:
            return

        if not state.is_processing:
            self._stop()
            return

        if self._progress is None or state.start_time != self._operation_start:
            self._start(state)

        description = state.current_operation
        if state.current_file:
            description = f"{description}: {Path(state.current_file).name}"
        self._progress.update(
            self._task_id,
            completed=state.processed_count,
            total=state.total_count or None,
            description=description,
        )

    def on_message(self, message: str, level: str = "info") -> None:
        # Per-file progress lines are only shown in verbose mode
        if level == "info" and not self._verbose:
            return
        {"success": self.success, "warning": self.warning, "error": self.error}.get(level, self.info)(message)

    # --- Logging Methods ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._console.print(f"{LEVEL_MARKERS['info']} {message}")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._console.print(f"{LEVEL_MARKERS['success']} {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"{LEVEL_MARKERS['warning']} {message}")

    def error(self, message: str) -> None:
        self._console.print(f"{LEVEL_MARKERS['error']} {message}", style="red")

    def _start(self, state: ProgressState) -> None:
        self._stop()
        self._operation_start = state.start_time
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TextColumn("[cyan]•"),
            TimeElapsedColumn(),
            console=self._console,
            transient=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(state.current_operation, total=state.total_count or None)

    def _stop(self) -> None:
        if self._progress:
            self._progress.stop()
            self._progress = None
            self._task_id = None

    # --- Specialized Output ---

    def print_header(self, title: str) -> None:
        if self._quiet:
            return
        self._console.print(Panel(Text(title, style="bold cyan"), border_style="cyan"))

    def print_config(self, config_items: dict) -> None:
        """Print configuration as a table."""
        if self._quiet:
            return

        table = Table(title="Configuration", show_header=True, header_style="bold")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        for key, value in config_items.items():
            table.add_row(key, str(value))
        self._console.print(table)

    def print_stats(self, stats: IngestStats) -> None:
        """Print ingestion statistics."""
        if self._quiet:
            return

        table = Table(title="Ingestion Complete", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="green", justify="right")

        table.add_row("Media Files Found", str(stats.total_files))
        table.add_row("Files Copied", str(stats.copied))
        table.add_row("Errors", str(stats.errors))
        if stats.unsupported:
            table.add_row("Unsupported Skipped", str(stats.unsupported))
        if stats.skipped_known:
            table.add_row("Already In History", str(stats.skipped_known))

        if stats.elapsed_seconds > 0:
            table.add_row("", "")
            table.add_row("Time Elapsed", f"{stats.elapsed_seconds:.1f}s")

        self._console.print(table)

    def print_history_stats(self, stats: HistoryStats) -> None:
        self._console.print(
            f"[bold]{stats.total_files}[/bold] files • "
            f"[bold]{format_bytes(stats.total_size)}[/bold] • "
            f"[bold]{stats.removed_count}[/bold] removed"
        )

    def print_history(self, groups: list[DayGroup], tz: Optional[tzinfo] = None, removed: bool = False) -> None:
        """Print one table per day group."""
        if not groups:
            self._console.print("[dim]No files yet[/dim]")
            return

        for group in groups:
            table = Table(
                title=f"{group.header} ({len(group.entries)} files, {format_bytes(group.total_size)})",
                title_justify="left",
                show_header=True,
                header_style="bold",
            )
            table.add_column("Time", style="cyan", no_wrap=True)
            table.add_column("File", style="white")
            table.add_column("Size", justify="right")
            table.add_column("Details", style="dim")
            table.add_column("Archived As", style="dim")

            for entry in group.entries:
                when = entry.removed_date if removed and entry.removed_date else entry.processed_date
                name = f"[strike]{entry.file_name}[/strike]" if removed else entry.file_name
                table.add_row(
                    format_local_time(when, tz),
                    name,
                    format_bytes(entry.file_size),
                    describe_metadata(entry),
                    truncate_path(entry.sorted_path),
                )
            self._console.print(table)

    # --- Context Managers ---

    def __enter__(self) -> "RichProgressObserver":
        return self

    def __exit__(self, *args) -> None:
        self._stop()


def describe_metadata(entry: ManifestEntry) -> str:
    """One-line summary of an entry's metadata for the history table."""
    meta = entry.metadata
    if isinstance(meta, VideoAudioMetadata):
        parts = [format_duration(meta.duration)]
        if meta.video and meta.video.width and meta.video.height:
            parts.append(f"{meta.video.width}x{meta.video.height}")
            if meta.video.quality:
                parts.append(meta.video.quality)
        if meta.timecode.start_timecode:
            parts.append(f"TC {meta.timecode.start_timecode}")
        if meta.audio and meta.audio.sample_rate:
            parts.append(f"{meta.audio.sample_rate} Hz")
        return " • ".join(parts)
    if isinstance(meta, ImageMetadata):
        parts = []
        camera = " ".join(p for p in (meta.make, meta.model) if p)
        if camera:
            parts.append(camera)
        if meta.image_width and meta.image_height:
            parts.append(f"{meta.image_width}x{meta.image_height}")
        return " • ".join(parts)
    return ""


class QuietProgressObserver:
    """Minimal observer that only shows warnings and errors."""

    def on_progress(self, state: ProgressState) -> None:
        pass

    def on_message(self, message: str, level: str = "info") -> None:
        if level == "warning":
            self.warning(message)
        elif level == "error":
            self.error(message)

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        print(f"ERROR: {message}", file=sys.stderr)

    def print_header(self, title: str) -> None:
        pass

    def print_config(self, config_items: dict) -> None:
        pass

    def print_stats(self, stats: IngestStats) -> None:
        pass

    def __enter__(self) -> "QuietProgressObserver":
        return self

    def __exit__(self, *args) -> None:
        pass
