"""CLI with subcommands: init, ingest, watch, reconcile, history, clear-history."""
from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm

from .core.config import IngestSource, WatcherConfig
from .core.errors import MediaWatchError
from .engines.ffprobe import ffprobe_available
from .logging.rich_logger import QuietProgressObserver, RichProgressObserver, setup_logging
from .services.app_context import AppContext, create_app_context
from .services.history import DayGroup

HISTORY_VIEWS = ["videos", "images", "audio", "removed"]


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="mediawatch",
        description="Sort media into a date-sharded archive and keep an ingestion history.",
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    parser.add_argument(
        "-a", "--archive",
        type=Path,
        default=None,
        help="Archive root (default: $MEDIAWATCH_ARCHIVE or ./sorted-media)",
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help="Manifest file (default: ARCHIVE/media-history.json)",
    )
    parser.add_argument(
        "--ffprobe",
        type=str,
        default=None,
        help="ffprobe executable (default: ffprobe)",
    )
    parser.add_argument(
        "--exiftool",
        type=str,
        default=None,
        help="exiftool executable (default: exiftool, Pillow is used if missing)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ============ INIT command ============
    subparsers.add_parser(
        "init",
        help="Create the archive folders and an empty manifest",
    )

    # ============ INGEST command ============
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Copy files and folders into the archive",
    )
    ingest_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Files or folders to ingest",
    )

    # ============ WATCH command ============
    watch_parser = subparsers.add_parser(
        "watch",
        help="Ingest new files as they appear in a folder",
    )
    watch_parser.add_argument(
        "--watch-dir",
        type=Path,
        default=None,
        help="Folder to watch (default: $MEDIAWATCH_WATCH_DIR)",
    )
    watch_parser.add_argument(
        "--no-scan",
        action="store_true",
        help="Skip ingesting files already in the folder at startup",
    )
    watch_parser.add_argument(
        "--stability",
        type=float,
        default=None,
        help="Seconds a new file must stop growing before it is ingested (default: 2)",
    )

    # ============ RECONCILE command ============
    subparsers.add_parser(
        "reconcile",
        help="Mark history entries whose archived file is gone as removed",
    )

    # ============ HISTORY command ============
    history_parser = subparsers.add_parser(
        "history",
        help="Show ingestion history grouped by day",
    )
    history_parser.add_argument(
        "--type",
        dest="view",
        choices=HISTORY_VIEWS,
        default=None,
        help="Only show one media type, or removed files",
    )
    history_parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON",
    )
    history_parser.add_argument(
        "--no-reconcile",
        action="store_true",
        help="Do not check the archive for removed files first",
    )

    # ============ CLEAR-HISTORY command ============
    clear_parser = subparsers.add_parser(
        "clear-history",
        help="Delete all history entries (archived files are kept)",
    )
    clear_parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Do not ask for confirmation",
    )

    return parser


def build_config(args: argparse.Namespace) -> WatcherConfig:
    return WatcherConfig.from_env(
        archive_root=args.archive,
        manifest_path=args.manifest,
        ffprobe_bin=args.ffprobe,
        exiftool_bin=args.exiftool,
        watch_dir=getattr(args, "watch_dir", None),
        stability_threshold=getattr(args, "stability", None),
    )


def _ffprobe_status(ctx: AppContext) -> str:
    if ffprobe_available(ctx.config.ffprobe_bin):
        return ctx.config.ffprobe_bin
    return f"{ctx.config.ffprobe_bin} (not found, no video/audio metadata)"


def cmd_init(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the init command."""
    created = ctx.file_manager.ensure_layout()
    for folder in created:
        reporter.info(f"Created {folder}")
    if ctx.store.ensure_initialized():
        reporter.success(f"Created manifest {ctx.store.path}")
    else:
        reporter.info(f"Manifest already exists: {ctx.store.path}")
    if ctx.config.watch_dir is not None:
        ctx.config.watch_dir.mkdir(parents=True, exist_ok=True)
    return 0


def cmd_ingest(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the ingest command."""
    reporter.print_header("mediawatch ingest")
    reporter.print_config({
        "Archive": ctx.config.archive_root,
        "Manifest": ctx.store.path,
        "Tag reader": ctx.extractor.tag_reader_name,
        "FFprobe": _ffprobe_status(ctx),
    })

    ctx.store.ensure_initialized()
    stats = ctx.ingestor.ingest_paths(args.paths, source=IngestSource.DROP)
    reporter.print_stats(stats)
    return 0 if stats.errors == 0 else 1


def cmd_watch(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the watch command. Runs until interrupted."""
    watcher = ctx.watcher()
    ctx.store.ensure_initialized()

    reporter.print_header("mediawatch watch")
    reporter.print_config({
        "Watching": watcher.watch_dir,
        "Archive": ctx.config.archive_root,
        "Stability": f"{ctx.config.stability_threshold:g}s",
        "FFprobe": _ffprobe_status(ctx),
    })

    changed = ctx.store.reconcile()
    if changed:
        reporter.info(f"{changed} archived files are no longer present")

    stats = watcher.start(scan=not args.no_scan)
    if stats is not None and stats.total_files:
        reporter.print_stats(stats)

    try:
        while watcher.is_running:
            time.sleep(0.5)
    finally:
        watcher.stop()
    return 0


def cmd_reconcile(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the reconcile command."""
    changed = ctx.store.reconcile()
    if changed:
        reporter.success(f"Marked {changed} entries as removed")
    else:
        reporter.info("History is in sync with the archive")
    return 0


def _group_to_json(group: DayGroup) -> dict:
    return {
        "date": group.key,
        "header": group.header,
        "entries": [entry.to_dict() for entry in group.entries],
    }


def cmd_history(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the history command."""
    if not args.no_reconcile:
        ctx.store.reconcile()

    history = ctx.history()
    view = history.build(ctx.store.load_all())
    views = [args.view] if args.view else HISTORY_VIEWS

    if args.json:
        payload = {
            "stats": {
                "totalFiles": view.stats.total_files,
                "totalSize": view.stats.total_size,
                "removedCount": view.stats.removed_count,
            },
            "views": {name: [_group_to_json(g) for g in view.groups_for(name)] for name in views},
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    out = RichProgressObserver(console=Console())
    out.print_history_stats(view.stats)
    for name in views:
        out.print_header(name.upper())
        out.print_history(view.groups_for(name), history.tz, removed=(name == "removed"))
    return 0


def cmd_clear_history(args: argparse.Namespace, ctx: AppContext, reporter) -> int:
    """Handle the clear-history command."""
    if not args.yes and not Confirm.ask(
        "Clear all history entries? Archived files are not deleted", default=False
    ):
        reporter.info("Cancelled")
        return 1
    ctx.store.clear()
    reporter.success("History cleared")
    return 0


COMMANDS = {
    "init": cmd_init,
    "ingest": cmd_ingest,
    "watch": cmd_watch,
    "reconcile": cmd_reconcile,
    "history": cmd_history,
    "clear-history": cmd_clear_history,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    # Create reporter
    if args.quiet:
        reporter = QuietProgressObserver()
    else:
        reporter = RichProgressObserver(verbose=args.verbose)

    # No command specified - show help
    if not args.command:
        parser.print_help()
        return 0

    try:
        with reporter:
            ctx = create_app_context(build_config(args), observers=[reporter])
            return COMMANDS[args.command](args, ctx, reporter)
    except KeyboardInterrupt:
        # Clean exit on Ctrl+C - no stack trace
        return 130
    except (MediaWatchError, ValueError, OSError) as e:
        reporter.error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
