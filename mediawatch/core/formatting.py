"""Human-readable formatting for sizes, durations, dates and paths."""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from .date_utils import to_local

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(size: Optional[int]) -> str:
    """Format a byte count with base-1024 units and two-decimal rounding.

    >>> format_bytes(0)
    '0 Bytes'
    >>> format_bytes(1536)
    '1.5 KB'
    """
    if not size:
        return "0 Bytes"
    i = 0
    while i < len(SIZE_UNITS) - 1 and size >= 1024 ** (i + 1):
        i += 1
    value = round(size / (1024 ** i), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[i]}"


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as M:SS or H:MM:SS."""
    if not seconds or seconds < 0:
        return "Unknown"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate_path(full_path: Optional[str], limit: int = 50) -> str:
    if not full_path:
        return "Unknown"
    if len(full_path) <= limit:
        return full_path
    return "..." + full_path[-(limit - 3):]


def long_date(day: date) -> str:
    """'Friday, March 15, 2024'"""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def short_date(day: date) -> str:
    """'March 15, 2024'"""
    return f"{day:%B} {day.day}, {day.year}"


def format_date_header(day: date, today: date) -> str:
    """Label a history bucket relative to today."""
    if day == today:
        return f"TODAY — {long_date(day)}"
    if day == today - timedelta(days=1):
        return f"YESTERDAY — {long_date(day)}"
    if day > today - timedelta(days=7):
        return long_date(day)
    return short_date(day)


def format_local_time(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """'14:05' in the viewer's timezone (the system zone when ``tz`` is None)."""
    return to_local(dt, tz).strftime("%H:%M")
