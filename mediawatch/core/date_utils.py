"""Timestamp parsing and UTC normalization."""
from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

EXIF_DATE_FORMATS = [
    "%Y:%m:%d %H:%M:%S",
    "%Y:%m:%d %H:%M:%S%z",
    "%Y:%m:%d %H:%M:%S.%f",
    "%Y:%m:%d %H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y:%m:%d",
]


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert to the given timezone, or to the system zone in effect at ``dt``.

    Without ``tz`` the daylight-saving rule of the instant itself applies, not
    the offset of the moment the program runs. Naive values are local time.
    """
    if tz is not None:
        return ensure_aware(dt, tz).astimezone(tz)
    return dt.astimezone()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach the given timezone, or the system zone for that date, to a naive datetime."""
    if dt.tzinfo is not None:
        return dt
    if tz is not None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone()


def from_timestamp(ts: float) -> datetime:
    """UTC datetime from a POSIX timestamp (e.g. st_mtime)."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def to_iso(dt: datetime) -> str:
    """Serialize as UTC ISO-8601 with millisecond precision and a Z suffix."""
    dt = ensure_aware(dt).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string written by :func:`to_iso` (or any offset form).

    Naive values are taken to be UTC, which is how the manifest stores them.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_exif_datetime(value: str) -> Optional[datetime]:
    """Parse an EXIF-style datetime string."""
    text = value.strip()
    for fmt in EXIF_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def to_utc_iso(value: Any, tz: Optional[tzinfo] = None) -> Optional[str]:
    """Best-effort conversion of a tag value to a UTC ISO string.

    Accepts datetimes, ISO strings and EXIF date strings. Values without an
    offset are interpreted in the local (or given) timezone. Returns None
    when the value cannot be understood.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return to_iso(ensure_aware(value, tz))

    if not isinstance(value, str):
        return None

    text = value.strip()
    dt: Optional[datetime] = None
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        dt = datetime.fromisoformat(iso_text)
    except ValueError:
        dt = parse_exif_datetime(text)

    if dt is None:
        return None
    try:
        return to_iso(ensure_aware(dt, tz))
    except (OverflowError, ValueError):
        return None
