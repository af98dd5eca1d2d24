"""Timecode and resolution arithmetic for probed video."""
from __future__ import annotations

import math
import re
from typing import Any, Optional

DEFAULT_FRAME_RATE = 30.0

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)")

QUALITY_TIERS = [
    (3840, 2160, "4K/UHD"),
    (1920, 1080, "1080p/FHD"),
    (1280, 720, "720p/HD"),
    (640, 480, "480p/SD"),
]
LOW_RESOLUTION = "Low Resolution"


def _leading_number(text: str, as_float: bool = False) -> float:
    """Numeric prefix of a string, or 0 if there is none ("15;02" -> 15)."""
    match = (_LEADING_FLOAT if as_float else _LEADING_INT).match(text)
    if not match:
        return 0
    return float(match.group(0)) if as_float else int(match.group(0))


def round_half_up(value: float) -> int:
    """Round .5 away from zero toward +inf, not to even."""
    return int(math.floor(value + 0.5))


def parse_frame_rate(value: Any) -> float:
    """Parse "30", 29.97 or "30000/1001" into frames per second.

    Anything missing, unparsable, zero or non-finite falls back to 30.
    """
    if value is None or value == "":
        return DEFAULT_FRAME_RATE
    try:
        if isinstance(value, str) and "/" in value:
            num, den = value.split("/", 1)
            rate = float(num) / float(den)
        else:
            rate = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return DEFAULT_FRAME_RATE
    if not math.isfinite(rate) or rate <= 0:
        return DEFAULT_FRAME_RATE
    return rate


def timecode_to_frames(timecode: str, frame_rate: float) -> int:
    """Frame count for the HH:MM:SS part of a timecode.

    The trailing frame field (``:FF``) is not counted; ``HH:MM:SS.mmm``
    contributes its fractional seconds. Strings without three colon-separated
    parts map to frame 0.
    """
    if ":" not in timecode:
        return 0
    parts = timecode.split(":")
    if len(parts) < 3:
        return 0
    hours = _leading_number(parts[0])
    minutes = _leading_number(parts[1])
    seconds = _leading_number(parts[2], as_float=True)
    total_seconds = hours * 3600 + minutes * 60 + seconds
    return round_half_up(total_seconds * frame_rate)


def frames_to_timecode(frames: int, frame_rate: float) -> str:
    """Render a frame count as HH:MM:SS:FF."""
    total_seconds = frames / frame_rate
    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)
    seconds_remainder = total_seconds % 60
    frame_number = round_half_up((seconds_remainder % 1) * frame_rate)
    whole_seconds = int(seconds_remainder // 1)
    return f"{hours:02d}:{minutes:02d}:{whole_seconds:02d}:{frame_number:02d}"


def calculate_end_timecode(
    start_timecode: Optional[str],
    duration_seconds: Any,
    frame_rate: Any = None,
) -> Optional[str]:
    """End timecode = start + duration, at the clip's frame rate.

    Returns None instead of raising when any input cannot be used.

    >>> calculate_end_timecode("01:00:00:00", 90, 30)
    '01:01:30:00'
    """
    if not start_timecode or not isinstance(start_timecode, str):
        return None
    try:
        fps = parse_frame_rate(frame_rate)
        duration = float(duration_seconds)
        if not math.isfinite(duration):
            return None
        start_frames = timecode_to_frames(start_timecode, fps)
        end_frames = start_frames + round_half_up(duration * fps)
        return frames_to_timecode(end_frames, fps)
    except (TypeError, ValueError, OverflowError, ZeroDivisionError):
        return None


def resolution_quality(width: Optional[int], height: Optional[int]) -> str:
    """Quality label for a frame size.

    Each tier matches when *either* dimension reaches its threshold, so a
    tall narrow frame can land in a higher tier than its pixel count implies.
    """
    w = width or 0
    h = height or 0
    for min_width, min_height, label in QUALITY_TIERS:
        if w >= min_width or h >= min_height:
            return label
    return LOW_RESOLUTION
