"""Embedded-tag readers: exiftool (preferred) and a Pillow fallback."""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Optional, Sequence

from PIL import ExifTags, Image, UnidentifiedImageError
from PIL.TiffImagePlugin import IFDRational

from ..core.errors import TagReadFailure

logger = logging.getLogger(__name__)

# Pillow's tag names that differ from exiftool's
PILLOW_ALIASES = {
    "ISOSpeedRatings": "ISO",
    "PhotographicSensitivity": "ISO",
}


class ExifToolReader:
    """Reads a requested field set with a single exiftool invocation.

    Uses ``-json -n`` so numeric values (GPS, exposure) come back as numbers.
    """

    def __init__(self, binary: str = "exiftool", timeout: float = 30.0):
        """Initialize the reader.

        Args:
            binary: exiftool executable name or path.
            timeout: Seconds to wait for a single read.
        """
        self._binary = binary
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "exiftool"

    def read(self, path: Path, fields: Sequence[str]) -> Optional[dict[str, Any]]:
        """Read tags from a file.

        Raises:
            TagReadFailure: exiftool could not be run or produced no usable output.
        """
        args = [self._binary, "-json", "-n"]
        args.extend(f"-{field}" for field in fields)
        args.append(str(path))

        try:
            proc = subprocess.run(args, capture_output=True, text=True, timeout=self._timeout)
        except FileNotFoundError:
            raise TagReadFailure(path, f"{self._binary} not found") from None
        except subprocess.TimeoutExpired:
            raise TagReadFailure(path, f"{self._binary} timed out") from None
        except OSError as e:
            raise TagReadFailure(path, str(e)) from e

        output = (proc.stdout or "").strip()
        if not output:
            if proc.returncode != 0:
                raise TagReadFailure(path, (proc.stderr or "").strip() or f"exit code {proc.returncode}")
            return None

        try:
            parsed = json.loads(output)
        except json.JSONDecodeError as e:
            raise TagReadFailure(path, f"invalid exiftool output: {e}") from e

        if not isinstance(parsed, list) or not parsed or not isinstance(parsed[0], dict):
            return None

        wanted = set(fields)
        tags = {k: v for k, v in parsed[0].items() if k in wanted}
        return tags or None


def _normalize_pillow_value(value: Any) -> Any:
    """Convert Pillow rationals/bytes to plain JSON-friendly values."""
    if isinstance(value, IFDRational):
        try:
            return float(value)
        except ZeroDivisionError:
            return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip("\x00 ")
    if isinstance(value, str):
        return value.strip("\x00 ")
    if isinstance(value, tuple):
        return [_normalize_pillow_value(v) for v in value]
    return value


def _dms_to_decimal(dms: Any, ref: Any) -> Optional[float]:
    """Convert a GPS (deg, min, sec) triple and N/S/E/W reference to decimal degrees."""
    try:
        degrees, minutes, seconds = (float(v) for v in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    decimal = degrees + minutes / 60 + seconds / 3600
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref in ("S", "W"):
        decimal = -decimal
    return decimal


class PillowTagReader:
    """Reads EXIF/GPS tags with Pillow when exiftool is not installed.

    Covers JPEG/TIFF/WebP/PNG EXIF blocks; RAW formats fall back to size only.
    """

    @property
    def name(self) -> str:
        return "pillow"

    def read(self, path: Path, fields: Sequence[str]) -> Optional[dict[str, Any]]:
        """Read tags from a file.

        Raises:
            TagReadFailure: Pillow could not open the file.
        """
        try:
            with Image.open(path) as img:
                width, height = img.size
                exif = img.getexif()
                raw: dict[str, Any] = {}

                for tag_id, value in exif.items():
                    raw[ExifTags.TAGS.get(tag_id, str(tag_id))] = value

                for tag_id, value in exif.get_ifd(ExifTags.IFD.Exif).items():
                    raw[ExifTags.TAGS.get(tag_id, str(tag_id))] = value

                gps = {
                    ExifTags.GPSTAGS.get(tag_id, str(tag_id)): value
                    for tag_id, value in exif.get_ifd(ExifTags.IFD.GPSInfo).items()
                }
        except (UnidentifiedImageError, OSError) as e:
            raise TagReadFailure(path, str(e)) from e

        values: dict[str, Any] = {}
        for tag_name, value in raw.items():
            values[PILLOW_ALIASES.get(tag_name, tag_name)] = _normalize_pillow_value(value)

        values.setdefault("ImageWidth", width)
        values.setdefault("ImageHeight", height)

        if "GPSLatitude" in gps:
            values["GPSLatitude"] = _dms_to_decimal(gps["GPSLatitude"], gps.get("GPSLatitudeRef"))
        if "GPSLongitude" in gps:
            values["GPSLongitude"] = _dms_to_decimal(gps["GPSLongitude"], gps.get("GPSLongitudeRef"))
        if "GPSAltitude" in gps:
            values["GPSAltitude"] = _normalize_pillow_value(gps["GPSAltitude"])

        wanted = set(fields)
        tags = {k: v for k, v in values.items() if k in wanted and v not in (None, "")}
        return tags or None


def create_tag_reader(exiftool_bin: str = "exiftool", timeout: float = 30.0):
    """Pick the best available tag reader.

    Returns an ExifToolReader if the binary is on PATH, otherwise a PillowTagReader.
    """
    if shutil.which(exiftool_bin):
        return ExifToolReader(exiftool_bin, timeout=timeout)
    logger.info("%s not found, reading image tags with Pillow", exiftool_bin)
    return PillowTagReader()
