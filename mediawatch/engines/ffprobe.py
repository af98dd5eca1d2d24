"""ffprobe wrapper used for video and audio metadata."""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

from ..core.errors import ProbeFailure

logger = logging.getLogger(__name__)

PROBE_ARGS = [
    "-v", "quiet",
    "-print_format", "json",
    "-show_format",
    "-show_streams",
    "-show_entries", "format:format_tags:stream:stream_tags",
]


def ffprobe_available(binary: str = "ffprobe") -> bool:
    """Return True when ffprobe is available on PATH."""
    return shutil.which(binary) is not None


class FFprobe:
    """Runs ffprobe once per file and returns its parsed JSON."""

    def __init__(self, binary: str = "ffprobe", timeout: float = 30.0):
        """Initialize the probe.

        Args:
            binary: ffprobe executable name or path.
            timeout: Seconds to wait for a single probe.
        """
        self._binary = binary
        self._timeout = timeout

    def probe(self, path: Path) -> dict[str, Any]:
        """Probe a file.

        Raises:
            ProbeFailure: ffprobe missing, timed out, failed or printed bad JSON.
        """
        cmd = [self._binary, *PROBE_ARGS, str(path)]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            raise ProbeFailure(path, f"{self._binary} not found") from None
        except subprocess.TimeoutExpired:
            raise ProbeFailure(path, f"{self._binary} timed out after {self._timeout:g}s") from None
        except OSError as e:
            raise ProbeFailure(path, f"{self._binary} could not run: {e}") from e

        if proc.returncode != 0:
            message = (proc.stderr or "").strip() or f"exit code {proc.returncode}"
            raise ProbeFailure(path, f"FFprobe failed: {message}")

        try:
            parsed = json.loads(proc.stdout or "")
        except json.JSONDecodeError as e:
            raise ProbeFailure(path, f"Failed to parse FFprobe output: {e}") from e

        if not isinstance(parsed, dict):
            raise ProbeFailure(path, "Failed to parse FFprobe output: not an object")

        logger.debug("Probed %s: %d streams", path, len(parsed.get("streams") or []))
        return parsed
