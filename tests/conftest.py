"""Shared pytest fixtures."""
import logging
import os
import time
from pathlib import Path

import pytest

from fixtures import Harness, build_harness


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    """Empty archive root."""
    path = tmp_path / "archive"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def drop_dir(tmp_path: Path) -> Path:
    """Folder holding source files to ingest."""
    path = tmp_path / "drop"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def harness(archive: Path) -> Harness:
    """Ingestor with a failing probe and an empty tag reader."""
    return build_harness(archive)


@pytest.fixture
def root_logger():
    """Restore root logger handlers and level after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def eastern_tz():
    """Run with the system zone set to US Eastern (EST/EDT with DST rules)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    previous = os.environ.get("TZ")
    # POSIX rule string, so no zoneinfo database is needed
    os.environ["TZ"] = "EST5EDT,M3.2.0,M11.1.0"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()
