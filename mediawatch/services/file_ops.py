"""Archive layout and file copy operations."""
from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

from ..core.config import MediaType
from ..core.date_utils import to_local
from ..core.errors import CopyFailure

logger = logging.getLogger(__name__)


class FileManager:
    """Derives archive destinations and copies files into them.

    Layout: ``<archive_root>/<media_type>/<YYYY>-<MM>-<DD>/<original name>``.
    The day comes from the source file's modification time, in local time.
    """

    def __init__(self, archive_root: Path):
        """Initialize file manager.

        Args:
            archive_root: Root directory of the sorted archive.
        """
        self._archive_root = Path(archive_root)

    @property
    def archive_root(self) -> Path:
        return self._archive_root

    @staticmethod
    def day_folder_name(file_date: datetime) -> str:
        local = to_local(file_date)
        return f"{local.year}-{local.month:02d}-{local.day:02d}"

    def build_output_directory(self, media_type: MediaType, file_date: datetime) -> Path:
        """Build the day folder for a file (does not create it)."""
        return self._archive_root / media_type.value / self.day_folder_name(file_date)

    def allocate(self, source: Path, media_type: MediaType, file_date: datetime) -> Path:
        """Create the day folder and return the destination path.

        The original file name is kept as-is; an existing file with the same
        name in that folder is overwritten by the following copy.
        """
        folder = self.build_output_directory(media_type, file_date)
        self.ensure_directory(folder)
        return folder / source.name

    def ensure_directory(self, path: Path) -> None:
        """Ensure directory exists."""
        path.mkdir(parents=True, exist_ok=True)

    def ensure_layout(self) -> list[Path]:
        """Create the per-type folders. Returns the folders that were created."""
        created = []
        for media_type in MediaType:
            folder = self._archive_root / media_type.value
            if not folder.exists():
                folder.mkdir(parents=True, exist_ok=True)
                created.append(folder)
        return created

    def copy_file(self, source: Path, target: Path) -> Path:
        """Copy a file with metadata preservation; the source is left in place.

        Raises:
            CopyFailure: Source unreadable or target unwritable.
        """
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise CopyFailure(source, target, e) from e
        logger.debug("Copied %s -> %s", source, target)
        return target
