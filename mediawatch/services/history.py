"""Chronological, timezone-aware history view rebuilt from the manifest."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Iterable, Optional

from ..core.config import MediaType
from ..core.date_utils import to_local, utcnow
from ..core.formatting import format_date_header
from ..core.models import ManifestEntry

logger = logging.getLogger(__name__)

# Passive-scan entries imported longer ago than this may be grouped by file date
SCAN_IMPORT_AGE = timedelta(hours=1)
# ... but only when the file itself is at least this far from now
SCAN_FILE_AGE = timedelta(days=1)


@dataclass(slots=True)
class DayGroup:
    """All entries that fall on one local calendar day."""
    day: date
    header: str
    entries: list[ManifestEntry] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.day.isoformat()

    @property
    def total_size(self) -> int:
        return sum(e.file_size for e in self.entries)


@dataclass(slots=True)
class HistoryStats:
    total_files: int = 0
    total_size: int = 0
    removed_count: int = 0


@dataclass(slots=True)
class HistoryView:
    """History partitioned into live entries per media type and removed entries."""
    live: dict[MediaType, list[DayGroup]]
    removed: list[DayGroup]
    stats: HistoryStats

    def groups_for(self, view: str) -> list[DayGroup]:
        """Groups for a view name: a media type value or ``removed``."""
        if view == "removed":
            return self.removed
        return self.live[MediaType(view)]


class HistoryReconstructor:
    """Builds day-grouped history views in the viewer's timezone."""

    def __init__(
        self,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the reconstructor.

        Args:
            tz: Fixed viewer timezone; None follows the system zone, with
                the daylight-saving offset of each timestamp.
            clock: Source of "now" for headers and the scan heuristic.
        """
        self._tz = tz
        self._clock = clock

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    def grouping_date(self, entry: ManifestEntry, now: datetime) -> datetime:
        """Timestamp an entry is filed under in the live view.

        Import time, except for files picked up by a startup scan a while
        ago whose own date is far from now: those are filed under file date.
        """
        if (
            entry.is_passive_scan
            and now - entry.processed_date > SCAN_IMPORT_AGE
            and abs(now - entry.file_date) > SCAN_FILE_AGE
        ):
            return entry.file_date
        return entry.processed_date

    def local_day(self, moment: datetime) -> date:
        return to_local(moment, self._tz).date()

    def group_by_day(
        self,
        entries: Iterable[ManifestEntry],
        key: Callable[[ManifestEntry], datetime],
        today: Optional[date] = None,
    ) -> list[DayGroup]:
        """Bucket entries by local day of ``key``; newest day and entry first."""
        today = today or self.local_day(self._clock())
        buckets: dict[date, list[ManifestEntry]] = {}
        for entry in entries:
            buckets.setdefault(self.local_day(key(entry)), []).append(entry)

        groups = []
        for day in sorted(buckets, reverse=True):
            items = sorted(buckets[day], key=key, reverse=True)
            groups.append(DayGroup(day=day, header=format_date_header(day, today), entries=items))
        return groups

    def build(self, entries: list[ManifestEntry]) -> HistoryView:
        """Partition, sort and group a manifest snapshot."""
        now = self._clock()
        today = self.local_day(now)

        removed = [e for e in entries if e.removed]
        live = sorted((e for e in entries if not e.removed), key=lambda e: e.processed_date, reverse=True)

        by_type: dict[MediaType, list[DayGroup]] = {}
        for media_type in MediaType:
            of_type = [e for e in live if e.media_type == media_type]
            by_type[media_type] = self.group_by_day(
                of_type, key=lambda e: self.grouping_date(e, now), today=today
            )

        removed_groups = self.group_by_day(
            removed, key=lambda e: e.removed_date or e.processed_date, today=today
        )

        stats = HistoryStats(
            total_files=len(entries) - len(removed),
            total_size=sum(e.file_size for e in entries),
            removed_count=len(removed),
        )
        logger.debug(
            "History built: %d live, %d removed", stats.total_files, stats.removed_count
        )
        return HistoryView(live=by_type, removed=removed_groups, stats=stats)
