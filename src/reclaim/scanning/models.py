"""Data models produced by directory scanning."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from reclaim.progress import ProgressReport


class FileCategory(str, Enum):
    """Advisory tags marking a file as a reclaim candidate."""

    LARGE_UNUSED = "large_unused"
    TEMPORARY = "temporary"
    INSTALLER = "installer"
    POTENTIAL_DUPLICATE = "potential_duplicate"


def _timestamp(value: float | None) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class FileRecord(BaseModel):
    """Metadata describing one scanned file.

    Attributes:
        path: Absolute path; unique within a scan.
        name: Base name of the file.
        size: Size in bytes.
        accessed_at: Last access time, if known.
        modified_at: Last modification time, if known.
        created_at: Creation (birth or change) time, if known.
        extension: Lower-cased suffix including the leading dot.
        categories: Tags assigned by the classifier.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    name: str
    size: int = Field(ge=0)
    accessed_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    extension: str = ""
    categories: FrozenSet[FileCategory] = Field(default_factory=frozenset)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_reclaimable(self) -> bool:
        return bool(self.categories)

    @classmethod
    def from_stat(cls, path: Path | str, stat: os.stat_result) -> FileRecord:
        """Build an unclassified record from ``os.stat`` data."""
        path = Path(path)
        created = getattr(stat, "st_birthtime", None)
        if created is None:
            created = stat.st_ctime
        return cls(
            path=str(path),
            name=path.name,
            size=stat.st_size,
            accessed_at=_timestamp(stat.st_atime),
            modified_at=_timestamp(stat.st_mtime),
            created_at=_timestamp(created),
            extension=path.suffix.lower(),
        )


@dataclass(slots=True)
class ScanProgress:
    """Mutable progress counters owned by a single scan.

    Attributes:
        files_processed: Files discovered so far.
        files_estimated_total: Estimated total from the pre-pass (0 if unknown).
    """

    files_processed: int = 0
    files_estimated_total: int = 0

    @property
    def percentage(self) -> int:
        return self.report().percentage

    def report(self) -> ProgressReport:
        return ProgressReport.compute("scan", self.files_processed, self.files_estimated_total)

    def final_report(self) -> ProgressReport:
        return ProgressReport.complete("scan", self.files_processed, self.files_estimated_total)


@dataclass(slots=True)
class ScanBatch:
    """A bounded group of classified records emitted by the scanner.

    Attributes:
        files: Classified records discovered since the previous batch.
        progress: Progress snapshot at emission time.
        errors: Messages for entries skipped since the previous batch.
        done: True for the last batch of a scan.
        cancelled: True when the scan stopped because it was cancelled.
    """

    files: List[FileRecord]
    progress: ProgressReport
    errors: List[str] = field(default_factory=list)
    done: bool = False
    cancelled: bool = False


@dataclass(slots=True)
class CategoryTotals:
    """File count and combined size for one category."""

    count: int = 0
    bytes: int = 0


def category_totals(records: Iterable[FileRecord]) -> Dict[FileCategory, CategoryTotals]:
    """Tally records per category; every category is present, even when empty.

    A record with several tags counts toward each of them, so the per-category
    sizes may add up to more than the reclaimable total.
    """
    totals = {category: CategoryTotals() for category in FileCategory}
    for record in records:
        for category in record.categories:
            totals[category].count += 1
            totals[category].bytes += record.size
    return totals


@dataclass(slots=True)
class ScanResult:
    """Aggregate outcome of a complete scan.

    Attributes:
        root: Scanned root directory.
        files: Every classified record emitted by the scan.
        progress: Final progress report.
        errors: Messages for entries that were skipped because of errors.
        cancelled: True when the scan was cancelled before completion.
    """

    root: Path
    files: List[FileRecord] = field(default_factory=list)
    progress: ProgressReport = field(default_factory=lambda: ProgressReport("scan", 0, 0, 0))
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def reclaimable(self) -> List[FileRecord]:
        return [record for record in self.files if record.is_reclaimable]

    @property
    def reclaimable_bytes(self) -> int:
        return sum(record.size for record in self.reclaimable)

    @property
    def total_bytes(self) -> int:
        return sum(record.size for record in self.files)

    @property
    def by_category(self) -> Dict[FileCategory, CategoryTotals]:
        return category_totals(self.files)

    @property
    def skipped(self) -> int:
        return len(self.errors)


__all__ = [
    "CategoryTotals",
    "FileCategory",
    "FileRecord",
    "ScanBatch",
    "ScanProgress",
    "ScanResult",
    "category_totals",
]
