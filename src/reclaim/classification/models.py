"""Classification data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet

from reclaim.config.models import ScanConfig
from reclaim.scanning.models import FileCategory


@dataclass(frozen=True, slots=True)
class ClassificationThresholds:
    """Thresholds for the large-unused category.

    Attributes:
        large_file_size: Size in bytes a file must exceed.
        stale_age_days: Days since last access a file must exceed.
    """

    large_file_size: int = 100 * 1024 * 1024
    stale_age_days: int = 180

    @classmethod
    def from_scan_config(cls, config: ScanConfig) -> ClassificationThresholds:
        return cls(
            large_file_size=config.large_file_size_threshold,
            stale_age_days=config.stale_age_threshold_days,
        )


@dataclass(frozen=True, slots=True)
class Classification:
    """Categories assigned to a file and the derived reclaimable flag."""

    categories: FrozenSet[FileCategory]

    @property
    def is_reclaimable(self) -> bool:
        return bool(self.categories)


__all__ = ["ClassificationThresholds", "Classification"]
