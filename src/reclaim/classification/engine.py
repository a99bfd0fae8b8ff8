"""Heuristic classifier that tags files as reclaim candidates.

Classification is advisory: tags describe why a file *might* be safe to
remove (large and stale, temporary, an installer, or named like a copy). The
classifier performs no I/O and never raises, so it can annotate every batch a
scan emits.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Iterable, Optional

from reclaim.scanning.models import FileCategory, FileRecord

from .models import Classification, ClassificationThresholds

LOGGER = logging.getLogger(__name__)

TEMPORARY_EXTENSIONS = frozenset({".tmp", ".temp", ".bak", ".cache", ".log"})
INSTALLER_EXTENSIONS = frozenset({".dmg", ".exe", ".pkg", ".iso", ".zip", ".tar", ".gz", ".rar"})

_COPY_WORD = re.compile(r"(?<![^\W_])(?:copy|копия|kopie|copie|copia)(?![^\W_])", re.IGNORECASE)
_NUMBERED_COPY = re.compile(r"\(\d+\)")
_TRAILING_NUMBER = re.compile(r"_\d+$")


def looks_like_copy(name: str) -> bool:
    """Return True when a filename follows a common "copy of" naming pattern."""
    if _COPY_WORD.search(name) or _NUMBERED_COPY.search(name):
        return True
    return bool(_TRAILING_NUMBER.search(PurePath(name).stem))


def _days_since(moment: Optional[datetime], now: datetime) -> float:
    if not isinstance(moment, datetime):
        return float("inf")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        return (now - moment).days
    except (OverflowError, TypeError):
        return float("inf")


class Classifier:
    """Assign advisory categories to scanned files."""

    def __init__(self, thresholds: ClassificationThresholds | None = None) -> None:
        self.thresholds = thresholds or ClassificationThresholds()

    def classify(
        self,
        record: FileRecord,
        thresholds: ClassificationThresholds | None = None,
        *,
        now: datetime | None = None,
    ) -> Classification:
        """Return the categories that apply to ``record``.

        Args:
            record: File to classify.
            thresholds: Overrides the classifier's default thresholds.
            now: Reference time for staleness; defaults to the current UTC time.

        Returns:
            Classification: Assigned categories and reclaimable flag.
        """
        limits = thresholds or self.thresholds
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)

        categories: set[FileCategory] = set()
        if (
            record.size > limits.large_file_size
            and _days_since(record.accessed_at, reference) > limits.stale_age_days
        ):
            categories.add(FileCategory.LARGE_UNUSED)

        extension = (record.extension or "").lower()
        if extension in TEMPORARY_EXTENSIONS:
            categories.add(FileCategory.TEMPORARY)
        if extension in INSTALLER_EXTENSIONS:
            categories.add(FileCategory.INSTALLER)
        if looks_like_copy(record.name):
            categories.add(FileCategory.POTENTIAL_DUPLICATE)

        return Classification(categories=frozenset(categories))

    def annotate(
        self,
        record: FileRecord,
        thresholds: ClassificationThresholds | None = None,
        *,
        now: datetime | None = None,
    ) -> FileRecord:
        """Return a copy of ``record`` carrying its categories."""
        result = self.classify(record, thresholds, now=now)
        return record.model_copy(update={"categories": result.categories})

    def annotate_many(
        self,
        records: Iterable[FileRecord],
        thresholds: ClassificationThresholds | None = None,
        *,
        now: datetime | None = None,
    ) -> list[FileRecord]:
        """Classify a batch against a single reference time."""
        reference = now or datetime.now(timezone.utc)
        annotated = [self.annotate(record, thresholds, now=reference) for record in records]
        LOGGER.debug(
            "Classified %d files (%d reclaimable).",
            len(annotated),
            sum(1 for record in annotated if record.is_reclaimable),
        )
        return annotated


__all__ = ["Classifier", "looks_like_copy", "TEMPORARY_EXTENSIONS", "INSTALLER_EXTENSIONS"]
