"""Multi-stage duplicate detection: size buckets, content hashes, groups."""

from __future__ import annotations

import logging
import os
import stat as stat_module
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Iterator, Sequence, TypeVar, Union

from reclaim.config.models import DuplicateOptions, ScanConfig
from reclaim.progress import CancellationToken, ProgressChannel, ProgressReport, is_cancelled
from reclaim.scanning.discovery import DirectoryScanner
from reclaim.scanning.models import FileRecord

from .hashing import HashComputer
from .models import DuplicateGroup, DuplicateReport

LOGGER = logging.getLogger(__name__)

DuplicateInput = Union[str, Path, FileRecord]
T = TypeVar("T")


def _chunks(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class _ProgressTracker:
    """Publish duplicate progress every ``interval`` items plus a final 100%."""

    def __init__(self, channel: ProgressChannel | None, total: int, interval: int = 10) -> None:
        self.channel = channel
        self.total = total
        self.interval = interval
        self.processed = 0

    def start(self) -> None:
        self._publish(ProgressReport.compute("duplicates", 0, self.total))

    def advance(self, count: int = 1) -> None:
        for _ in range(count):
            self.processed += 1
            if self.processed % self.interval == 0 or self.processed == self.total:
                self._publish(ProgressReport.compute("duplicates", self.processed, self.total))

    def finish(self) -> None:
        self._publish(ProgressReport.complete("duplicates", self.processed, self.total))

    def _publish(self, report: ProgressReport) -> None:
        if self.channel is not None:
            self.channel.publish(report)


class DuplicateDetector:
    """Group files with identical size and content hash.

    All intermediate maps are local to a single :meth:`find_duplicates` call,
    so independent detector runs never share state.
    """

    def __init__(self, scanner: DirectoryScanner | None = None) -> None:
        self.scanner = scanner or DirectoryScanner()

    def find_duplicates(
        self,
        items: Iterable[DuplicateInput],
        options: DuplicateOptions | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> DuplicateReport:
        """Detect duplicates among the given paths or scanned records.

        Args:
            items: File paths or records from a prior scan.
            options: Detection options; defaults apply when omitted.
            progress: Optional channel; closed when the run finishes.
            cancel: Optional token checked between sub-batches.

        Returns:
            DuplicateReport: Groups sorted by total size, with summary counts.
        """
        options = options or DuplicateOptions()
        inputs = list(items)
        report = DuplicateReport()
        tracker = _ProgressTracker(progress, len(inputs))
        hasher = HashComputer(
            options.hash_algorithm,
            None if options.exact_match else options.sample_size,
        )

        try:
            tracker.start()
            candidates = self._collect_candidates(inputs, options, report, tracker, cancel)
            to_hash = self._size_filter(candidates, options, tracker)
            buckets = self._hash_candidates(to_hash, hasher, options, report, tracker, cancel)

            groups = [
                DuplicateGroup(content_hash=digest, file_size=size, members=members)
                for (size, digest), members in buckets.items()
                if len(members) >= 2
            ]
            groups.sort(key=lambda group: group.total_bytes, reverse=True)
            report.groups = groups
            report.total_duplicates = sum(len(group.members) - 1 for group in groups)
            report.potential_savings = sum(group.reclaimable_bytes for group in groups)
            report.processed = tracker.processed
            tracker.finish()
        finally:
            if progress is not None:
                progress.close()

        LOGGER.info(
            "Duplicate detection %s: %d groups, %d duplicates, %d bytes reclaimable.",
            "cancelled" if report.cancelled else "completed",
            len(report.groups),
            report.total_duplicates,
            report.potential_savings,
        )
        return report

    def find_duplicates_in(
        self,
        root: Path | str,
        scan_config: ScanConfig | None = None,
        options: DuplicateOptions | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> DuplicateReport:
        """Walk ``root`` with the scanner, then detect duplicates among its files."""
        scan = self.scanner.scan_all(root, scan_config, cancel=cancel)
        if scan.cancelled:
            if progress is not None:
                progress.close()
            return DuplicateReport(cancelled=True, errors=list(scan.errors))
        report = self.find_duplicates(scan.files, options, progress=progress, cancel=cancel)
        report.errors = [*scan.errors, *report.errors]
        return report

    # Stages -----------------------------------------------------------

    def _collect_candidates(
        self,
        inputs: Sequence[DuplicateInput],
        options: DuplicateOptions,
        report: DuplicateReport,
        tracker: _ProgressTracker,
        cancel: CancellationToken | None,
    ) -> list[FileRecord]:
        candidates: list[FileRecord] = []
        seen: set[str] = set()
        for chunk in _chunks(inputs, options.sub_batch_size):
            if is_cancelled(cancel):
                report.cancelled = True
                break
            for item in chunk:
                record = self._resolve(item, options, report, seen)
                if record is None:
                    tracker.advance()
                else:
                    candidates.append(record)
        return candidates

    def _size_filter(
        self,
        candidates: list[FileRecord],
        options: DuplicateOptions,
        tracker: _ProgressTracker,
    ) -> list[FileRecord]:
        if not options.compare_size_first:
            return candidates
        by_size: dict[int, list[FileRecord]] = defaultdict(list)
        for record in candidates:
            by_size[record.size].append(record)
        remaining: list[FileRecord] = []
        for bucket in by_size.values():
            if len(bucket) < 2:
                tracker.advance(len(bucket))
                continue
            remaining.extend(bucket)
        LOGGER.debug("Size filter kept %d of %d candidates.", len(remaining), len(candidates))
        return remaining

    def _hash_candidates(
        self,
        records: list[FileRecord],
        hasher: HashComputer,
        options: DuplicateOptions,
        report: DuplicateReport,
        tracker: _ProgressTracker,
        cancel: CancellationToken | None,
    ) -> dict[tuple[int, str], list[FileRecord]]:
        buckets: dict[tuple[int, str], list[FileRecord]] = defaultdict(list)
        if report.cancelled:
            return buckets
        for chunk in _chunks(records, options.sub_batch_size):
            if is_cancelled(cancel):
                report.cancelled = True
                break
            for record in chunk:
                try:
                    digest = hasher.compute(record.path, record.size)
                except OSError as exc:
                    LOGGER.warning("Could not hash %s: %s", record.path, exc)
                    report.errors.append(f"{record.path}: {exc.strerror or exc}")
                    report.skipped += 1
                else:
                    buckets[(record.size, digest)].append(record)
                tracker.advance()
        return buckets

    def _resolve(
        self,
        item: DuplicateInput,
        options: DuplicateOptions,
        report: DuplicateReport,
        seen: set[str],
    ) -> FileRecord | None:
        path = Path(item.path if isinstance(item, FileRecord) else item).expanduser()
        try:
            info = os.stat(path)
        except FileNotFoundError:
            LOGGER.debug("Skipping vanished file %s.", path)
            report.skipped += 1
            return None
        except OSError as exc:
            LOGGER.warning("Skipping %s: %s", path, exc)
            report.errors.append(f"{path}: {exc.strerror or exc}")
            report.skipped += 1
            return None

        if not stat_module.S_ISREG(info.st_mode):
            report.skipped += 1
            return None
        if options.min_size is not None and info.st_size < options.min_size:
            report.skipped += 1
            return None
        if options.max_size is not None and info.st_size > options.max_size:
            report.skipped += 1
            return None

        key = os.path.realpath(path)
        if key in seen:
            return None
        seen.add(key)

        fresh = FileRecord.from_stat(path, info)
        if isinstance(item, FileRecord):
            return fresh.model_copy(update={"categories": item.categories})
        return fresh


__all__ = ["DuplicateDetector", "DuplicateInput"]
