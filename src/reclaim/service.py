"""High-level facade exposing the engine's operations to collaborators."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from pydantic import ValidationError

from reclaim.backup import BackupRecord, BackupStore
from reclaim.config import ConfigError, ReclaimConfig
from reclaim.config.models import DuplicateOptions, ScanConfig
from reclaim.deletion import DeleteOrchestrator, DeleteReport
from reclaim.duplicates import DuplicateDetector, DuplicateReport
from reclaim.duplicates.detector import DuplicateInput
from reclaim.errors import OperationInProgressError
from reclaim.progress import CancellationToken, ProgressChannel
from reclaim.scanning.discovery import DirectoryScanner
from reclaim.scanning.models import ScanBatch, ScanResult


class ReclaimService:
    """Coordinate scanning, duplicate detection, deletion, and restore.

    Operations of the same type are serialized: starting a second scan while
    one is still streaming raises :class:`OperationInProgressError`. Different
    operation types share no mutable state and may run concurrently.
    """

    def __init__(
        self,
        config: ReclaimConfig | None = None,
        *,
        store: BackupStore | None = None,
        scanner: DirectoryScanner | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Loaded configuration; defaults apply when omitted.
            store: Backup store override; defaults to ``config.backups.directory``.
            scanner: Scanner override shared with the duplicate detector.
        """
        self.config = config or ReclaimConfig()
        self.store = store or BackupStore(self.config.backups.directory)
        self.scanner = scanner or DirectoryScanner()
        self.detector = DuplicateDetector(self.scanner)
        self.orchestrator = DeleteOrchestrator(self.store)
        self._locks = {
            name: threading.Lock() for name in ("scan", "duplicates", "delete", "restore")
        }

    # Scanning ---------------------------------------------------------

    def scan_config(self, overrides: ScanConfig | Mapping[str, Any] | None = None) -> ScanConfig:
        """Return the effective scan config, layering ``overrides`` on the defaults."""
        if isinstance(overrides, ScanConfig):
            return overrides
        try:
            return self.config.scanning.to_scan_config(**dict(overrides or {}))
        except ValidationError as exc:
            raise ConfigError(f"Invalid scan configuration: {exc}") from exc

    def scan(
        self,
        root: Path | str,
        config: ScanConfig | Mapping[str, Any] | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> Iterator[ScanBatch]:
        """Stream classified batches for ``root``; see :meth:`DirectoryScanner.scan`.

        The scan lock is taken on the first ``next()`` and held until the stream
        is exhausted or closed. Callers that stop reading early must call
        ``close()`` on the returned iterator (or wrap it in
        :func:`contextlib.closing`) so later scans are not rejected.
        """
        batches = self.scanner.scan(
            root, self.scan_config(config), progress=progress, cancel=cancel
        )
        return self._guarded("scan", batches, progress)

    def scan_all(
        self,
        root: Path | str,
        config: ScanConfig | Mapping[str, Any] | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanResult:
        """Run a scan to completion and return the collected result."""
        with self._exclusive("scan", progress):
            return self.scanner.scan_all(
                root, self.scan_config(config), progress=progress, cancel=cancel
            )

    # Duplicates -------------------------------------------------------

    def duplicate_options(
        self, overrides: DuplicateOptions | Mapping[str, Any] | None = None
    ) -> DuplicateOptions:
        """Return effective duplicate options, layering ``overrides`` on the defaults."""
        if isinstance(overrides, DuplicateOptions):
            return overrides
        try:
            return self.config.duplicates.to_options(**dict(overrides or {}))
        except ValidationError as exc:
            raise ConfigError(f"Invalid duplicate options: {exc}") from exc

    def find_duplicates(
        self,
        items: Iterable[DuplicateInput],
        options: DuplicateOptions | Mapping[str, Any] | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> DuplicateReport:
        """Detect duplicates among paths or records from a prior scan."""
        resolved = self.duplicate_options(options)
        with self._exclusive("duplicates", progress):
            return self.detector.find_duplicates(items, resolved, progress=progress, cancel=cancel)

    def find_duplicates_in(
        self,
        root: Path | str,
        options: DuplicateOptions | Mapping[str, Any] | None = None,
        scan_config: ScanConfig | Mapping[str, Any] | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> DuplicateReport:
        """Walk ``root`` and detect duplicates among the files found."""
        resolved = self.duplicate_options(options)
        walk_config = self.scan_config(scan_config)
        with self._exclusive("duplicates", progress):
            return self.detector.find_duplicates_in(
                root, walk_config, resolved, progress=progress, cancel=cancel
            )

    # Deletion and backups ---------------------------------------------

    def delete_files(self, paths: Iterable[Path | str]) -> DeleteReport:
        """Back up then remove each path; one outcome per requested path."""
        with self._exclusive("delete"):
            return self.orchestrator.delete(paths)

    def retry_delete(self, report: DeleteReport) -> DeleteReport:
        """Retry the failed outcomes of an earlier delete."""
        with self._exclusive("delete"):
            return self.orchestrator.retry(report)

    def list_backups(self) -> list[BackupRecord]:
        return self.store.list_backups()

    def restore_backup(
        self,
        backup_id: str,
        target: Path | str | None = None,
        *,
        overwrite: bool = False,
    ) -> Path:
        """Restore a backup; raises :class:`RestoreConflictError` when confirmation is needed."""
        with self._exclusive("restore"):
            return self.store.restore(backup_id, target, overwrite=overwrite)

    def purge_backup(self, backup_id: str) -> BackupRecord:
        with self._exclusive("delete"):
            return self.store.purge(backup_id)

    def purge_expired_backups(self) -> list[BackupRecord]:
        """Apply the configured retention window and size budget."""
        settings = self.config.backups
        with self._exclusive("delete"):
            return self.store.purge_expired(
                settings.retention_days, settings.max_total_size_mb * 1024 * 1024
            )

    # Internal helpers -------------------------------------------------

    @contextmanager
    def _exclusive(
        self, operation: str, progress: ProgressChannel | None = None
    ) -> Iterator[None]:
        lock = self._locks[operation]
        if not lock.acquire(blocking=False):
            if progress is not None:
                progress.close()
            raise OperationInProgressError(f"A {operation} operation is already running.")
        try:
            yield
        finally:
            lock.release()

    def _guarded(
        self,
        operation: str,
        batches: Iterator[ScanBatch],
        progress: ProgressChannel | None,
    ) -> Iterator[ScanBatch]:
        with self._exclusive(operation, progress):
            yield from batches


__all__ = ["ReclaimService"]
