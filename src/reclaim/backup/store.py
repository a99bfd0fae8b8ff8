"""Durable trash directory holding copies of deleted files."""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import stat as stat_module
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from uuid import uuid4

from reclaim.errors import (
    BackupFailedError,
    BackupNotFoundError,
    NotFoundError,
    PermissionDeniedError,
    ReclaimError,
    RestoreConflictError,
    RestoreTargetMissingError,
)

from .models import BackupMetadata, BackupRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_BACKUP_DIR = Path("~/.reclaim/trash")
META_SUFFIX = ".meta.json"
_TIMESTAMP_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}(?:\.\d+)?Z(?:-\d+)?_")


def backup_timestamp(moment: datetime) -> str:
    """Return a filename-safe ISO timestamp (colons replaced with dashes)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S.%fZ")


def display_name(backup_name: str) -> str:
    """Strip the ``<timestamp>_`` prefix from a backup file name."""
    return _TIMESTAMP_PREFIX.sub("", backup_name, count=1)


def legacy_id(backup_path: Path, mtime: float) -> str:
    """Derive an identifier for sidecars written without an ``id`` field."""
    return hashlib.md5(f"{backup_path}{mtime}".encode("utf-8")).hexdigest()


def _metadata_path(backup_path: Path) -> Path:
    return backup_path.with_name(backup_path.name + META_SUFFIX)


def _fsync(path: Path) -> None:
    with path.open("rb") as handle:
        os.fsync(handle.fileno())


def _to_datetime(value: float) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class BackupStore:
    """Manage backup copies and their sidecar metadata.

    Each backup is a byte copy named ``<timestamp>_<original name>`` plus a
    ``<same>.meta.json`` sidecar. A backup only counts as complete once the
    sidecar has been fsynced and renamed into place.
    """

    def __init__(self, directory: Path | str = DEFAULT_BACKUP_DIR) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding backups; created on first use.
        """
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def initialize(self) -> Path:
        """Create the backup directory if needed and return it."""
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    def backup(self, path: Path | str) -> BackupRecord:
        """Copy ``path`` into the store and persist its metadata.

        Args:
            path: Regular file to back up.

        Returns:
            BackupRecord: Record describing the completed backup.

        Raises:
            NotFoundError: If the file does not exist.
            BackupFailedError: If the copy or metadata write failed; partial
                artifacts are removed before raising.
        """
        source = Path(path).expanduser().absolute()
        try:
            info = source.stat()
        except FileNotFoundError as exc:
            raise NotFoundError(f"File not found: {source}") from exc
        except OSError as exc:
            raise BackupFailedError(f"Cannot read {source}: {exc}") from exc
        if not stat_module.S_ISREG(info.st_mode):
            raise BackupFailedError(f"Not a regular file: {source}")

        now = datetime.now(timezone.utc)
        metadata = BackupMetadata(
            id=uuid4().hex,
            original_path=str(source),
            size=info.st_size,
            created=_to_datetime(getattr(info, "st_birthtime", info.st_ctime)),
            modified=_to_datetime(info.st_mtime),
            backup_date=now,
        )
        try:
            payload = metadata.model_dump_json(by_alias=True, indent=2)
        except ValueError as exc:
            raise BackupFailedError(f"Cannot record metadata for {source!r}: {exc}") from exc

        try:
            target = self._reserve(self.initialize(), source.name, now)
        except OSError as exc:
            raise BackupFailedError(f"Cannot prepare backup for {source}: {exc}") from exc
        meta_path = _metadata_path(target)

        try:
            shutil.copy2(source, target)
            _fsync(target)
            copied_size = target.stat().st_size
            if copied_size != info.st_size:
                raise BackupFailedError(
                    f"Backup of {source} is incomplete ({copied_size} of {info.st_size} bytes)."
                )
            self._write_metadata(meta_path, payload)
        except BackupFailedError:
            self._discard(target, meta_path)
            raise
        except OSError as exc:
            self._discard(target, meta_path)
            raise BackupFailedError(f"Backup of {source} failed: {exc}") from exc
        except BaseException:
            self._discard(target, meta_path)
            raise

        LOGGER.debug("Backed up %s to %s.", source, target)
        return BackupRecord(
            id=metadata.id or legacy_id(target, target.stat().st_mtime),
            original_path=metadata.original_path,
            backup_path=target,
            file_name=source.name,
            size=copied_size,
            backup_date=now,
        )

    def list_backups(self) -> list[BackupRecord]:
        """Return every complete backup, newest first.

        Copies without a sidecar, or whose size disagrees with it, are skipped.
        """
        if not self._directory.is_dir():
            return []

        records: list[BackupRecord] = []
        for entry in sorted(self._directory.iterdir()):
            name = entry.name
            if name.startswith(".") or name.endswith(META_SUFFIX):
                continue
            try:
                if not entry.is_file():
                    continue
                record = self._load_record(entry)
                if record is not None:
                    records.append(record)
            except (OSError, ValueError) as exc:
                LOGGER.warning("Skipping unreadable backup %s: %s", entry, exc)
        records.sort(key=lambda record: record.backup_date, reverse=True)
        return records

    def get(self, backup_id: str) -> BackupRecord:
        """Return the backup with ``backup_id``.

        Raises:
            BackupNotFoundError: If no backup has that identifier.
        """
        for record in self.list_backups():
            if record.id == backup_id:
                return record
        raise BackupNotFoundError(f"Backup not found: {backup_id}")

    def restore(
        self,
        backup_id: str,
        target: Path | str | None = None,
        *,
        overwrite: bool = False,
    ) -> Path:
        """Copy a backup back to ``target`` or its recorded original path.

        The backup itself is kept, so restores can be repeated.

        Args:
            backup_id: Identifier of the backup to restore.
            target: Destination path; defaults to the recorded original path.
            overwrite: Replace an existing destination. Callers set this only
                after the user confirmed a :class:`RestoreConflictError`.

        Returns:
            Path: The restored file's path.

        Raises:
            BackupNotFoundError: If the identifier is unknown.
            RestoreTargetMissingError: If no destination is known or its parent
                directory does not exist.
            RestoreConflictError: If the destination exists and ``overwrite`` is False.
        """
        record = self.get(backup_id)
        if target is not None:
            destination = Path(target).expanduser()
        elif record.original_path:
            destination = Path(record.original_path)
        else:
            raise RestoreTargetMissingError(
                "Original path is unknown; a target path must be specified."
            )

        if not destination.parent.is_dir():
            raise RestoreTargetMissingError(f"Target directory does not exist: {destination.parent}")
        if destination.is_dir():
            raise ReclaimError(f"Cannot restore over a directory: {destination}")
        if destination.exists() and not overwrite:
            raise RestoreConflictError(destination)

        try:
            shutil.copy2(record.backup_path, destination)
        except PermissionError as exc:
            raise PermissionDeniedError(f"Cannot write {destination}: {exc}") from exc
        except OSError as exc:
            raise ReclaimError(f"Error restoring backup {backup_id}: {exc}") from exc

        LOGGER.info("Restored %s to %s.", record.backup_path.name, destination)
        return destination

    def purge(self, backup_id: str) -> BackupRecord:
        """Permanently delete a backup copy and its metadata."""
        record = self.get(backup_id)
        record.backup_path.unlink(missing_ok=True)
        _metadata_path(record.backup_path).unlink(missing_ok=True)
        LOGGER.info("Purged backup %s (%s).", record.id, record.file_name)
        return record

    def purge_expired(
        self,
        retention_days: int | None,
        max_total_bytes: int | None = None,
        *,
        now: datetime | None = None,
    ) -> list[BackupRecord]:
        """Delete backups older than the retention window, then the oldest
        remaining ones until the store fits within ``max_total_bytes``.

        Zero or ``None`` disables the corresponding limit.
        """
        reference = now or datetime.now(timezone.utc)
        oldest_first = sorted(self.list_backups(), key=lambda record: record.backup_date)
        doomed: list[BackupRecord] = []
        kept: list[BackupRecord] = []

        cutoff = reference - timedelta(days=retention_days) if retention_days else None
        for record in oldest_first:
            if cutoff is not None and record.backup_date < cutoff:
                doomed.append(record)
            else:
                kept.append(record)

        if max_total_bytes:
            total = sum(record.size for record in kept)
            while kept and total > max_total_bytes:
                record = kept.pop(0)
                total -= record.size
                doomed.append(record)

        for record in doomed:
            record.backup_path.unlink(missing_ok=True)
            _metadata_path(record.backup_path).unlink(missing_ok=True)
        if doomed:
            LOGGER.info("Pruned %d backups from %s.", len(doomed), self._directory)
        return doomed

    # Internal helpers -------------------------------------------------

    def _reserve(self, directory: Path, name: str, moment: datetime) -> Path:
        stamp = backup_timestamp(moment)
        counter = 0
        while True:
            prefix = stamp if counter == 0 else f"{stamp}-{counter}"
            candidate = directory / f"{prefix}_{name}"
            try:
                fd = os.open(candidate, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                counter += 1
                continue
            os.close(fd)
            return candidate

    def _write_metadata(self, meta_path: Path, payload: str) -> None:
        partial = meta_path.with_name(f".{meta_path.name}.tmp")
        with partial.open("w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(partial, meta_path)

    def _discard(self, target: Path, meta_path: Path) -> None:
        for artifact in (target, meta_path, meta_path.with_name(f".{meta_path.name}.tmp")):
            try:
                artifact.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.warning("Could not remove partial backup artifact %s: %s", artifact, exc)

    def _load_record(self, backup_path: Path) -> Optional[BackupRecord]:
        meta_path = _metadata_path(backup_path)
        if not meta_path.exists():
            # In-flight or interrupted backup.
            LOGGER.debug("Ignoring %s without metadata.", backup_path)
            return None
        info = backup_path.stat()
        metadata = BackupMetadata.model_validate_json(meta_path.read_text(encoding="utf-8"))
        if metadata.size is not None and metadata.size != info.st_size:
            LOGGER.warning(
                "Skipping incomplete backup %s (%d of %d bytes).",
                backup_path,
                info.st_size,
                metadata.size,
            )
            return None

        backup_date = metadata.backup_date or _to_datetime(info.st_mtime)
        if backup_date is None:
            raise ValueError("backup has no usable timestamp")
        if backup_date.tzinfo is None:
            backup_date = backup_date.replace(tzinfo=timezone.utc)

        return BackupRecord(
            id=metadata.id or legacy_id(backup_path, info.st_mtime),
            original_path=metadata.original_path,
            backup_path=backup_path,
            file_name=display_name(backup_path.name),
            size=info.st_size,
            backup_date=backup_date,
        )


__all__ = [
    "BackupStore",
    "DEFAULT_BACKUP_DIR",
    "META_SUFFIX",
    "backup_timestamp",
    "display_name",
    "legacy_id",
]
