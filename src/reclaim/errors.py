"""Error taxonomy shared by the scanning, duplicate, backup, and delete engines."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorCode(str, Enum):
    """Machine-readable error identifiers surfaced in per-file outcomes."""

    NOT_FOUND = "NotFound"
    PERMISSION_DENIED = "PermissionDenied"
    INVALID_CONFIG = "InvalidConfig"
    BACKUP_FAILED = "BackupFailed"
    REMOVE_FAILED = "RemoveFailed"
    RESTORE_CONFLICT = "RestoreConflict"
    RESTORE_TARGET_MISSING = "RestoreTargetMissing"


class ReclaimError(Exception):
    """Base exception for reclaim operations."""

    code: ErrorCode | None = None


class NotFoundError(ReclaimError):
    """Raised when a path vanished between discovery and use."""

    code = ErrorCode.NOT_FOUND


class PermissionDeniedError(ReclaimError):
    """Raised when an entry cannot be read or modified."""

    code = ErrorCode.PERMISSION_DENIED


class ConfigError(ReclaimError):
    """Raised when configuration data cannot be processed."""

    code = ErrorCode.INVALID_CONFIG


class ScanRootError(ReclaimError):
    """Raised when the scan root is missing or not a directory."""

    code = ErrorCode.NOT_FOUND


class BackupFailedError(ReclaimError):
    """Raised when copying a file or writing its metadata failed."""

    code = ErrorCode.BACKUP_FAILED


class RemoveFailedError(ReclaimError):
    """Raised when a backed-up original could not be removed."""

    code = ErrorCode.REMOVE_FAILED


class BackupNotFoundError(ReclaimError):
    """Raised when no backup matches the requested identifier."""

    code = ErrorCode.NOT_FOUND


class RestoreTargetMissingError(ReclaimError):
    """Raised when a restore target or its parent directory is unavailable."""

    code = ErrorCode.RESTORE_TARGET_MISSING


class RestoreConflictError(ReclaimError):
    """Raised when the restore destination already exists.

    Callers confirm the overwrite with the user and retry with ``overwrite=True``.

    Attributes:
        target: Destination path that already exists.
    """

    code = ErrorCode.RESTORE_CONFLICT

    def __init__(self, target: Path) -> None:
        super().__init__(f"Restore destination already exists: {target}")
        self.target = target


class OperationInProgressError(ReclaimError):
    """Raised when an operation of the same type is already running."""


__all__ = [
    "ErrorCode",
    "ReclaimError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConfigError",
    "ScanRootError",
    "BackupFailedError",
    "RemoveFailedError",
    "BackupNotFoundError",
    "RestoreTargetMissingError",
    "RestoreConflictError",
    "OperationInProgressError",
]
