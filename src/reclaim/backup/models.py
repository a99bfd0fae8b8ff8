"""Backup store data models."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BackupMetadata(BaseModel):
    """Sidecar metadata written next to each backup copy.

    Serialized with camelCase keys (``originalPath``, ``backupDate``) so
    stores written by earlier tools remain readable.

    Attributes:
        id: Immutable identifier assigned at backup time; absent in legacy sidecars.
        original_path: Absolute path the file was backed up from.
        size: Size of the original in bytes.
        created: Creation time of the original.
        modified: Modification time of the original.
        backup_date: Time the backup was taken.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    original_path: Optional[str] = Field(default=None, alias="originalPath")
    size: Optional[int] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    backup_date: Optional[datetime] = Field(default=None, alias="backupDate")


class BackupRecord(BaseModel):
    """A backed-up file as presented to callers.

    Attributes:
        id: Stable identifier used for restore and purge.
        original_path: Where the file lived before deletion, if recorded.
        backup_path: Location of the copied bytes.
        file_name: Original file name with the timestamp prefix removed.
        size: Size of the backup copy in bytes.
        backup_date: When the backup was taken.
    """

    id: str
    original_path: Optional[str] = None
    backup_path: Path
    file_name: str
    size: int
    backup_date: datetime


__all__ = ["BackupMetadata", "BackupRecord"]
