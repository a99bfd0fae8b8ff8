"""Backup/trash store for deleted files."""

from .models import BackupMetadata, BackupRecord
from .store import DEFAULT_BACKUP_DIR, META_SUFFIX, BackupStore

__all__ = ["BackupStore", "BackupRecord", "BackupMetadata", "DEFAULT_BACKUP_DIR", "META_SUFFIX"]
