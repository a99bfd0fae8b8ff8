"""Backup-then-remove deletion of files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from reclaim.backup.store import BackupStore
from reclaim.errors import ErrorCode, NotFoundError, ReclaimError

from .models import DeleteOutcome, DeleteReport, DeleteState

LOGGER = logging.getLogger(__name__)


class DeleteOrchestrator:
    """Delete files only after a durable backup exists.

    Each path moves through ``pending -> backed_up -> removed``. A failed
    backup stops at ``backup_failed`` and leaves the original untouched; a
    failed removal stops at ``remove_failed`` and keeps the backup reference
    so :meth:`retry` can finish the job without copying again.
    """

    def __init__(self, store: BackupStore) -> None:
        self.store = store

    def delete(self, paths: Iterable[Path | str]) -> DeleteReport:
        """Back up and remove every path, one independent outcome per path.

        Args:
            paths: Files to delete.

        Returns:
            DeleteReport: Outcomes in request order.
        """
        report = DeleteReport()
        for path in paths:
            report.outcomes.append(self._delete_one(str(path)))
        LOGGER.info("Deleted %d of %d files.", report.succeeded, len(report.outcomes))
        return report

    def retry(self, report: DeleteReport) -> DeleteReport:
        """Re-run the failed outcomes of an earlier report.

        Paths whose backup already succeeded are only removed again; every
        other failed path goes through the full backup-then-remove sequence.
        """
        retried = DeleteReport()
        for outcome in report.outcomes:
            if outcome.deleted:
                retried.outcomes.append(outcome)
            elif outcome.state is DeleteState.REMOVE_FAILED:
                retried.outcomes.append(self._remove(outcome.model_copy()))
            else:
                retried.outcomes.append(self._delete_one(outcome.path))
        return retried

    def _delete_one(self, path: str) -> DeleteOutcome:
        outcome = DeleteOutcome(path=path)
        target = Path(path).expanduser()

        if not target.exists() and not target.is_symlink():
            outcome.error = ErrorCode.NOT_FOUND
            outcome.message = f"File not found: {path}"
            LOGGER.warning("Cannot delete missing file %s.", path)
            return outcome

        try:
            record = self.store.backup(target)
        except NotFoundError as exc:
            outcome.error = ErrorCode.NOT_FOUND
            outcome.message = str(exc)
            return outcome
        except ReclaimError as exc:
            outcome.state = DeleteState.BACKUP_FAILED
            outcome.error = ErrorCode.BACKUP_FAILED
            outcome.message = f"Backup failed: {exc}"
            LOGGER.warning("Backup of %s failed; original kept: %s", path, exc)
            return outcome
        except Exception as exc:
            outcome.state = DeleteState.BACKUP_FAILED
            outcome.error = ErrorCode.BACKUP_FAILED
            outcome.message = f"Backup failed unexpectedly: {exc}"
            LOGGER.exception("Unexpected error backing up %s; original kept.", path)
            return outcome

        outcome.state = DeleteState.BACKED_UP
        outcome.backup_path = record.backup_path
        outcome.backup_id = record.id
        return self._remove(outcome)

    def _remove(self, outcome: DeleteOutcome) -> DeleteOutcome:
        target = Path(outcome.path).expanduser()
        try:
            target.unlink()
        except FileNotFoundError:
            # Already gone; the backup still holds the content.
            pass
        except OSError as exc:
            outcome.state = DeleteState.REMOVE_FAILED
            outcome.error = ErrorCode.REMOVE_FAILED
            outcome.message = f"Remove failed: {exc}"
            LOGGER.warning("Backed up %s but could not remove it: %s", outcome.path, exc)
            return outcome

        outcome.state = DeleteState.REMOVED
        outcome.deleted = True
        outcome.error = None
        outcome.message = None
        LOGGER.debug("Removed %s (backup %s).", outcome.path, outcome.backup_path)
        return outcome


__all__ = ["DeleteOrchestrator"]
