"""Delete orchestration result models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from reclaim.errors import ErrorCode


class DeleteState(str, Enum):
    """Per-path progress through backup-then-remove."""

    PENDING = "pending"
    BACKED_UP = "backed_up"
    REMOVED = "removed"
    BACKUP_FAILED = "backup_failed"
    REMOVE_FAILED = "remove_failed"


class DeleteOutcome(BaseModel):
    """Result of deleting one requested path.

    Attributes:
        path: Path as requested by the caller.
        deleted: True when the original was removed after a successful backup.
        state: Final state reached for this path.
        backup_path: Backup copy location when a backup exists.
        backup_id: Identifier of that backup.
        error: Error code when the path was not deleted.
        message: Human-readable failure detail.
    """

    path: str
    deleted: bool = False
    state: DeleteState = DeleteState.PENDING
    backup_path: Optional[Path] = None
    backup_id: Optional[str] = None
    error: Optional[ErrorCode] = None
    message: Optional[str] = None


class DeleteReport(BaseModel):
    """Aggregated outcomes for one delete invocation."""

    outcomes: List[DeleteOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.deleted)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return bool(self.outcomes) and self.failed == 0


__all__ = ["DeleteState", "DeleteOutcome", "DeleteReport"]
