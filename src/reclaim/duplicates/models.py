"""Duplicate detection result models."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, computed_field, field_validator

from reclaim.scanning.models import FileRecord


class DuplicateGroup(BaseModel):
    """Files that share a byte size and content hash.

    Attributes:
        content_hash: Hex digest shared by every member.
        file_size: Size in bytes shared by every member.
        members: Files in the group; always two or more.
    """

    content_hash: str
    file_size: int = Field(ge=0)
    members: List[FileRecord]

    @field_validator("members")
    @classmethod
    def _at_least_two(cls, members: List[FileRecord]) -> List[FileRecord]:
        if len(members) < 2:
            raise ValueError("A duplicate group needs at least two members.")
        return members

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reclaimable_bytes(self) -> int:
        """Bytes freed by keeping exactly one member."""
        return self.file_size * (len(self.members) - 1)

    @property
    def total_bytes(self) -> int:
        return self.file_size * len(self.members)


class DuplicateReport(BaseModel):
    """Aggregate outcome of one duplicate-detection run.

    Attributes:
        groups: Duplicate groups, largest total size first.
        total_duplicates: Sum of ``members - 1`` over all groups.
        potential_savings: Sum of ``file_size * (members - 1)`` over all groups.
        processed: Inputs that reached a final decision (hashed or skipped).
        skipped: Inputs skipped because they vanished, were directories,
            were out of bounds, or failed to hash.
        errors: Messages for inputs that failed with an error.
        cancelled: True when the run stopped early; groups then cover only
            the inputs hashed before cancellation.
    """

    groups: List[DuplicateGroup] = Field(default_factory=list)
    total_duplicates: int = 0
    potential_savings: int = 0
    processed: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    cancelled: bool = False


__all__ = ["DuplicateGroup", "DuplicateReport"]
