"""Map duplicate groups to the files a caller should delete."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Mapping, Optional

from reclaim.scanning.models import FileRecord

from .models import DuplicateGroup

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ResolutionPolicy(str, Enum):
    """Which members of a duplicate group survive."""

    NEWEST = "newest"
    OLDEST = "oldest"
    NONE = "none"
    ALL = "all"
    SPECIFIC = "specific"


def _modified_key(record: FileRecord) -> datetime:
    return record.modified_at or _EPOCH


def files_to_delete(
    group: DuplicateGroup,
    policy: ResolutionPolicy | str = ResolutionPolicy.NEWEST,
    keep: Optional[str] = None,
) -> list[FileRecord]:
    """Return the members of ``group`` that the policy marks for deletion.

    Members are ordered by modification time; missing timestamps sort as the
    oldest. ``keep`` names the surviving path for the ``specific`` policy.

    Raises:
        ValueError: If ``specific`` is requested without a member path to keep.
    """
    policy = ResolutionPolicy(policy)
    ordered = sorted(group.members, key=_modified_key)

    if policy is ResolutionPolicy.ALL:
        return []
    if policy is ResolutionPolicy.NONE:
        return ordered
    if policy is ResolutionPolicy.NEWEST:
        return ordered[:-1]
    if policy is ResolutionPolicy.OLDEST:
        return ordered[1:]

    if keep is None or all(member.path != keep for member in group.members):
        raise ValueError(f"Path to keep must be a member of the group: {keep!r}")
    return [member for member in ordered if member.path != keep]


def plan_deletions(
    groups: Iterable[DuplicateGroup],
    default: ResolutionPolicy | str = ResolutionPolicy.NEWEST,
    overrides: Mapping[str, ResolutionPolicy | str] | None = None,
    keep: Mapping[str, str] | None = None,
) -> list[str]:
    """Flatten a per-group selection into the list of paths to delete.

    Args:
        groups: Groups from a duplicate report.
        default: Policy for groups without an override.
        overrides: Policy per group, keyed by content hash.
        keep: Surviving path per group for the ``specific`` policy.
    """
    overrides = overrides or {}
    keep = keep or {}
    paths: list[str] = []
    for group in groups:
        policy = overrides.get(group.content_hash, default)
        selected = files_to_delete(group, policy, keep.get(group.content_hash))
        paths.extend(record.path for record in selected)
    return paths


__all__ = ["ResolutionPolicy", "files_to_delete", "plan_deletions"]
