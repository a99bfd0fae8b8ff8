"""Duplicate detection package."""

from .detector import DuplicateDetector
from .hashing import SUPPORTED_ALGORITHMS, HashComputer
from .models import DuplicateGroup, DuplicateReport
from .resolution import ResolutionPolicy, files_to_delete, plan_deletions

__all__ = [
    "DuplicateDetector",
    "DuplicateGroup",
    "DuplicateReport",
    "HashComputer",
    "SUPPORTED_ALGORITHMS",
    "ResolutionPolicy",
    "files_to_delete",
    "plan_deletions",
]
