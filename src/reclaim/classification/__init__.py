"""File classification package."""

from .engine import Classifier, looks_like_copy
from .models import Classification, ClassificationThresholds

__all__ = [
    "Classifier",
    "Classification",
    "ClassificationThresholds",
    "looks_like_copy",
]
