"""Directory scanning package.

The scanner itself lives in :mod:`reclaim.scanning.discovery`; this module
only re-exports the record types so classification can import them freely.
"""

from .models import FileCategory, FileRecord, ScanBatch, ScanProgress, ScanResult

__all__ = ["FileCategory", "FileRecord", "ScanBatch", "ScanProgress", "ScanResult"]
