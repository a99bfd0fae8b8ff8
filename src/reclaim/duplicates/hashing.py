"""Content hashing for duplicate detection.

Two modes are supported:

- whole-file hashing, streamed in fixed-size chunks, and
- sampled hashing, which digests three ``sample_size`` windows (start,
  middle, end) for files larger than ``3 * sample_size``. Smaller files are
  always hashed in full because sampling would not save any reads.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import xxhash

from reclaim.config.models import HashAlgorithm

CHUNK_SIZE = 1024 * 1024

_FACTORIES: Dict[str, Callable[[], Any]] = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "xxh64": xxhash.xxh64,
}

SUPPORTED_ALGORITHMS = tuple(_FACTORIES)


def sample_offsets(size: int, sample_size: int) -> tuple[int, int, int]:
    """Return the start, middle, and end window offsets for a sampled hash."""
    middle = size // 2 - sample_size // 2
    return 0, middle, size - sample_size


class HashComputer:
    """Compute hex digests of file contents.

    Args:
        algorithm: One of :data:`SUPPORTED_ALGORITHMS`.
        sample_size: Window size for sampled hashing; ``None`` hashes whole files.
    """

    def __init__(self, algorithm: HashAlgorithm = "md5", sample_size: Optional[int] = None) -> None:
        if algorithm not in _FACTORIES:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        if sample_size is not None and sample_size <= 0:
            raise ValueError("sample_size must be positive.")
        self.algorithm = algorithm
        self.sample_size = sample_size

    def uses_sampling(self, size: int) -> bool:
        return self.sample_size is not None and size > 3 * self.sample_size

    def compute(self, path: Path | str, size: Optional[int] = None) -> str:
        """Return the hex digest for ``path``.

        Args:
            path: File to hash.
            size: Known file size; stat-ed when omitted.

        Raises:
            OSError: If the file cannot be opened or read.
        """
        path = Path(path)
        if size is None:
            size = path.stat().st_size
        digest = _FACTORIES[self.algorithm]()
        window = self.sample_size
        with path.open("rb") as handle:
            if window is not None and self.uses_sampling(size):
                for offset in sample_offsets(size, window):
                    handle.seek(offset, os.SEEK_SET)
                    digest.update(handle.read(window))
            else:
                for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
                    digest.update(chunk)
        return digest.hexdigest()


__all__ = ["HashComputer", "SUPPORTED_ALGORITHMS", "CHUNK_SIZE", "sample_offsets"]
