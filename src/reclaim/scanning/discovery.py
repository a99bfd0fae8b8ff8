"""Breadth-first directory scanning with batched, classified output."""

from __future__ import annotations

import logging
import os
import stat as stat_module
from collections import deque
from pathlib import Path
from typing import Iterator

from reclaim.classification import Classifier, ClassificationThresholds
from reclaim.config.models import ScanConfig
from reclaim.errors import ScanRootError
from reclaim.progress import CancellationToken, ProgressChannel, is_cancelled

from .models import FileRecord, ScanBatch, ScanProgress, ScanResult

LOGGER = logging.getLogger(__name__)

DENIED_DIRECTORY_NAMES = frozenset({".git", "node_modules"})
DENIED_PREFIXES = tuple(
    Path(prefix) for prefix in ("/System", "/Library/System", "/proc", "/sys", "/dev")
)
# Files assumed for each directory below the estimate depth cap.
ESTIMATE_PLACEHOLDER = 10


def is_denied_directory(path: Path) -> bool:
    """Return True for well-known noisy system or metadata directories."""
    if path.name in DENIED_DIRECTORY_NAMES:
        return True
    return any(path == prefix or prefix in path.parents for prefix in DENIED_PREFIXES)


def _is_hidden_excluded(name: str, config: ScanConfig) -> bool:
    return name.startswith(".") and config.ignore_dotfiles and not config.include_hidden


def _resolve_key(path: Path) -> str:
    try:
        return str(path.resolve())
    except (OSError, RuntimeError):
        return str(path.absolute())


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as iterator:
        return sorted(iterator, key=lambda entry: entry.name)


class DirectoryScanner:
    """Discover files under a root directory subject to a :class:`ScanConfig`.

    Directories are traversed breadth-first from an explicit queue whose
    entries carry their depth below the root (the root itself is depth 0).
    Files are emitted in classified batches so callers can render partial
    results while the scan continues.
    """

    def __init__(self, classifier: Classifier | None = None) -> None:
        self.classifier = classifier or Classifier()

    def scan(
        self,
        root: Path | str,
        config: ScanConfig | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> Iterator[ScanBatch]:
        """Validate the root and return a stream of classified batches.

        The last batch always has ``done`` set. The progress channel, when
        given, is closed once the stream finishes or fails.

        Args:
            root: Directory to scan.
            config: Scan settings; defaults apply when omitted.
            progress: Optional channel receiving progress reports.
            cancel: Optional token checked between directories and batches.

        Returns:
            Iterator[ScanBatch]: Lazily produced batches.

        Raises:
            ScanRootError: If the root does not exist or is not a directory.
        """
        config = config or ScanConfig()
        try:
            root_path = self._validate_root(root)
        except ScanRootError:
            if progress is not None:
                progress.close()
            raise
        return self._iter_batches(root_path, config, progress, cancel)

    def scan_all(
        self,
        root: Path | str,
        config: ScanConfig | None = None,
        *,
        progress: ProgressChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanResult:
        """Run a scan to completion and collect every batch."""
        batches = self.scan(root, config, progress=progress, cancel=cancel)
        result = ScanResult(root=Path(root).expanduser())
        for batch in batches:
            result.files.extend(batch.files)
            result.errors.extend(batch.errors)
            result.progress = batch.progress
            result.cancelled = result.cancelled or batch.cancelled
        return result

    def estimate(self, root: Path | str, config: ScanConfig | None = None) -> int:
        """Estimate the number of files a scan will emit.

        Uses the scan's filtering rules but stops descending at
        ``config.estimate_depth``; each directory beyond that cap counts as
        :data:`ESTIMATE_PLACEHOLDER` files.
        """
        config = config or ScanConfig()
        return self._count(Path(root).expanduser(), config, 0, set())

    # Internal helpers -------------------------------------------------

    def _validate_root(self, root: Path | str) -> Path:
        path = Path(root).expanduser()
        if not path.exists():
            raise ScanRootError(f"Directory does not exist: {path}")
        if not path.is_dir():
            raise ScanRootError(f"Not a directory: {path}")
        return path.absolute()

    def _iter_batches(
        self,
        root: Path,
        config: ScanConfig,
        channel: ProgressChannel | None,
        cancel: CancellationToken | None,
    ) -> Iterator[ScanBatch]:
        thresholds = ClassificationThresholds.from_scan_config(config)
        state = ScanProgress()
        pending: list[FileRecord] = []
        errors: list[str] = []
        cancelled = False

        try:
            if config.estimate_total:
                state.files_estimated_total = self.estimate(root, config)
            if channel is not None:
                channel.publish(state.report())

            LOGGER.info("Scanning %s (max depth %d).", root, config.max_depth)
            queue: deque[tuple[Path, int]] = deque([(root, 0)])
            visited: set[str] = set()

            while queue:
                if is_cancelled(cancel):
                    cancelled = True
                    break
                directory, depth = queue.popleft()
                key = _resolve_key(directory)
                if key in visited:
                    continue
                visited.add(key)

                try:
                    entries = _sorted_entries(directory)
                except OSError as exc:
                    LOGGER.warning("Skipping unreadable directory %s: %s", directory, exc)
                    errors.append(f"{directory}: {exc.strerror or exc}")
                    continue

                for entry in entries:
                    if _is_hidden_excluded(entry.name, config):
                        continue
                    path = Path(entry.path)
                    try:
                        info = entry.stat()
                    except OSError as exc:
                        LOGGER.warning("Skipping %s: %s", path, exc)
                        errors.append(f"{path}: {exc.strerror or exc}")
                        continue

                    if stat_module.S_ISDIR(info.st_mode):
                        if depth < config.max_depth and not is_denied_directory(path):
                            queue.append((path, depth + 1))
                        continue
                    if not stat_module.S_ISREG(info.st_mode):
                        continue
                    if config.max_file_size and info.st_size > config.max_file_size:
                        LOGGER.debug("Skipping %s: larger than %d bytes.", path, config.max_file_size)
                        continue

                    pending.append(FileRecord.from_stat(path, info))
                    state.files_processed += 1
                    if channel is not None and state.files_processed % config.progress_interval == 0:
                        channel.publish(state.report())

                    if len(pending) >= config.batch_size:
                        yield ScanBatch(
                            files=self.classifier.annotate_many(pending, thresholds),
                            progress=state.report(),
                            errors=errors,
                        )
                        pending, errors = [], []
                        if is_cancelled(cancel):
                            cancelled = True
                            break
                if cancelled:
                    break

            final = state.final_report()
            if channel is not None:
                channel.publish(final)
            LOGGER.info(
                "Scan of %s %s: %d files, %d skipped entries.",
                root,
                "cancelled" if cancelled else "completed",
                state.files_processed,
                len(errors),
            )
            yield ScanBatch(
                files=self.classifier.annotate_many(pending, thresholds),
                progress=final,
                errors=errors,
                done=True,
                cancelled=cancelled,
            )
        finally:
            if channel is not None:
                channel.close()

    def _count(self, directory: Path, config: ScanConfig, depth: int, visited: set[str]) -> int:
        key = _resolve_key(directory)
        if key in visited:
            return 0
        visited.add(key)
        try:
            entries = _sorted_entries(directory)
        except OSError as exc:
            LOGGER.debug("Estimate could not read %s: %s", directory, exc)
            return 0

        count = 0
        for entry in entries:
            if _is_hidden_excluded(entry.name, config):
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            if not is_dir:
                count += 1
                continue
            path = Path(entry.path)
            if depth >= config.max_depth or is_denied_directory(path):
                continue
            if depth + 1 > config.estimate_depth:
                count += ESTIMATE_PLACEHOLDER
            else:
                count += self._count(path, config, depth + 1, visited)
        return count


__all__ = [
    "DirectoryScanner",
    "is_denied_directory",
    "DENIED_DIRECTORY_NAMES",
    "ESTIMATE_PLACEHOLDER",
]
