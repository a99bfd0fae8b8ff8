"""Directory scanner tests."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from reclaim.config.models import ScanConfig
from reclaim.errors import ScanRootError
from reclaim.progress import CancellationToken, ProgressChannel
from reclaim.scanning.discovery import DirectoryScanner, is_denied_directory
from reclaim.scanning.models import FileCategory


def _tree(root: Path) -> Path:
    """Create a three-level tree with one file per level.

    Args:
        root: Directory to populate.

    Returns:
        Path: The populated root.
    """
    (root / "d1" / "d2").mkdir(parents=True)
    (root / "top.txt").write_text("top", encoding="utf-8")
    (root / "d1" / "middle.txt").write_text("middle", encoding="utf-8")
    (root / "d1" / "d2" / "bottom.txt").write_text("bottom", encoding="utf-8")
    return root


def _names(result) -> set[str]:
    return {record.name for record in result.files}


def test_scan_honours_max_depth(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    scanner = DirectoryScanner()

    assert _names(scanner.scan_all(root, ScanConfig(max_depth=0))) == {"top.txt"}
    assert _names(scanner.scan_all(root, ScanConfig(max_depth=1))) == {"top.txt", "middle.txt"}
    assert _names(scanner.scan_all(root, ScanConfig(max_depth=2))) == {
        "top.txt",
        "middle.txt",
        "bottom.txt",
    }


def test_scan_terminates_on_symlink_cycles(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    try:
        os.symlink(root, root / "d1" / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not supported here")

    result = DirectoryScanner().scan_all(root, ScanConfig(max_depth=50))

    paths = [record.path for record in result.files]
    assert len(paths) == len(set(paths))
    assert _names(result) == {"top.txt", "middle.txt", "bottom.txt"}


def test_interlinked_symlinks_give_stable_counts(tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    (tmp_path / "a" / "one.txt").write_text("1", encoding="utf-8")
    (tmp_path / "b" / "two.txt").write_text("2", encoding="utf-8")
    try:
        os.symlink(tmp_path / "b", tmp_path / "a" / "to_b", target_is_directory=True)
        os.symlink(tmp_path / "a", tmp_path / "b" / "to_a", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not supported here")
    scanner = DirectoryScanner()
    config = ScanConfig(max_depth=50)

    counts = [len(scanner.scan_all(tmp_path, config).files) for _ in range(3)]

    assert counts == [2, 2, 2]


def test_large_stale_file_is_tagged_by_the_scanner(tmp_path: Path) -> None:
    big = tmp_path / "archive.bin"
    with big.open("wb") as handle:
        handle.truncate(200 * 1024 * 1024)
    stale = time.time() - 400 * 86400
    os.utime(big, (stale, stale))
    (tmp_path / "fresh.bin").write_bytes(b"fresh")

    result = DirectoryScanner().scan_all(tmp_path)

    records = {record.name: record for record in result.files}
    assert records["archive.bin"].categories == frozenset({FileCategory.LARGE_UNUSED})
    assert records["archive.bin"].is_reclaimable
    assert not records["fresh.bin"].is_reclaimable
    totals = result.by_category
    assert totals[FileCategory.LARGE_UNUSED].count == 1
    assert totals[FileCategory.LARGE_UNUSED].bytes == 200 * 1024 * 1024
    assert totals[FileCategory.TEMPORARY].count == 0
    assert result.total_bytes == 200 * 1024 * 1024 + len(b"fresh")


def test_hidden_entries_are_skipped_by_default(tmp_path: Path) -> None:
    (tmp_path / ".secret").write_text("x", encoding="utf-8")
    (tmp_path / ".config").mkdir()
    (tmp_path / ".config" / "settings.ini").write_text("x", encoding="utf-8")
    (tmp_path / "visible.txt").write_text("x", encoding="utf-8")
    scanner = DirectoryScanner()

    assert _names(scanner.scan_all(tmp_path)) == {"visible.txt"}
    assert _names(scanner.scan_all(tmp_path, ScanConfig(include_hidden=True))) == {
        ".secret",
        "settings.ini",
        "visible.txt",
    }


def test_denied_directories_are_not_traversed(tmp_path: Path) -> None:
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("x", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref", encoding="utf-8")
    (tmp_path / "keep.txt").write_text("x", encoding="utf-8")

    result = DirectoryScanner().scan_all(tmp_path, ScanConfig(include_hidden=True))

    assert _names(result) == {"keep.txt"}
    assert is_denied_directory(Path("/proc/self"))
    assert not is_denied_directory(tmp_path)


def test_files_over_the_size_limit_are_skipped(tmp_path: Path) -> None:
    (tmp_path / "small.bin").write_bytes(b"a" * 10)
    (tmp_path / "big.bin").write_bytes(b"a" * 100)

    result = DirectoryScanner().scan_all(tmp_path, ScanConfig(max_file_size=50))

    assert _names(result) == {"small.bin"}


def test_scan_emits_bounded_batches(tmp_path: Path) -> None:
    for index in range(5):
        (tmp_path / f"file{index}.txt").write_text(str(index), encoding="utf-8")

    batches = list(DirectoryScanner().scan(tmp_path, ScanConfig(batch_size=2)))

    assert [len(batch.files) for batch in batches] == [2, 2, 1]
    assert [batch.done for batch in batches] == [False, False, True]
    assert batches[-1].progress.percentage == 100


def test_records_are_classified_and_carry_metadata(tmp_path: Path) -> None:
    (tmp_path / "Setup.DMG").write_bytes(b"installer")
    (tmp_path / "notes.txt").write_text("plain", encoding="utf-8")

    result = DirectoryScanner().scan_all(tmp_path)
    records = {record.name: record for record in result.files}

    installer = records["Setup.DMG"]
    assert installer.extension == ".dmg"
    assert installer.categories == frozenset({FileCategory.INSTALLER})
    assert installer.size == len(b"installer")
    assert installer.modified_at is not None
    assert Path(installer.path).is_absolute()
    assert not records["notes.txt"].is_reclaimable
    assert result.reclaimable == [installer]


def test_progress_is_monotonic_and_finishes_at_one_hundred(tmp_path: Path) -> None:
    for index in range(25):
        (tmp_path / f"file{index:02d}.txt").write_text("x", encoding="utf-8")
    channel = ProgressChannel()

    DirectoryScanner().scan_all(tmp_path, ScanConfig(progress_interval=5), progress=channel)

    reports = list(channel)
    percentages = [report.percentage for report in reports]
    assert channel.closed
    assert percentages == sorted(percentages)
    assert percentages[-1] == 100
    assert reports[-1].processed == 25


def test_estimate_counts_placeholder_below_cap(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    scanner = DirectoryScanner()

    assert scanner.estimate(root, ScanConfig(estimate_depth=5)) == 3
    assert scanner.estimate(root, ScanConfig(estimate_depth=0)) == 1 + 10


def test_invalid_root_fails_before_any_batch(tmp_path: Path) -> None:
    channel = ProgressChannel()
    missing = tmp_path / "missing"

    with pytest.raises(ScanRootError):
        DirectoryScanner().scan(missing, progress=channel)
    assert channel.closed

    file_root = tmp_path / "file.txt"
    file_root.write_text("x", encoding="utf-8")
    with pytest.raises(ScanRootError):
        DirectoryScanner().scan(file_root)


def test_cancelled_scan_returns_partial_result(tmp_path: Path) -> None:
    _tree(tmp_path)
    token = CancellationToken()
    token.cancel()

    batches = list(DirectoryScanner().scan(tmp_path, cancel=token))

    assert len(batches) == 1
    assert batches[0].done
    assert batches[0].cancelled
    assert batches[0].files == []


def test_cancel_between_batches_stops_the_scan(tmp_path: Path) -> None:
    for index in range(6):
        (tmp_path / f"file{index}.txt").write_text("x", encoding="utf-8")
    token = CancellationToken()
    seen = []

    for batch in DirectoryScanner().scan(tmp_path, ScanConfig(batch_size=2), cancel=token):
        seen.append(batch)
        token.cancel()

    assert len(seen) == 2
    assert seen[-1].cancelled
    assert sum(len(batch.files) for batch in seen) == 2


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission checks do not apply to root",
)
def test_unreadable_directory_is_skipped_and_reported(tmp_path: Path) -> None:
    locked = tmp_path / "locked"
    locked.mkdir()
    (locked / "hidden.txt").write_text("x", encoding="utf-8")
    (tmp_path / "open.txt").write_text("x", encoding="utf-8")
    locked.chmod(0)
    try:
        result = DirectoryScanner().scan_all(tmp_path)
    finally:
        locked.chmod(0o755)

    assert _names(result) == {"open.txt"}
    assert result.skipped == 1
    assert not result.cancelled
