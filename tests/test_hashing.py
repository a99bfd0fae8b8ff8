"""Content hashing tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import xxhash

from reclaim.duplicates.hashing import HashComputer, sample_offsets


def _write(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path


def test_full_hash_matches_hashlib(tmp_path: Path) -> None:
    data = b"reclaim" * 1000
    path = _write(tmp_path / "data.bin", data)

    assert HashComputer("md5").compute(path) == hashlib.md5(data).hexdigest()
    assert HashComputer("sha256").compute(path) == hashlib.sha256(data).hexdigest()


def test_xxh64_uses_xxhash(tmp_path: Path) -> None:
    data = bytes(range(256)) * 64
    path = _write(tmp_path / "data.bin", data)

    assert HashComputer("xxh64").compute(path) == xxhash.xxh64(data).hexdigest()


def test_sample_offsets_cover_start_middle_and_end() -> None:
    assert sample_offsets(1000, 100) == (0, 450, 900)


def test_sampled_hash_only_reads_windows(tmp_path: Path) -> None:
    data = bytearray(b"a" * 10_000)
    original = _write(tmp_path / "original.bin", bytes(data))
    data[2_000] = ord("b")
    edited = _write(tmp_path / "edited.bin", bytes(data))

    sampled = HashComputer("md5", sample_size=100)
    full = HashComputer("md5")

    assert sampled.uses_sampling(10_000)
    assert sampled.compute(original) == sampled.compute(edited)
    assert full.compute(original) != full.compute(edited)


def test_sampled_hash_detects_changes_inside_windows(tmp_path: Path) -> None:
    data = bytearray(b"a" * 10_000)
    original = _write(tmp_path / "original.bin", bytes(data))
    data[-1] = ord("z")
    edited = _write(tmp_path / "edited.bin", bytes(data))

    sampled = HashComputer("sha1", sample_size=100)

    assert sampled.compute(original) != sampled.compute(edited)


def test_small_files_are_hashed_in_full_when_sampling(tmp_path: Path) -> None:
    data = b"x" * 250
    path = _write(tmp_path / "small.bin", data)

    sampled = HashComputer("md5", sample_size=100)

    assert not sampled.uses_sampling(len(data))
    assert sampled.compute(path) == hashlib.md5(data).hexdigest()


def test_invalid_arguments_raise() -> None:
    with pytest.raises(ValueError):
        HashComputer("crc32")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        HashComputer("md5", sample_size=0)


def test_missing_file_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        HashComputer().compute(tmp_path / "missing.bin")
