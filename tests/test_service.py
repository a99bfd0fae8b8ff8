"""Service facade tests."""

from __future__ import annotations

from contextlib import closing
from pathlib import Path

import pytest

from reclaim.backup import BackupStore
from reclaim.config import ConfigError, ReclaimConfig
from reclaim.errors import OperationInProgressError, RestoreConflictError
from reclaim.progress import ProgressChannel
from reclaim.service import ReclaimService


def _service(tmp_path: Path) -> ReclaimService:
    config = ReclaimConfig.model_validate(
        {"backups": {"directory": str(tmp_path / "trash")}, "scanning": {"batch_size": 1}}
    )
    return ReclaimService(config)


def _populate(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "a.txt").write_text("same", encoding="utf-8")
    (root / "b.txt").write_text("same", encoding="utf-8")
    (root / "c.log").write_text("log line", encoding="utf-8")
    return root


def test_store_defaults_to_configured_directory(tmp_path: Path) -> None:
    service = _service(tmp_path)

    assert isinstance(service.store, BackupStore)
    assert service.store.directory == tmp_path / "trash"


def test_concurrent_scans_are_rejected(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")

    running = service.scan(root)
    next(running)

    with pytest.raises(OperationInProgressError):
        next(service.scan(root))

    remaining = list(running)
    assert remaining[-1].done
    assert service.scan_all(root).files


def test_closing_a_partial_scan_releases_the_lock(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")

    with closing(service.scan(root)) as running:
        first = next(running)
        assert not first.done

    assert service.scan_all(root).files


def test_rejected_scan_closes_its_progress_channel(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")
    running = service.scan(root)
    next(running)
    channel = ProgressChannel()

    with pytest.raises(OperationInProgressError):
        next(service.scan(root, progress=channel))

    assert channel.closed
    list(running)


def test_different_operations_may_overlap(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")
    running = service.scan(root)
    next(running)

    report = service.delete_files([root / "c.log"])

    assert report.success
    list(running)


def test_invalid_overrides_raise_config_error(tmp_path: Path) -> None:
    service = _service(tmp_path)

    with pytest.raises(ConfigError):
        service.scan_config({"max_depth": -1})
    with pytest.raises(ConfigError):
        service.duplicate_options({"hash_algorithm": "crc32"})


def test_overrides_layer_on_configured_defaults(tmp_path: Path) -> None:
    service = _service(tmp_path)

    scan_config = service.scan_config({"max_depth": 2})
    options = service.duplicate_options({"exact_match": False})

    assert scan_config.max_depth == 2
    assert scan_config.batch_size == 1
    assert options.exact_match is False
    assert options.sample_size == 4096


def test_duplicates_delete_and_restore_flow(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")

    report = service.find_duplicates_in(root)
    assert len(report.groups) == 1
    doomed = report.groups[0].members[0].path

    deleted = service.delete_files([doomed])
    assert deleted.success
    [backup] = service.list_backups()

    Path(doomed).write_text("replacement", encoding="utf-8")
    with pytest.raises(RestoreConflictError):
        service.restore_backup(backup.id)
    service.restore_backup(backup.id, overwrite=True)
    assert Path(doomed).read_text(encoding="utf-8") == "same"

    service.purge_backup(backup.id)
    assert service.list_backups() == []


def test_find_duplicates_accepts_scan_records(tmp_path: Path) -> None:
    service = _service(tmp_path)
    root = _populate(tmp_path / "data")

    scan = service.scan_all(root)
    report = service.find_duplicates(scan.files, {"hash_algorithm": "sha256"})

    assert report.total_duplicates == 1
    assert report.potential_savings == len("same")


def test_purge_expired_uses_backup_settings(tmp_path: Path) -> None:
    config = ReclaimConfig.model_validate(
        {"backups": {"directory": str(tmp_path / "trash"), "retention_days": 0, "max_total_size_mb": 0}}
    )
    service = ReclaimService(config)
    root = _populate(tmp_path / "data")
    service.delete_files([root / "a.txt"])

    assert service.purge_expired_backups() == []
    assert len(service.list_backups()) == 1
