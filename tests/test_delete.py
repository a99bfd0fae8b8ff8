"""Delete orchestrator tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from reclaim.backup import BackupStore
from reclaim.deletion import DeleteOrchestrator, DeleteReport, DeleteState
from reclaim.errors import BackupFailedError, ErrorCode


def _orchestrator(tmp_path: Path) -> DeleteOrchestrator:
    return DeleteOrchestrator(BackupStore(tmp_path / "trash"))


def _file(tmp_path: Path, name: str, data: bytes = b"payload") -> Path:
    path = tmp_path / "data" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_delete_backs_up_then_removes(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path)
    path = _file(tmp_path, "old.iso")

    report = orchestrator.delete([path])

    [outcome] = report.outcomes
    assert outcome.deleted
    assert outcome.state is DeleteState.REMOVED
    assert outcome.error is None
    assert not path.exists()
    assert outcome.backup_path is not None
    assert outcome.backup_path.read_bytes() == b"payload"
    assert report.success
    assert orchestrator.store.get(outcome.backup_id).original_path == str(path)


def test_missing_file_is_not_found_without_backup(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path)

    report = orchestrator.delete([tmp_path / "data" / "ghost.txt"])

    [outcome] = report.outcomes
    assert not outcome.deleted
    assert outcome.error is ErrorCode.NOT_FOUND
    assert outcome.backup_path is None
    assert not report.success
    assert orchestrator.store.list_backups() == []


def test_outcomes_are_independent_and_ordered(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path)
    present = _file(tmp_path, "present.txt")
    missing = tmp_path / "data" / "missing.txt"

    report = orchestrator.delete([missing, present])

    assert [outcome.path for outcome in report.outcomes] == [str(missing), str(present)]
    assert [outcome.deleted for outcome in report.outcomes] == [False, True]
    assert report.succeeded == 1
    assert report.failed == 1
    assert not report.success


def test_empty_request_is_not_a_success(tmp_path: Path) -> None:
    report = _orchestrator(tmp_path).delete([])

    assert report.outcomes == []
    assert not report.success


def test_backup_failure_keeps_the_original(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    orchestrator = _orchestrator(tmp_path)
    path = _file(tmp_path, "precious.txt")

    def _fail(_path: Path) -> None:
        raise BackupFailedError("disk full")

    monkeypatch.setattr(orchestrator.store, "backup", _fail)

    [outcome] = orchestrator.delete([path]).outcomes

    assert outcome.state is DeleteState.BACKUP_FAILED
    assert outcome.error is ErrorCode.BACKUP_FAILED
    assert "disk full" in (outcome.message or "")
    assert path.exists()


def test_undecodable_file_name_fails_without_stopping_the_batch(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path)
    folder = tmp_path / "data"
    folder.mkdir()
    odd = Path(os.fsdecode(os.fsencode(folder) + b"/bad\xff.txt"))
    try:
        odd.write_bytes(b"odd bytes")
    except OSError:
        pytest.skip("filesystem rejects undecodable file names")
    good = _file(tmp_path, "good.txt")

    report = orchestrator.delete([odd, good])

    assert [outcome.path for outcome in report.outcomes] == [str(odd), str(good)]
    first, second = report.outcomes
    assert first.state is DeleteState.BACKUP_FAILED
    assert first.error is ErrorCode.BACKUP_FAILED
    assert odd.exists()
    assert second.deleted
    assert not good.exists()
    leftovers = [entry.name for entry in orchestrator.store.directory.iterdir()]
    assert len(leftovers) == 2
    assert all("good.txt" in name for name in leftovers)


def test_unexpected_backup_error_becomes_an_outcome(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    orchestrator = _orchestrator(tmp_path)
    first = _file(tmp_path, "first.txt")
    second = _file(tmp_path, "second.txt")
    real_backup = orchestrator.store.backup

    def _backup(path: Path):
        if Path(path).name == "first.txt":
            raise RuntimeError("boom")
        return real_backup(path)

    monkeypatch.setattr(orchestrator.store, "backup", _backup)

    report = orchestrator.delete([first, second])

    assert [outcome.state for outcome in report.outcomes] == [
        DeleteState.BACKUP_FAILED,
        DeleteState.REMOVED,
    ]
    assert "boom" in (report.outcomes[0].message or "")
    assert first.exists()
    assert not second.exists()


def test_remove_failure_keeps_backup_and_retry_finishes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    orchestrator = _orchestrator(tmp_path)
    path = _file(tmp_path, "locked.txt")
    real_unlink = Path.unlink

    def _unlink(self: Path, missing_ok: bool = False) -> None:
        if self == path:
            raise PermissionError(13, "Permission denied", str(self))
        real_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, "unlink", _unlink)
    report = orchestrator.delete([path])

    [outcome] = report.outcomes
    assert outcome.state is DeleteState.REMOVE_FAILED
    assert outcome.error is ErrorCode.REMOVE_FAILED
    assert outcome.backup_id is not None
    assert path.exists()

    monkeypatch.setattr(Path, "unlink", real_unlink)
    retried = orchestrator.retry(report)

    [final] = retried.outcomes
    assert final.deleted
    assert final.backup_id == outcome.backup_id
    assert not path.exists()
    assert len(orchestrator.store.list_backups()) == 1


def test_delete_then_restore_round_trip(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path)
    path = _file(tmp_path, "notes.md", b"# notes\n")

    [outcome] = orchestrator.delete([path]).outcomes
    orchestrator.store.restore(outcome.backup_id)

    assert path.read_bytes() == b"# notes\n"


def test_report_serializes_summary_fields(tmp_path: Path) -> None:
    report = _orchestrator(tmp_path).delete([_file(tmp_path, "a.txt")])

    payload = report.model_dump(mode="json")

    assert payload["succeeded"] == 1
    assert payload["failed"] == 0
    assert payload["success"] is True
    assert payload["outcomes"][0]["state"] == "removed"
    assert isinstance(DeleteReport.model_validate({"outcomes": []}), DeleteReport)
