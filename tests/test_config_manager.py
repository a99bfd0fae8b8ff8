"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from reclaim.config import (
    ConfigError,
    ConfigManager,
    ReclaimConfig,
    flatten_for_env,
    resolve_with_precedence,
)
from reclaim.config.models import ScanningOptions


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".reclaim" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "reclaim configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, ReclaimConfig)
    assert config.scanning.max_depth == 10


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"scanning": {"max_depth": 4, "batch_size": 50}, "duplicates": {"sample_size": 1024}})

    env = {"RECLAIM__SCANNING__MAX_DEPTH": "6", "RECLAIM__DUPLICATES__HASH_ALGORITHM": "sha1"}
    cli = {"scanning.max_depth": 2}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.scanning.batch_size == 50
    assert config.duplicates.sample_size == 1024
    assert config.duplicates.hash_algorithm == "sha1"
    # CLI overrides take precedence over environment
    assert config.scanning.max_depth == 2


def test_environment_is_ignored_when_disabled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    manager = ConfigManager(env={"RECLAIM__SCANNING__MAX_DEPTH": "1"})

    assert manager.load().scanning.max_depth == 1
    assert manager.load(include_env=False).scanning.max_depth == 10


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=ReclaimConfig(), file_overrides={"scanning": {"depth": 3}})


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(ReclaimConfig())

    assert flat["RECLAIM__SCANNING__MAX_DEPTH"] == "10"
    assert flat["RECLAIM__BACKUPS__DIRECTORY"] == "~/.reclaim/trash"
    assert flat["RECLAIM__LOGGING__FILE"] == "null"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=ReclaimConfig(),
            file_overrides={"scanning": {"max_file_size_mb": "not-an-int"}},
        )


def test_scanning_options_convert_megabytes_to_bytes() -> None:
    options = ScanningOptions(max_file_size_mb=2, large_file_size_mb=1, stale_age_days=7)

    scan_config = options.to_scan_config(max_depth=3, include_hidden=None)

    assert scan_config.max_file_size == 2 * 1024 * 1024
    assert scan_config.large_file_size_threshold == 1024 * 1024
    assert scan_config.stale_age_threshold_days == 7
    assert scan_config.max_depth == 3
    assert scan_config.include_hidden is False


def test_negative_depth_is_rejected() -> None:
    with pytest.raises(ValueError):
        ScanningOptions().to_scan_config(max_depth=-1)
