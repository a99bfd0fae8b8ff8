"""Configuration models describing reclaim settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

_MB = 1024 * 1024

HashAlgorithm = Literal["md5", "sha1", "sha256", "xxh64"]


class ReclaimBaseModel(BaseModel):
    """Shared configuration for reclaim Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ScanConfig(ReclaimBaseModel):
    """Per-scan settings expressed in bytes and days.

    Attributes:
        max_depth: Deepest directory level (root is 0) whose files are emitted.
        ignore_dotfiles: Whether dot-prefixed entries are skipped.
        include_hidden: Whether hidden entries are kept even when dotfiles are ignored.
        max_file_size: Files larger than this are skipped; 0 disables the check.
        large_file_size_threshold: Size above which a stale file counts as large.
        stale_age_threshold_days: Days since last access before a file counts as stale.
        batch_size: Number of records accumulated before a batch is emitted.
        progress_interval: Number of files between progress reports.
        estimate_total: Whether to run the file-count estimate before scanning.
        estimate_depth: Depth cap applied to the estimate pre-pass.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_depth: int = Field(default=10, ge=0)
    ignore_dotfiles: bool = True
    include_hidden: bool = False
    max_file_size: int = Field(default=1024 * _MB, ge=0)
    large_file_size_threshold: int = Field(default=100 * _MB, ge=0)
    stale_age_threshold_days: int = Field(default=180, ge=0)
    batch_size: int = Field(default=500, ge=1)
    progress_interval: int = Field(default=10, ge=1)
    estimate_total: bool = True
    estimate_depth: int = Field(default=3, ge=0)


# Shallow preset used by ``reclaim scan --quick``.
QUICK_SCAN_PRESET: dict[str, object] = {
    "max_depth": 5,
    "ignore_dotfiles": True,
    "include_hidden": False,
    "large_file_size_threshold": 100 * _MB,
    "stale_age_threshold_days": 180,
}


class DuplicateOptions(ReclaimBaseModel):
    """Options controlling duplicate detection.

    Attributes:
        exact_match: Hash whole files when True, sampled windows otherwise.
        sample_size: Window size in bytes used for sampled hashing.
        hash_algorithm: Digest algorithm used for content hashes.
        compare_size_first: Discard files with a unique size before hashing.
        min_size: Files smaller than this are skipped.
        max_size: Files larger than this are skipped.
        sub_batch_size: Number of files hashed between progress and cancel checks.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    exact_match: bool = True
    sample_size: int = Field(default=4096, gt=0)
    hash_algorithm: HashAlgorithm = "md5"
    compare_size_first: bool = True
    min_size: Optional[int] = Field(default=None, ge=0)
    max_size: Optional[int] = Field(default=None, ge=0)
    sub_batch_size: int = Field(default=20, ge=1)


class ScanningOptions(ReclaimBaseModel):
    """Scanning defaults stored in the configuration file.

    Attributes:
        max_depth: Maximum traversal depth below the scan root.
        ignore_dotfiles: Whether dot-prefixed entries are skipped.
        include_hidden: Whether hidden entries are included regardless.
        max_file_size_mb: Files above this size are ignored (0 = unlimited).
        large_file_size_mb: Size threshold for the large-unused category.
        stale_age_days: Access-age threshold for the large-unused category.
        batch_size: Number of records per emitted batch.
        progress_interval: Number of files between progress reports.
        estimate_total: Whether to estimate the file count before scanning.
        estimate_depth: Depth cap for the estimate pre-pass.
    """

    max_depth: int = 10
    ignore_dotfiles: bool = True
    include_hidden: bool = False
    max_file_size_mb: int = 1024
    large_file_size_mb: int = 100
    stale_age_days: int = 180
    batch_size: int = 500
    progress_interval: int = 10
    estimate_total: bool = True
    estimate_depth: int = 3

    def to_scan_config(self, **overrides: object) -> ScanConfig:
        """Return the byte-based scan configuration for these settings."""
        values: dict[str, object] = {
            "max_depth": self.max_depth,
            "ignore_dotfiles": self.ignore_dotfiles,
            "include_hidden": self.include_hidden,
            "max_file_size": self.max_file_size_mb * _MB,
            "large_file_size_threshold": self.large_file_size_mb * _MB,
            "stale_age_threshold_days": self.stale_age_days,
            "batch_size": self.batch_size,
            "progress_interval": self.progress_interval,
            "estimate_total": self.estimate_total,
            "estimate_depth": self.estimate_depth,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ScanConfig.model_validate(values)


class DuplicateSettings(ReclaimBaseModel):
    """Duplicate detection defaults.

    Attributes:
        exact_match: Whether whole-file hashing is used.
        sample_size: Window size for sampled hashing in bytes.
        hash_algorithm: Digest algorithm name.
        compare_size_first: Whether to bucket by size before hashing.
        sub_batch_size: Files hashed per cooperative step.
    """

    exact_match: bool = True
    sample_size: int = 4096
    hash_algorithm: HashAlgorithm = "md5"
    compare_size_first: bool = True
    sub_batch_size: int = 20

    def to_options(self, **overrides: object) -> DuplicateOptions:
        """Return duplicate detection options for these settings."""
        values = self.model_dump(mode="python")
        values.update({key: value for key, value in overrides.items() if value is not None})
        return DuplicateOptions.model_validate(values)


class BackupSettings(ReclaimBaseModel):
    """Backup store location and retention.

    Attributes:
        directory: Directory holding backup copies and sidecar metadata.
        retention_days: Age after which backups are pruned.
        max_total_size_mb: Total size budget for the store (0 = unlimited).
    """

    directory: str = "~/.reclaim/trash"
    retention_days: int = 30
    max_total_size_mb: int = 1024


class LoggingSettings(ReclaimBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; rotation applies when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(ReclaimBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ReclaimConfig(ReclaimBaseModel):
    """Top-level configuration struct for reclaim.

    Attributes:
        scanning: Directory scanning defaults.
        duplicates: Duplicate detection defaults.
        backups: Backup store settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    scanning: ScanningOptions = Field(default_factory=ScanningOptions)
    duplicates: DuplicateSettings = Field(default_factory=DuplicateSettings)
    backups: BackupSettings = Field(default_factory=BackupSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "HashAlgorithm",
    "ReclaimBaseModel",
    "QUICK_SCAN_PRESET",
    "ScanConfig",
    "DuplicateOptions",
    "ScanningOptions",
    "DuplicateSettings",
    "BackupSettings",
    "LoggingSettings",
    "CLIOptions",
    "ReclaimConfig",
]
