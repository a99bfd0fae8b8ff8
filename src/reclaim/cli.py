"""Command line interface for reclaim."""

from __future__ import annotations

import difflib
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Callable, TypeVar

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.syntax import Syntax
from rich.table import Table

from reclaim.config import ConfigError, ConfigManager, ReclaimConfig, resolve_with_precedence
from reclaim.config.models import QUICK_SCAN_PRESET
from reclaim.duplicates import DuplicateReport
from reclaim.errors import ReclaimError, RestoreConflictError
from reclaim.log import configure_logging
from reclaim.progress import CancellationToken, ProgressChannel
from reclaim.scanning.models import FileCategory, FileRecord, ScanResult
from reclaim.service import ReclaimService

console = Console()

T = TypeVar("T")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _handle_reclaim_error(exc: ReclaimError, *, json_output: bool) -> None:
    code = exc.code.value if exc.code is not None else type(exc).__name__
    _handle_cli_error(str(exc), code=code, json_output=json_output, original=exc)


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {escape(str(root))}: {parts}.[/green]"


def _format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def _load_service(ctx: click.Context) -> ReclaimService:
    """Load configuration, configure logging, and build the service facade."""
    manager = ConfigManager()
    config = manager.load()
    configure_logging(config.logging, verbose=bool(ctx.obj and ctx.obj.get("verbose")))
    return ReclaimService(config)


def _resolve_output_modes(
    ctx: click.Context,
    config: ReclaimConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults for quiet and summary output.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _progress_bar(disabled: bool) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=disabled,
    )


def _run_with_progress(
    description: str,
    work: Callable[[ProgressChannel, CancellationToken], T],
    *,
    disabled: bool,
) -> T:
    """Run ``work`` on a worker thread while rendering its progress channel.

    Ctrl-C cancels the operation cooperatively and waits for the partial result.
    """
    channel = ProgressChannel()
    cancel = CancellationToken()

    def _target() -> T:
        try:
            return work(channel, cancel)
        finally:
            channel.close()

    with ThreadPoolExecutor(max_workers=1) as executor, _progress_bar(disabled) as bar:
        task = bar.add_task(description, total=100)
        future = executor.submit(_target)
        try:
            for report in channel:
                bar.update(task, completed=report.percentage)
        except KeyboardInterrupt:
            cancel.cancel()
            console.print("[yellow]Cancelling; waiting for the current step to finish.[/yellow]")
        return future.result()


def _record_payload(record: FileRecord) -> dict[str, Any]:
    payload = record.model_dump(mode="json")
    payload["categories"] = sorted(category.value for category in record.categories)
    return payload


def _files_table(records: list[FileRecord]) -> Table:
    table = Table(title="Files", show_lines=False)
    table.add_column("Path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Categories")
    table.add_column("Last access")
    for record in records:
        accessed = record.accessed_at.strftime("%Y-%m-%d") if record.accessed_at else "-"
        categories = ", ".join(sorted(category.value for category in record.categories))
        table.add_row(escape(record.path), _format_size(record.size), categories or "-", accessed)
    return table


def _duplicates_table(report: DuplicateReport) -> Table:
    table = Table(title="Duplicate groups", show_lines=True)
    table.add_column("Hash")
    table.add_column("Size", justify="right")
    table.add_column("Reclaimable", justify="right")
    table.add_column("Members", overflow="fold")
    for group in report.groups:
        table.add_row(
            group.content_hash[:12],
            _format_size(group.file_size),
            _format_size(group.reclaimable_bytes),
            "\n".join(escape(member.path) for member in group.members),
        )
    return table


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating sections as needed.

    Raises:
        ConfigError: If a segment along the path holds a scalar value.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign into '{segment}'; it is not a section.")
        node = child
    node[path[-1]] = value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="reclaim")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Reclaim finds large, stale, temporary, and duplicate files and deletes them safely."""
    ctx.ensure_object(dict)["verbose"] = verbose


@cli.command()
@click.argument("path", type=click.Path(path_type=str))
@click.option("--max-depth", type=int, help="Deepest directory level to scan (root is 0).")
@click.option("--include-hidden", is_flag=True, help="Include hidden files and directories.")
@click.option("--quick", is_flag=True, help="Use the shallow quick-scan preset (depth 5).")
@click.option("--reclaimable-only", is_flag=True, help="Only list files tagged as reclaimable.")
@click.option(
    "--category",
    "categories",
    multiple=True,
    type=click.Choice([category.value for category in FileCategory]),
    help="Only list files tagged with this category; repeatable.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing scan results.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    path: str,
    max_depth: int | None,
    include_hidden: bool,
    quick: bool,
    reclaimable_only: bool,
    categories: tuple[str, ...],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Scan PATH and report files that are candidates for cleanup.

    Args:
        ctx: Click context used for parameter source inspection.
        path: Root directory to scan.
        max_depth: Optional depth override.
        include_hidden: Whether hidden entries are scanned.
        quick: Start from the quick-scan preset; explicit flags still win.
        reclaimable_only: Limit the listing to reclaimable files.
        categories: Limit the listing to files carrying any of these tags.
        json_output: Emit a JSON document instead of tables.
        summary_mode: Limit output to the summary line.
        quiet: Suppress non-error output.
    """
    try:
        service = _load_service(ctx)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, service.config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        overrides: dict[str, Any] = dict(QUICK_SCAN_PRESET) if quick else {}
        if max_depth is not None:
            overrides["max_depth"] = max_depth
        if include_hidden:
            overrides["include_hidden"] = True
        root = Path(path).expanduser()

        channel = ProgressChannel()
        result = ScanResult(root=root)
        with _progress_bar(json_output or quiet_enabled) as bar:
            task = bar.add_task(f"Scanning {root}", total=100)
            for batch in service.scan(root, overrides, progress=channel):
                result.files.extend(batch.files)
                result.errors.extend(batch.errors)
                result.cancelled = result.cancelled or batch.cancelled
                for report in channel.poll():
                    bar.update(task, completed=report.percentage)
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=json_output)
        return

    wanted = {FileCategory(value) for value in categories}
    listed = result.files
    if wanted:
        listed = [record for record in listed if record.categories & wanted]
    elif reclaimable_only:
        listed = result.reclaimable
    breakdown = {
        category.value: {"count": totals.count, "bytes": totals.bytes}
        for category, totals in result.by_category.items()
    }
    metrics = {
        "files": len(result.files),
        "total_bytes": result.total_bytes,
        "reclaimable": len(result.reclaimable),
        "reclaimable_bytes": result.reclaimable_bytes,
        "skipped": result.skipped,
    }

    if json_output:
        console.print_json(
            data={
                "root": str(root),
                "files": [_record_payload(record) for record in listed],
                "errors": result.errors,
                "summary": {**metrics, "categories": breakdown},
            }
        )
        return

    output = {"quiet": quiet_enabled, "summary_only": summary_only}
    if listed:
        _emit_message(_files_table(listed), mode="detail", **output)
    for message in result.errors:
        _emit_message(f"[yellow]- {escape(message)}[/yellow]", mode="warning", **output)
    _emit_message(_format_summary_line("Scan", root, metrics), mode="summary", **output)
    _emit_message(
        "  "
        + ", ".join(
            f"{name}={totals['count']} ({_format_size(totals['bytes'])})"
            for name, totals in breakdown.items()
        ),
        mode="summary",
        **output,
    )


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.option("--sample", is_flag=True, help="Hash head/middle/tail windows instead of whole files.")
@click.option("--sample-size", type=int, help="Window size in bytes for sampled hashing.")
@click.option(
    "--algorithm",
    type=click.Choice(["md5", "sha1", "sha256", "xxh64"]),
    help="Digest algorithm used for content hashes.",
)
@click.option("--no-size-first", is_flag=True, help="Hash every file without size bucketing.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing duplicate groups.")
@click.pass_context
def dupes(
    ctx: click.Context,
    paths: tuple[str, ...],
    sample: bool,
    sample_size: int | None,
    algorithm: str | None,
    no_size_first: bool,
    json_output: bool,
) -> None:
    """Find files with identical content among PATHS.

    Directories are scanned with the configured scanning settings; files are
    compared directly.
    """
    options = {
        "exact_match": False if sample else None,
        "sample_size": sample_size,
        "hash_algorithm": algorithm,
        "compare_size_first": False if no_size_first else None,
    }
    try:
        service = _load_service(ctx)
        resolved = service.duplicate_options(options)

        items: list[Path | FileRecord] = []
        scan_errors: list[str] = []
        for raw in paths:
            candidate = Path(raw).expanduser()
            if candidate.is_dir():
                status = nullcontext() if json_output else console.status(f"Scanning {candidate}")
                with status:
                    result = service.scan_all(candidate)
                items.extend(result.files)
                scan_errors.extend(result.errors)
            else:
                items.append(candidate)

        report = _run_with_progress(
            "Hashing candidates",
            lambda channel, cancel: service.find_duplicates(
                items, resolved, progress=channel, cancel=cancel
            ),
            disabled=json_output,
        )
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=json_output)
        return

    report.errors = [*scan_errors, *report.errors]

    if json_output:
        payload = report.model_dump(mode="json")
        for group in payload["groups"]:
            for member in group["members"]:
                member["categories"] = sorted(member["categories"])
        console.print_json(data=payload)
        return

    if report.groups:
        console.print(_duplicates_table(report))
    else:
        console.print("[yellow]No duplicate files found.[/yellow]")
    for message in report.errors:
        console.print(f"[yellow]- {escape(message)}[/yellow]")
    if report.cancelled:
        console.print("[yellow]Duplicate detection was cancelled; results are partial.[/yellow]")
    console.print(
        _format_summary_line(
            "Dupes",
            ", ".join(paths),
            {
                "groups": len(report.groups),
                "duplicates": report.total_duplicates,
                "reclaimable": _format_size(report.potential_savings),
                "skipped": report.skipped,
            },
        )
    )


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.option("--yes", "assume_yes", is_flag=True, help="Skip the confirmation prompt.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing each outcome.")
@click.pass_context
def delete(ctx: click.Context, paths: tuple[str, ...], assume_yes: bool, json_output: bool) -> None:
    """Back up and then delete PATHS.

    Every file is copied into the backup store before it is removed, so it can
    be brought back with `reclaim backups restore`.
    """
    try:
        service = _load_service(ctx)
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=json_output)
        return

    if not assume_yes:
        click.confirm(
            f"Back up and delete {len(paths)} file(s)? Backups go to {service.store.directory}.",
            abort=True,
        )

    try:
        report = service.delete_files(paths)
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=json_output)
        return

    if json_output:
        console.print_json(data=report.model_dump(mode="json"))
    else:
        table = Table(title="Delete results")
        table.add_column("Path", overflow="fold")
        table.add_column("Status")
        table.add_column("Backup")
        for outcome in report.outcomes:
            if outcome.deleted:
                status = "[green]deleted[/green]"
            else:
                status = f"[red]{outcome.error.value if outcome.error else 'failed'}[/red]"
            table.add_row(escape(outcome.path), status, outcome.backup_id or "-")
        console.print(table)
        for outcome in report.outcomes:
            if outcome.message:
                console.print(f"[yellow]- {escape(outcome.path)}: {escape(outcome.message)}[/yellow]")
        console.print(
            _format_summary_line(
                "Delete",
                service.store.directory,
                {"deleted": report.succeeded, "failed": report.failed},
            )
        )

    if report.failed:
        raise SystemExit(1)


@cli.group()
def backups() -> None:
    """Inspect, restore, and prune files held in the backup store."""


@backups.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing backups.")
@click.pass_context
def backups_list(ctx: click.Context, json_output: bool) -> None:
    """List backups, newest first."""
    try:
        service = _load_service(ctx)
        records = service.list_backups()
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=json_output)
        return

    if json_output:
        console.print_json(data={"backups": [record.model_dump(mode="json") for record in records]})
        return

    if not records:
        console.print("[yellow]No backups found.[/yellow]")
        return

    table = Table(title=f"Backups in {service.store.directory}")
    table.add_column("ID")
    table.add_column("Name", overflow="fold")
    table.add_column("Original path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Backed up")
    for record in records:
        table.add_row(
            record.id,
            escape(record.file_name),
            escape(record.original_path or "-"),
            _format_size(record.size),
            record.backup_date.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@backups.command("restore")
@click.argument("backup_id")
@click.option("--target", type=click.Path(path_type=str), help="Restore to this path instead.")
@click.option("--overwrite", is_flag=True, help="Replace an existing file without asking.")
@click.pass_context
def backups_restore(ctx: click.Context, backup_id: str, target: str | None, overwrite: bool) -> None:
    """Restore the backup BACKUP_ID to its original location or --target."""
    try:
        service = _load_service(ctx)
        try:
            restored = service.restore_backup(backup_id, target, overwrite=overwrite)
        except RestoreConflictError as conflict:
            if not click.confirm(f"{conflict.target} already exists. Overwrite it?", default=False):
                console.print("[yellow]Restore cancelled; nothing was changed.[/yellow]")
                return
            restored = service.restore_backup(backup_id, target, overwrite=True)
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=False)
        return

    console.print(f"[green]Restored {backup_id} to {escape(str(restored))}.[/green]")


@backups.command("purge")
@click.argument("backup_id")
@click.option("--yes", "assume_yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def backups_purge(ctx: click.Context, backup_id: str, assume_yes: bool) -> None:
    """Permanently delete the backup BACKUP_ID."""
    if not assume_yes:
        click.confirm(f"Permanently delete backup {backup_id}?", abort=True)
    try:
        service = _load_service(ctx)
        record = service.purge_backup(backup_id)
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=False)
        return

    console.print(f"[green]Purged backup {record.id} ({escape(record.file_name)}).[/green]")


@backups.command("prune")
@click.pass_context
def backups_prune(ctx: click.Context) -> None:
    """Apply the configured retention window and size budget."""
    try:
        service = _load_service(ctx)
        removed = service.purge_expired_backups()
    except ReclaimError as exc:
        _handle_reclaim_error(exc, json_output=False)
        return

    settings = service.config.backups
    console.print(
        _format_summary_line(
            "Prune",
            service.store.directory,
            {
                "removed": len(removed),
                "freed": _format_size(sum(record.size for record in removed)),
                "retention_days": settings.retention_days,
            },
        )
    )


@cli.group()
def config() -> None:
    """Manage reclaim configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Also shows where the file lives, the resolved backup directory, and which
    environment variables took part.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(f"[bold]Configuration file:[/bold] {escape(str(manager.config_path))}")
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))

    backup_dir = Path(loaded.backups.directory).expanduser()
    console.print(f"[bold]Backups stored in:[/bold] {escape(str(backup_dir))}")
    if loaded.logging.file:
        console.print(f"[bold]Log file:[/bold] {escape(str(Path(loaded.logging.file).expanduser()))}")
    env_keys = [] if no_env else manager.active_env_keys()
    if env_keys:
        console.print(f"[bold]Environment overrides:[/bold] {', '.join(env_keys)}")


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path such as ``scanning.max_depth``.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'scanning.max_depth'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    manager = ConfigManager()
    try:
        manager.ensure_exists()
        before = manager.read_text().splitlines()
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ReclaimConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if not line.startswith(("-# Last updated", "+# Last updated"))
    ]

    if not any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
