"""Logging setup shared by the CLI and embedding applications."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from reclaim.config.models import LoggingSettings

_HANDLER_MARKER = "_reclaim_handler"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> logging.Logger:
    """Attach console and optional rotating file handlers to the package logger.

    Calling this repeatedly replaces handlers installed by earlier calls.

    Args:
        settings: Logging configuration section.
        verbose: Force DEBUG level regardless of the configured level.

    Returns:
        logging.Logger: The ``reclaim`` package logger.
    """
    logger = logging.getLogger("reclaim")
    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=True
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    _install(logger, console_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        _install(logger, file_handler)

    return logger


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)


__all__ = ["configure_logging"]
