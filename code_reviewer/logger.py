"""Loguru setup shared by the webhook, the pipeline and the API clients."""

from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

from loguru import logger as _logger

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_DIR_ENV = "APP_LOG_DIR"
LOG_LEVEL_ENV = "APP_LOG_LEVEL"
LOG_FILE_PATTERN = "review-{time:YYYY-MM-DD}.log"

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
# File records keep the bound run context (repository, pull number, stage).
_FILE_FORMAT = _CONSOLE_FORMAT + " | {extra}"

_state = {"configured": False}


def _handlers(log_dir: Path, level: str) -> List[Dict[str, Any]]:
    return [
        {
            "sink": sys.stdout,
            "level": level,
            "format": _CONSOLE_FORMAT,
            "colorize": sys.stdout.isatty(),
        },
        {
            "sink": log_dir / LOG_FILE_PATTERN,
            "level": "DEBUG",
            "format": _FILE_FORMAT,
            "rotation": "50 MB",
            "retention": "10 days",
            "enqueue": True,
            "diagnose": False,
        },
    ]


def configure_logger(*, log_dir: str | Path | None = None, level: str | None = None) -> None:
    """Install the console and daily file sinks; later calls are no-ops."""

    if _state["configured"]:
        return

    directory = Path(log_dir or os.getenv(LOG_DIR_ENV) or DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    console_level = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()

    _logger.configure(handlers=_handlers(directory, console_level))
    _state["configured"] = True


def get_logger(*, log_dir: str | Path | None = None, level: str | None = None):
    configure_logger(log_dir=log_dir, level=level)
    return _logger


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Bind the non-empty context fields, e.g. ``repository="octo/app", pull_number=7``."""
    bound = {key: value for key, value in context.items() if value is not None}
    return logger_instance.bind(**bound) if bound else logger_instance


@contextmanager
def log_timing(logger_instance, operation: str, **context: str | int | None) -> Iterator[Any]:
    """Log the start, duration and failure of one pipeline stage.

    Usage:
        with log_timing(logger, "list_changed_files", repository="octo/app") as stage_logger:
            stage_logger.debug("...")
    """
    started = time.perf_counter()
    stage_logger = log_with_context(logger_instance, operation=operation, **context)
    stage_logger.debug(f"{operation} started")
    try:
        yield stage_logger
    except Exception as exc:
        stage_logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {exc}")
        raise
    stage_logger.debug(f"{operation} finished in {time.perf_counter() - started:.3f}s")


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    log_with_context(logger_instance, **context).info(f"=== SUCCESS: {message} ===")


def log_failure(logger_instance, message: str, error: Exception | None = None, **context: str | int | None) -> None:
    detail = f" | {type(error).__name__}: {error}" if error is not None else ""
    log_with_context(logger_instance, **context).error(f"=== FAILURE: {message}{detail} ===")
