"""Logging setup shared by the gitfind CLI and library modules."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "gitfind"
_CONSOLE_FORMAT = "[gitfind] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``gitfind.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME)


def resolve_level(level: str | None, *, verbose: bool = False) -> int:
    """Translate a level name such as ``"warning"`` into its numeric value.

    ``level`` wins over ``verbose``; without either the level is INFO.
    """
    if level is None:
        return logging.DEBUG if verbose else logging.INFO
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    *,
    verbose: bool = False,
    level: str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """Install stderr (and optionally file) handlers on the package logger.

    Calling it again replaces the handlers installed by the previous call.
    """
    threshold = resolve_level(level, verbose=verbose)
    logger = get_logger()
    logger.setLevel(threshold)
    logger.propagate = False

    while logger.handlers:
        stale = logger.handlers[0]
        logger.removeHandler(stale)
        stale.close()

    handlers: list[logging.Handler] = [
        _handler(logging.StreamHandler(sys.stderr), threshold, _CONSOLE_FORMAT)
    ]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_handler(logging.FileHandler(log_file, encoding="utf-8"), threshold, _FILE_FORMAT))
    for handler in handlers:
        logger.addHandler(handler)
    return logger


def _handler(handler: logging.Handler, threshold: int, fmt: str) -> logging.Handler:
    handler.setLevel(threshold)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


__all__ = ["configure_logging", "get_logger", "resolve_level"]
