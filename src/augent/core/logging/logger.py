"""
Structured logger used throughout augent.

Modules obtain a logger with ``get_logger(__name__)`` and attach structured
context through keyword arguments, for example::

    logger.warning("Skipping modified file", data={"path": "CLAUDE.md"})

Keyword context is rendered after the message as ``key=value`` pairs. The
underlying handlers are plain :mod:`logging` handlers configured once by
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from rich.logging import RichHandler

from augent.ui.console import log_console

_ROOT_LOGGER_NAME = "augent"
_configure_lock = threading.Lock()
_configured = False


def _format_context(data: dict[str, Any]) -> str:
    flattened: dict[str, Any] = {}
    for key, value in data.items():
        if key == "data" and isinstance(value, dict):
            flattened.update(value)
        elif value is not None:
            flattened[key] = value
    if not flattened:
        return ""
    return " ".join(f"{key}={value}" for key, value in flattened.items())


class Logger:
    """Thin wrapper over :class:`logging.Logger` that accepts structured context."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, message: str, exc_info: bool, data: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        context = _format_context(data)
        text = f"{message} [{context}]" if context else message
        self._logger.log(level, text, exc_info=exc_info)

    def debug(self, message: str, **data: Any) -> None:
        self._emit(logging.DEBUG, message, False, data)

    def info(self, message: str, **data: Any) -> None:
        self._emit(logging.INFO, message, False, data)

    def warning(self, message: str, **data: Any) -> None:
        self._emit(logging.WARNING, message, False, data)

    def error(self, message: str, **data: Any) -> None:
        self._emit(logging.ERROR, message, False, data)

    def exception(self, message: str, **data: Any) -> None:
        self._emit(logging.ERROR, message, True, data)


_loggers: dict[str, Logger] = {}


def get_logger(name: str) -> Logger:
    """Return the shared :class:`Logger` for ``name``."""
    logger = _loggers.get(name)
    if logger is None:
        logger = Logger(name)
        _loggers[name] = logger
    return logger


def configure_logging(level: str | int = "warning") -> None:
    """Attach a rich stderr handler to the ``augent`` logger hierarchy.

    Safe to call repeatedly; later calls only adjust the level.
    """
    global _configured

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        numeric_level = resolved if isinstance(resolved, int) else logging.WARNING
    else:
        numeric_level = level

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    with _configure_lock:
        if not _configured:
            handler = RichHandler(
                console=log_console,
                show_time=False,
                show_path=False,
                markup=False,
            )
            handler.setFormatter(logging.Formatter("%(message)s"))
            root.addHandler(handler)
            root.propagate = False
            _configured = True
        root.setLevel(numeric_level)
