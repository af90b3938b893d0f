"""Logging helpers with a TRACE level below DEBUG.

Library modules only ever call ``get_logger(__name__)``; handlers are installed
exclusively by ``setup_logging`` so that embedding applications stay in charge
of their own logging configuration.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Final, cast

from yachalk import chalk

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "LOG_LEVEL_ENV_VAR",
    "TRACE_LEVEL",
    "ChalkFormatter",
    "DesiredStateLogger",
    "get_logger",
    "resolve_env_log_level",
    "setup_logging",
]

TRACE_LEVEL: Final[int] = logging.DEBUG - 5
LOG_LEVEL_ENV_VAR: Final[str] = "DESIRED_STATE_LOG_LEVEL"

LOG_FORMAT = "[%(levelname)s] %(message)s"
DEBUG_LOG_FORMAT = "[%(levelname)s] [%(filename)s:%(lineno)d] [%(funcName)s] %(message)s"

_LEVEL_NAMES: Final[dict[str, int]] = {
    "TRACE": TRACE_LEVEL,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "NOTSET": logging.NOTSET,
}


class DesiredStateLogger(logging.Logger):
    """Logger class with a ``trace()`` method for the TRACE level."""

    def trace(
        self,
        msg: object,
        *args: object,
        extra: Mapping[str, object] | None = None,
    ) -> None:
        """Log ``msg % args`` with severity TRACE."""
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, msg, args, extra=extra, stacklevel=2)


logging.addLevelName(TRACE_LEVEL, "TRACE")


class ChalkFormatter(logging.Formatter):
    """Formatter that colours each record by severity."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        level = record.levelno
        if level >= logging.CRITICAL:
            return chalk.red_bright(message)
        if level >= logging.ERROR:
            return chalk.red(message)
        if level >= logging.WARNING:
            return chalk.yellow(message)
        if level >= logging.INFO:
            return chalk.green(message)
        if level >= logging.DEBUG:
            return chalk.gray(message)
        return chalk.blue(message)


def resolve_env_log_level() -> int | None:
    """Return the level named by ``DESIRED_STATE_LOG_LEVEL``, or None when unset/unknown.

    Accepts level names (``TRACE``, ``debug``, ...) and plain integers.
    """
    raw = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if not raw:
        return None
    if raw.isdigit():
        return int(raw)
    return _LEVEL_NAMES.get(raw)


def setup_logging(level: int | None = None) -> None:
    """Configure the root logger with a single coloured stdout handler.

    Args:
        level: Log level to apply.  When None the environment is consulted via
            ``resolve_env_log_level``; the fallback is CRITICAL.
    """
    if level is None:
        level = resolve_env_log_level() or logging.CRITICAL

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ChalkFormatter(LOG_FORMAT if level >= logging.INFO else DEBUG_LOG_FORMAT)
    )
    root_logger.addHandler(handler)


def get_logger(name: str) -> DesiredStateLogger:
    """Return a ``DesiredStateLogger`` for ``name``.

    The logger class is swapped in only for this lookup so that loggers created
    by other libraries are unaffected.
    """
    manager = logging.Logger.manager
    previous = manager.loggerClass
    manager.setLoggerClass(DesiredStateLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        manager.loggerClass = previous
    if not isinstance(logger, DesiredStateLogger):
        # Created earlier by someone else with the stock class.
        logger.__class__ = DesiredStateLogger
    return cast("DesiredStateLogger", logger)
