"""Diagnostic logging for the worker process.

The editor spawns the worker with stdin, stdout and stderr attached to pipes it
never reads, so nothing useful can be written there. Diagnostics go to a log
file named by ``logging.file`` in the config or by ``TOKENWORKER_LOG``. When
neither is set, and stderr is an interactive terminal (someone started the
worker by hand), records are echoed to stderr instead. Otherwise the worker
is silent.

Two extra levels sit beside the stdlib ones: ``VERBOSE`` between DEBUG and
INFO, and ``TRACE`` below DEBUG for per-quantum scheduler chatter.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenworker.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_ENV_VAR = "TOKENWORKER_LOG"

logger = logging.getLogger("tokenworker")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Index is the ``verbose`` setting
_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

# Several workers may share one log file; the pid tells them apart
_LINE_FORMAT = "%(asctime)s [%(process)d] %(levelname)s: %(message)s"


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective threshold for the worker logger.

    A numeric ``verbose`` wins over a named ``level``; anything above the
    last verbosity step means TRACE. Unrecognized names mean INFO.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        if config.verbose < 0:
            return logging.ERROR
        return _VERBOSITY_LEVELS[min(config.verbose, len(_VERBOSITY_LEVELS) - 1)]
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _log_destination(config: LoggingConfig | None) -> str | None:
    path = config.file if config and config.file else os.environ.get(LOG_ENV_VAR)
    return os.path.expanduser(path) if path else None


def _attach(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(_LINE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach the worker's log handler. Only the first call has any effect.

    Args:
        config: The ``logging`` section of the loaded config, if any.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)
    console = sys.stderr.isatty()

    path = _log_destination(config)
    if path:
        try:
            _attach(logging.FileHandler(path, mode="a", encoding="utf-8"), level)
            return
        except OSError as e:
            if console:
                print(f"[tokenworker] cannot write log file {path}: {e}", file=sys.stderr)

    if console:
        _attach(logging.StreamHandler(sys.stderr), level)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one worker component.

    Args:
        name: Component suffix such as ``"scheduler"``; ``None`` gives the
            top-level ``tokenworker`` logger.
    """
    return logger.getChild(name) if name else logger
