"""
Logging configuration — process-wide handlers and per-run loggers.

``setup_logging`` runs once, from the CLI group callback. It installs the
console handler (and optionally a file handler) on the root logger, so every
module logger created with ``logging.getLogger(__name__)`` reports through it.

``run_logger`` is for the engine: it gives one installation run its own
threshold from the run's ``verbose`` / ``silent`` flags without touching the
root logger, so concurrent runs with different flags stay independent.

Console level, first match wins:
    --debug  >  --verbose  >  --quiet  >  POLYINSTALL_LOG_LEVEL  >  WARNING
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

LOG_LEVEL_ENV = "POLYINSTALL_LOG_LEVEL"
LOG_FILE_ENV = "POLYINSTALL_LOG_FILE"
LOG_FILE_LEVEL_ENV = "POLYINSTALL_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "WARNING"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"

# (threshold, format, datefmt): the first row whose threshold is >= the
# console level is used. Above INFO the console prints bare messages.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_PLAIN = ("%(message)s", None)
_FILE_FORMAT = (_DETAILED, "%Y-%m-%d %H:%M:%S")

# Chatty below WARNING: event loop debug and HTTP connection pools.
_NOISY_LOGGERS = ("asyncio", "urllib3")

_VERBOSE_SUFFIX = "verbose"
_SILENT_SUFFIX = "silent"


def cli_log_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> str:
    """Console level name for the global CLI flags."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if env is None else env
    return env.get(LOG_LEVEL_ENV) or DEFAULT_LEVEL


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install polyinstall's handlers on the root logger.

    Args:
        level: Console level name.
        log_file: Optional log file path (``POLYINSTALL_LOG_FILE``).
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold asyncio/urllib3 at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(
        _handler(logging.StreamHandler(sys.stderr), console_level, _console_format(console_level))
    )
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, _FILE_FORMAT)
        )
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # A broken stream must not abort an install.
    logging.raiseExceptions = False


def run_logger(
    base: logging.Logger,
    verbose: bool = False,
    silent: bool = False,
) -> logging.Logger:
    """Logger for one installation run.

    ``silent`` keeps ERROR and above, ``verbose`` lets DEBUG through;
    ``silent`` wins when both are set. With neither, ``base`` itself is
    returned. The children are named ``<base>.silent`` / ``<base>.verbose``
    and still propagate to the root handlers.
    """
    if silent:
        child = base.getChild(_SILENT_SUFFIX)
        child.setLevel(logging.ERROR)
        return child
    if verbose:
        child = base.getChild(_VERBOSE_SUFFIX)
        child.setLevel(logging.DEBUG)
        return child
    return base


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return _PLAIN


def _handler(handler: logging.Handler, level: int, fmt: tuple[str, str | None]) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt[0], datefmt=fmt[1]))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown or empty names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
