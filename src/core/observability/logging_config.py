"""
Logging setup for the aptcache CLI.

``main.py`` calls :func:`setup_logging` once; engine modules only ever
do ``logger = logging.getLogger(__name__)``.

Console level: ``--debug`` / ``-v`` / ``-q``, else APTCACHE_LOG_LEVEL,
else WARNING. At INFO the console reads like the step log of a CI job
(clock time, message). APTCACHE_LOG_FILE adds a full-detail file log,
with its own level from APTCACHE_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"

# (upper bound, format, datefmt) checked in order
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = (_DETAILED, "%Y-%m-%d %H:%M:%S")


def _console_formatter(level: int) -> logging.Formatter:
    for bound, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= bound:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler and, optionally, a file handler.

    Replaces whatever handlers the root logger had, so calling it again
    (as each CLI invocation does) reconfigures rather than stacks.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    handlers.append(console)

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(path, encoding="utf-8")
        to_file.setLevel(file_level)
        to_file.setFormatter(logging.Formatter(*_FILE_FORMAT))
        handlers.append(to_file)
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(root_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
