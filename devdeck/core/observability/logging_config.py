"""
Logging configuration — central setup for the CLI and the web API.

Called once at startup by ``devdeck.main``.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

``resolve_level`` turns CLI flags, environment and settings into a
``LogTargets`` plan; ``setup_logging`` installs it.  Console level
precedence:

    CLI flag  >  DEVDECK_LOG_LEVEL  >  settings log_level  >  WARNING

A log file is added when DEVDECK_LOG_FILE is set, at
DEVDECK_LOG_FILE_LEVEL (default: the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping

LOG_LEVEL_ENV = "DEVDECK_LOG_LEVEL"
LOG_FILE_ENV = "DEVDECK_LOG_FILE"
LOG_FILE_LEVEL_ENV = "DEVDECK_LOG_FILE_LEVEL"

# Console format per verbosity: (format, datefmt)
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}

_FILE_FORMAT = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%Y-%m-%d %H:%M:%S")

# Loggers kept at WARNING unless the console is at DEBUG
_NOISY_LOGGERS = ("werkzeug", "asyncio")

# Marks handlers installed here so a second setup replaces only them
_OWNED = "_devdeck_handler"


def parse_level(level: str | int | None, default: int = logging.WARNING) -> int:
    """Level name (or number) to its numeric value; unknown names give ``default``."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    return logging.getLevelNamesMapping().get(level.strip().upper(), default)


@dataclass(frozen=True)
class LogTargets:
    """Where log records go and at which levels."""

    console: int = logging.WARNING
    file: str | None = None
    file_level: int | None = None

    @property
    def root(self) -> int:
        """Root logger level: low enough for every target."""
        if self.file is None or self.file_level is None:
            return self.console
        return min(self.console, self.file_level)


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    configured: str | None = None,
    env: Mapping[str, str] | None = None,
) -> LogTargets:
    """Resolve flags, DEVDECK_* variables and settings into targets."""
    env = os.environ if env is None else env

    if debug:
        console = logging.DEBUG
    elif verbose:
        console = logging.INFO
    elif quiet:
        console = logging.ERROR
    else:
        console = parse_level(env.get(LOG_LEVEL_ENV) or configured)

    log_file = env.get(LOG_FILE_ENV) or None
    file_level = parse_level(env.get(LOG_FILE_LEVEL_ENV), default=console) if log_file else None
    return LogTargets(console=console, file=log_file, file_level=file_level)


def setup_logging(targets: LogTargets | None = None, quiet_third_party: bool = True) -> None:
    """Install console (and optional file) handlers on the root logger.

    Handlers from a previous call are replaced; handlers installed by
    anything else are left alone.
    """
    targets = targets or LogTargets()
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(handler)
        handler.close()

    fmt, datefmt = _console_format(targets.console)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(targets.console)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    _install(root, console)

    if targets.file:
        fh = logging.FileHandler(targets.file, encoding="utf-8")
        fh.setLevel(targets.file_level if targets.file_level is not None else targets.console)
        fh.setFormatter(logging.Formatter(*_FILE_FORMAT))
        _install(root, fh)

    root.setLevel(targets.root)

    if quiet_third_party and targets.console > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _install(root: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _OWNED, True)
    root.addHandler(handler)


def _console_format(level: int) -> tuple[str, str | None]:
    if level <= logging.DEBUG:
        return _CONSOLE_FORMATS[logging.DEBUG]
    if level <= logging.INFO:
        return _CONSOLE_FORMATS[logging.INFO]
    return _CONSOLE_FORMATS[logging.WARNING]
