"""
Logging configuration — central setup for every entrypoint.

``configure_from_cli()`` is called once by main.py. Every module that
does ``logger = logging.getLogger(__name__)`` inherits this config.

Console level precedence:
    --debug / --verbose / --quiet  >  FLUX_LOG_LEVEL  >  WARNING

FLUX_LOG_FILE adds a file handler (level FLUX_LOG_FILE_LEVEL, default
the console level). Log records go to stderr so they never mix with
playbook output streamed on stdout.
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV_VAR = "FLUX_LOG_LEVEL"
FILE_ENV_VAR = "FLUX_LOG_FILE"
FILE_LEVEL_ENV_VAR = "FLUX_LOG_FILE_LEVEL"

# (format, datefmt) by console level, most verbose first
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_FMT_MINIMAL = "%(message)s"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy below WARNING
_NOISY_LOGGERS = ("asyncio", "urllib3")


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown or empty names mean WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_FMT_MINIMAL)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the whole process.

    Replaces any handlers already on the root logger, so calling it
    again (one CLI invocation per test, for instance) does not stack
    handlers.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Level for the log file (default: ``level``).
        quiet_third_party: Hold noisy third-party loggers at WARNING
            unless the console is at DEBUG.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags, then FLUX_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def configure_from_cli(debug: bool, verbose: bool, quiet: bool) -> None:
    """``setup_logging`` with levels from the CLI flags and FLUX_LOG_* vars."""
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get(LEVEL_ENV_VAR)),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
        quiet_third_party=not debug,
    )
