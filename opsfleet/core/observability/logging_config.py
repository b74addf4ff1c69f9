"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    --debug  >  -v  >  -q  >  OPSFLEET_LOG_LEVEL env var  >  WARNING

Optional file output via OPSFLEET_LOG_FILE / OPSFLEET_LOG_FILE_LEVEL env
vars. The per-deployment failure lines and the "N of M operations
failed" summary are logged at ERROR, so they reach the console even
with -q.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "OPSFLEET_LOG_LEVEL"
ENV_FILE = "OPSFLEET_LOG_FILE"
ENV_FILE_LEVEL = "OPSFLEET_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING level — message only, prefixed for problems
_FMT_MINIMAL = "%(message)s"
_FMT_PROBLEM = "%(levelname)s: %(message)s"

# INFO level — timestamped, progress of long waits is visible
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level — full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# SDK loggers that flood the console below WARNING
_SDK_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


class _MinimalFormatter(logging.Formatter):
    """Bare messages for INFO, level-prefixed for WARNING and above."""

    def __init__(self) -> None:
        super().__init__(_FMT_MINIMAL)
        self._problem = logging.Formatter(_FMT_PROBLEM)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return self._problem.format(record)
        return super().format(record)


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: If True, keep boto3/botocore at WARNING unless the
            console is at DEBUG.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    formatter: logging.Formatter
    if numeric_level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG)
    elif numeric_level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_VERBOSE)
    else:
        formatter = _MinimalFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    # ── SDK noise control ───────────────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _SDK_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
