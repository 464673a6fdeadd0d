"""
Console and file logging for the ``evidence_integrity`` logger tree.

What each level shows:
- WARNING: provider failures, retries, open circuit breakers, unreadable
  cache entries
- INFO: attachment and relocation summaries, lost claim links, ignored DOIs
- DEBUG: cache hits and misses, rate limiter waits, sidecar saves

Console output goes to stderr so ``scan`` and ``verify`` tables on stdout stay
clean. The JSON-lines audit trail is separate (see ``structured_log``).
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

ROOT_LOGGER_NAME = "evidence_integrity"
DEFAULT_LOG_FILE = "logs/evidence_integrity.log"

BRIEF_FORMAT = "%(levelname)-8s | %(message)s"
TIMED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class LogLevel(str, Enum):
    """Verbosity presets accepted by ``settings.logging.level``."""

    MINIMAL = "minimal"  # provider outages and store errors only
    NORMAL = "normal"  # plus attachment and relocation summaries
    DETAILED = "detailed"  # plus cache and rate limiter activity
    FULL = "full"  # detailed, with timestamps and logger names


_PRESET_LEVELS = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.DETAILED: logging.DEBUG,
    LogLevel.FULL: logging.DEBUG,
}


class ColoredFormatter(logging.Formatter):
    """Colours the level name; the caller's record is left unchanged."""

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        # Other handlers (the log file) must still see the plain level name.
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{self.COLORS.get(record.levelname, '')}{record.levelname}{Style.RESET_ALL}"
        return super().format(colored)


def setup_logging(
    level: LogLevel = LogLevel.NORMAL,
    log_to_file: bool = False,
    log_file: Optional[str] = None,
    verbose: bool = False,
    debug: bool = False,
) -> logging.Logger:
    """
    Configure the package logger; calling it again replaces earlier handlers.

    Args:
        level: Verbosity preset (enum or its string value)
        log_to_file: Also write every record, DEBUG included, to ``log_file``
        log_file: Log file path (default: logs/evidence_integrity.log)
        verbose: Force DEBUG with timestamps (CLI ``-v``)
        debug: Same as verbose (CLI ``--debug``)

    Returns:
        The ``evidence_integrity`` logger
    """
    level = LogLevel(level)
    log_level = logging.DEBUG if (debug or verbose) else _PRESET_LEVELS[level]

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    timed = debug or verbose or level == LogLevel.FULL
    console_handler.setFormatter(
        ColoredFormatter(TIMED_FORMAT, datefmt="%H:%M:%S") if timed else ColoredFormatter(BRIEF_FORMAT)
    )
    logger.addHandler(console_handler)

    if log_to_file:
        log_path = Path(log_file or DEFAULT_LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the package tree; package module names are used as they are."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
