"""Logging configuration for arbor

Logging is diagnostic output only; user-facing progress goes through
``arbor.ui.console``.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from arbor.constants import ARBOR_HOME, LOG_FILE_NAME

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SHORT_FORMAT = "[%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# GitPython logs every git invocation under these names
NOISY_LOGGERS = ("git.cmd", "git.util", "git.repo")


class ColoredFormatter(logging.Formatter):
    """Colour the level name when stderr is a terminal."""

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None or not sys.stderr.isatty():
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def log_file_path() -> Path:
    """Where ``--debug`` runs write their log."""
    return Path(ARBOR_HOME).expanduser() / LOG_FILE_NAME


def _level(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False, log_file: Optional[Path] = None) -> Optional[Path]:
    """
    Configure the root logger for one CLI invocation.

    Args:
        verbose: Show INFO records
        debug: Show DEBUG records with timestamps and also write every record
            to ``log_file`` (overwritten per run)
        log_file: Debug log location; ``~/.arbor/arbor.log`` by default

    Returns:
        The debug log path, or None when no file is written
    """
    level = _level(verbose, debug)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT) if debug else ColoredFormatter(fmt=SHORT_FORMAT)
    )
    root_logger.addHandler(console_handler)

    if not debug:
        return None

    path = Path(log_file) if log_file else log_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="w")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)
    return path


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, named without the ``arbor.`` prefix."""
    if name.startswith("arbor."):
        name = name[len("arbor."):]
    return logging.getLogger(name)
