"""
Logging setup for the command line.

Everything goes to a rotating log file in the config directory; --verbose
also mirrors records to stderr through rich.
"""

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from scriptlens.consts import LOG_BACKUP_COUNT, LOG_DIR, LOG_LEVEL, LOG_MAX_BYTES

LOG_FILE_NAME = "scriptlens.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _log_path(log_dir: str) -> str:
    try:
        os.makedirs(log_dir, exist_ok=True)
        return os.path.join(log_dir, LOG_FILE_NAME)
    except OSError:
        # No usable config dir: keep logging, just somewhere else
        return os.path.join(tempfile.gettempdir(), LOG_FILE_NAME)


def configure_logging(verbose: bool = False, log_dir: Optional[str] = None) -> str:
    """
    Install handlers on the package logger. Returns the log file path.
    Safe to call more than once; previous handlers are replaced.
    """
    logger = logging.getLogger("scriptlens")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if verbose else getattr(logging, str(LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    path = _log_path(log_dir or LOG_DIR)
    try:
        file_handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        path = ""

    if verbose:
        console_handler = RichHandler(console=Console(stderr=True), show_path=False)
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug("Starting scriptlens")
    return path
