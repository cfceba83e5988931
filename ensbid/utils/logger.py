"""
Logging for ensbid.

All loggers hang off the "ensbid" logger, one child per subsystem:

    ensbid.auction    orchestrator outcomes (transaction id, name, address)
    ensbid.session    session construction and submission
    ensbid.state      registrar reads
    ensbid.chain      JSON-RPC traffic
    ensbid.wallet     keystore access

Console output goes to stderr so a command's own result on stdout stays a
single line. Passphrases and salts are never passed to a logger.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "ensbid"
LOG_FILE = "ensbid.log"

CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(message)s"
DEBUG_CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class ENSLogger:
    """Owns the handlers attached to the ensbid root logger."""

    _handlers = []

    @classmethod
    def configure(cls, level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
        """
        (Re)configure the ensbid root logger.

        Handlers from a previous call are removed first, so the CLI can be
        invoked repeatedly in one process without duplicating output.

        Args:
            level: Threshold for the console and file handlers
            log_dir: If given, also append to <log_dir>/ensbid.log

        Returns:
            The ensbid root logger
        """
        root = logging.getLogger(ROOT_LOGGER)
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []

        # The file keeps transaction records even when the console is quiet
        file_level = min(level, logging.INFO)
        root.setLevel(file_level if log_dir is not None else level)
        root.propagate = False

        console = colorlog.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(colorlog.ColoredFormatter(
            DEBUG_CONSOLE_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        ))
        cls._attach(root, console)

        if log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir / LOG_FILE, encoding="utf-8")
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            cls._attach(root, file_handler)

        return root

    @classmethod
    def _attach(cls, root: logging.Logger, handler: logging.Handler) -> None:
        root.addHandler(handler)
        cls._handlers.append(handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a subsystem, e.g. get_logger("auction") -> ensbid.auction"""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    return ENSLogger.configure(level=level, log_dir=log_dir)
