"""Logging setup for the command-line app."""
import logging
import logging.handlers
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "latin_tutor"


def configure_logging(verbose: bool = False, log_file: Optional[str] = None,
                      console: Optional[Console] = None) -> logging.Logger:
    """Send package logs to the terminal, and optionally to a rotating file.

    Args:
        verbose: Log at DEBUG instead of WARNING
        log_file: Path of a log file to write as well
        console: Rich console to render to, stderr by default

    Returns:
        The package logger
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = RichHandler(console=console or Console(stderr=True), show_path=verbose, markup=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    logger.propagate = False
    return logger
