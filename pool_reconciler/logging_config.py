"""Logging setup for reconciliation runs.

Progress goes to stderr through rich so it does not mix with command output;
an optional log file always receives the full DEBUG trace of a run.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK and transport loggers that report every request at INFO or DEBUG
QUIET_LOGGERS = ("urllib3", "paramiko", "azure")


def setup_logging(level: str = "INFO", log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure the root logger for a reconciliation run.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives every record at DEBUG
        verbose: Show DEBUG records on the console, overriding ``level``
    """
    console_level = logging.DEBUG if verbose else getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_path=verbose,
        markup=False,
        rich_tracebacks=verbose,
    )
    root_logger.addHandler(console_handler)

    # The file handler needs DEBUG records even when the console shows fewer
    root_logger.setLevel(logging.DEBUG if log_file else console_level)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            root_logger.warning(f"Unable to write log file {log_file}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger called ``name``."""
    return logging.getLogger(name)
