"""
Logging for API Tracker.

Every module logs under the ``api_tracker`` namespace. The CLI routes that
namespace to a rich handler on stderr, so stdout stays free for tables and
``--json`` output. Progress goes to INFO, per-item problems to WARNING and
analyzer command lines to DEBUG (``--debug``).
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "api_tracker"

# Verbosity names as used in TrackerConfig
LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.INFO,
    "verbose": logging.DEBUG,
}

_HANDLER_NAME = "api-tracker"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route the ``api_tracker`` loggers to stderr and, optionally, a file.

    A second call replaces the handlers of the first one; handlers added by
    anyone else (pytest's caplog, for one) are left alone. ``quiet`` wins
    over ``verbose``.

    Args:
        verbose: Log analyzer command lines and show source locations
        quiet: Only log errors
        log_file: Also append plain-text records to this file

    Returns:
        The ``api_tracker`` logger
    """
    verbosity = "quiet" if quiet else "verbose" if verbose else "normal"
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            show_path=verbose,
            log_time_format="[%X]",
        )
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    for handler in handlers:
        handler.set_name(_HANDLER_NAME)
        logger.addHandler(handler)
    logger.setLevel(LEVELS[verbosity])
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a module, always inside the ``api_tracker`` namespace."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
