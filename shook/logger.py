"""
Logging configuration for the application.

``-v`` enables DEBUG; ``-vv`` enables TRACE, which also logs raw webhook
bodies and full command output.
"""
import logging
import sys
from typing import Optional

from .config import settings


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_for_verbosity(verbose: int) -> int:
    """Map a repeated -v count to a log level."""
    if verbose >= 2:
        return TRACE
    if verbose == 1 or settings.debug:
        return logging.DEBUG
    return logging.INFO


def setup_logging(level: Optional[int] = None) -> logging.Logger:
    """Configure the shook logger, replacing any handler set up earlier."""
    shook_logger = logging.getLogger("shook")

    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO
    shook_logger.setLevel(level)

    shook_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    shook_logger.addHandler(handler)

    return shook_logger


# Global logger instance
logger = setup_logging()
