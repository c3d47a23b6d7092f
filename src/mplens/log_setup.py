"""
Logging setup for the command line.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"

_VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def level_for_verbosity(verbosity: int) -> int:
    if verbosity < 0:
        return logging.ERROR
    return _VERBOSITY_LEVELS.get(verbosity, TRACE)


def configure_logging(verbosity: int = 0, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach a single stream handler to the ``mplens`` logger.

    Calling it again replaces the previous handler, so repeated CLI invocations
    in one process (tests) do not duplicate output.
    """
    logger = logging.getLogger("mplens")
    for handler in list(logger.handlers):
        if getattr(handler, "_mplens_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._mplens_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level_for_verbosity(verbosity))
    return logger
