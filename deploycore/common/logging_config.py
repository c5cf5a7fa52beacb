from __future__ import annotations
import logging
import sys
from typing import IO, Optional

from pythonjsonlogger import jsonlogger

PACKAGE_LOGGER = "deploycore"
LOG_FORMAT = "%(levelname)s %(name)s %(message)s %(asctime)s %(module)s %(funcName)s %(lineno)d"


def configure_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> logging.Handler:
    """Install a single JSON handler on the root logger and return it.

    Catalog loads, recipe exclusions and previous-settings application are
    logged under ``deploycore.*``; those loggers take ``level`` and propagate
    to the root handler. ``stream`` defaults to stdout; command line tools
    that print a report on stdout pass stderr instead.
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    root.addHandler(handler)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(lvl)
    return handler
