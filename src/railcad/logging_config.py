"""Console and file logging for the ``railcad`` logger hierarchy.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves; entry points such as the CLI call :func:`setup_logging`
once. Diagnostics go to stderr so STL paths printed on stdout stay clean.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = 'railcad'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(level: int = logging.INFO,
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Route ``railcad`` log records to stderr and, optionally, a file.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Threshold for both the logger and its handlers
        log_file: File to write (truncated) alongside stderr

    Returns:
        The ``railcad`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(sys.stderr), level)
    if log_file:
        _attach(logger, logging.FileHandler(log_file, mode='w', encoding='utf-8'), level)

    logger.debug("logging at %s%s", logging.getLevelName(level),
                 f", copy in {log_file}" if log_file else "")
    return logger


__all__ = ['setup_logging']
