"""Logging for the ``spending_plan`` package.

Library modules only ever call :func:`get_logger` with their ``__name__``.
Output is switched on by an entry point (``scripts/show_report.py``) calling
:func:`configure_logging` once; until then the package logs to a
``NullHandler`` and stays quiet inside host applications.

Example:
    >>> from spending_plan.logging_setup import configure_logging, get_logger
    >>> configure_logging("debug")
    >>> get_logger("spending_plan.engine").debug("window resolved")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

from .config import LOG_LEVEL_ENV

PACKAGE_LOGGER = "spending_plan"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_CONFIGURED = False


def resolve_level(level: Union[int, str, None] = None) -> int:
    """Turn a level given on the command line or in the environment into a number.

    Args:
        level: A level number, a numeric string (``"10"``) or a level name in
            any case (``"debug"``). ``None`` reads ``SPENDING_PLAN_LOG_LEVEL``.

    Returns:
        The numeric logging level. Anything unrecognised, including an
        unknown name in the environment, resolves to ``logging.INFO``.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV)
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Send package log records to ``stream`` (stderr by default).

    Only the first call has an effect. The package logger stops propagating
    to the root logger so host applications do not print records twice.

    Args:
        level: See :func:`resolve_level`.
        fmt: ``logging.Formatter`` format string; defaults to ``DEFAULT_FORMAT``.
        stream: Text stream for the handler.

    Returns:
        The package logger.
    """
    global _CONFIGURED
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _CONFIGURED:
        return package_logger

    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.NullHandler):
            package_logger.removeHandler(handler)

    numeric = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(numeric)
    package_logger.propagate = False

    _CONFIGURED = True
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a package module; adds a ``NullHandler`` until logging is configured."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not _CONFIGURED and not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
