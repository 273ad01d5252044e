"""Logging for ThriftLedger.

Streamlit re-executes ``app.py`` on every widget interaction, so the handler
is attached once per server process and later calls leave it alone.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

LOGGER_NAME = "thriftledger"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONFIGURED = False


def level_from(value: int | str | None = None) -> int:
    """Numeric level from an int, a name such as ``"debug"``, or ``THRIFTLEDGER_LOG_LEVEL``."""
    raw = os.getenv("THRIFTLEDGER_LOG_LEVEL", "INFO") if value is None else value
    if isinstance(raw, int):
        return raw
    name = str(raw).strip().upper()
    if name.isdigit():
        return int(name)
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: int | str | None = None, stream: IO[str] | None = None) -> logging.Logger:
    global _CONFIGURED
    logger = logging.getLogger(LOGGER_NAME)
    if _CONFIGURED:
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level_from(level))
    logger.propagate = False
    _CONFIGURED = True
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the ``thriftledger`` logger, e.g. ``thriftledger.record_source``."""
    if name != LOGGER_NAME and not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
