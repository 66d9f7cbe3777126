"""
Logging helpers shared across the service.
Structured fields are rendered as key=value pairs after the message.
"""

import logging
import sys
from typing import Any, Optional

from sentence_builder.config import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_SERVICE_LOGGER = "sentence_builder"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a module logger with a stream handler attached once.

    Args:
        name: Logger name (usually __name__)
        level: Override for settings.LOG_LEVEL
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    return logger


def _render(message: str, fields: dict[str, Any]) -> str:
    if not fields:
        return message
    extra = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{message} | {extra}"


def log_info(message: str, **fields: Any):
    setup_logger(_SERVICE_LOGGER).info(_render(message, fields))


def log_warning(message: str, **fields: Any):
    setup_logger(_SERVICE_LOGGER).warning(_render(message, fields))


def log_error(message: str, exc_info: bool = False, **fields: Any):
    setup_logger(_SERVICE_LOGGER).error(_render(message, fields), exc_info=exc_info)
