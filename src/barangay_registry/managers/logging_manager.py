"""
Logging manager for the Barangay Registry service.

Every module obtains its logger through `get_logger()`. Loggers share a single
console handler attached to the `barangay_registry` root logger, and an optional
`prefix` (e.g. `"[RecordRepository]"`) is prepended to every message so log lines
can be traced back to the component that emitted them.

Example:
    ```python
    from barangay_registry.managers.logging_manager import get_logger

    logger = get_logger(prefix="[RecordRepository]")
    logger.info("Created resident %s", resident_id)
    ```
"""

import logging
import sys
from typing import Optional

from barangay_registry.config import settings

ROOT_LOGGER_NAME = "barangay_registry"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


class PrefixAdapter(logging.LoggerAdapter):
    """Prepends a fixed component prefix to every log message."""

    def process(self, msg, kwargs):
        return f"{self.extra['prefix']} {msg}", kwargs


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return root

    level = logging.getLevelName(settings.DEFAULT_LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False

    _configured = True
    return root


def get_logger(name: Optional[str] = None, prefix: str = ""):
    """
    Return a configured logger.

    Args:
        name: Child logger name under `barangay_registry`. Defaults to the root logger.
        prefix: Optional tag prepended to each message.

    Returns:
        A `logging.Logger`, or a `PrefixAdapter` wrapping one when `prefix` is given.
    """
    root = _configure_root()
    logger = root.getChild(name) if name else root
    if prefix:
        return PrefixAdapter(logger, {"prefix": prefix})
    return logger
