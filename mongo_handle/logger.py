"""
Logging for mongo_handle.

Handles log through a LoggerAdapter that prefixes every message with the
collection it concerns. Store calls log at debug; set MONGO_HANDLE_DEBUG=true
(or call set_global_debug_mode) to see them.
"""

import json
import logging
import os
import sys
from typing import Optional


_GLOBAL_DEBUG_MODE = os.getenv("MONGO_HANDLE_DEBUG", "false").lower() == "true"


def set_global_debug_mode(enabled: bool) -> None:
    """Set global debug mode."""
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    """Check if debug mode is enabled globally."""
    return _GLOBAL_DEBUG_MODE


class CollectionAdapter(logging.LoggerAdapter):
    """Prefixes messages with ``[collection]`` when a collection is given."""

    def process(self, msg, kwargs):
        collection = self.extra.get("collection")
        if collection:
            return f"[{collection}] {msg}", kwargs
        return msg, kwargs


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log format ("simple" or "json")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    collection: Optional[str] = None,
    debug_mode: Optional[bool] = None
) -> CollectionAdapter:
    """
    Get a collection-tagged logger.

    Args:
        name: Logger name (usually __name__)
        collection: Optional collection name used as message prefix
        debug_mode: If True, enables DEBUG level. If None, uses global setting.
    """
    logger = logging.getLogger(name)
    if debug_mode is None:
        debug_mode = is_debug_mode()
    if debug_mode:
        logger.setLevel(logging.DEBUG)
    return CollectionAdapter(logger, {"collection": collection})
