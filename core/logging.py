"""Logger helpers shared by the core and engine packages."""

from __future__ import annotations

import logging
from typing import Optional, Union

__all__ = ["LOGGER_NAMESPACE", "configure_logging", "get_logger"]

LOGGER_NAMESPACE = "wearsync"
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s | %(message)s"

_configured = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger namespaced under :data:`LOGGER_NAMESPACE`."""

    if not name:
        return logging.getLogger(LOGGER_NAMESPACE)
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install a single stream handler on the namespace logger.

    Repeated calls only adjust the level.
    """

    global _configured
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level)
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    root.addHandler(handler)
    _configured = True
