"""Logger lookup shared by all services.

``get_logger`` hands out standard library loggers. Until a service calls
``shared.logging.json.configure_logging`` the first lookup installs a plain
text fallback so early startup messages are not lost.
"""

from __future__ import annotations

import logging

_FALLBACK_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def get_logger(name: str, auto_configure: bool = True) -> logging.Logger:
    """Return the named logger, configuring a fallback handler on first use."""
    global _configured

    if auto_configure and not _configured:
        logging.basicConfig(level=logging.INFO, format=_FALLBACK_FORMAT)
        _configured = True

    logger = logging.getLogger(name)
    logger.propagate = True
    return logger


def is_configured() -> bool:
    return _configured


def mark_configured() -> None:
    """Record that structured logging owns the root logger."""
    global _configured
    _configured = True
