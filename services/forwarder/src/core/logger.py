from __future__ import annotations

import logging

from shared.logging.json import configure_logging as _shared_configure_logging
from shared.logging.logger import get_logger

from .config import Settings


def configure_logging(settings: Settings) -> logging.Logger:
    return _shared_configure_logging(
        service=settings.otel_service_name,
        level=settings.app_log_level,
        environment=settings.app_environment,
        redaction_patterns=settings.app_log_redaction_patterns,
    )


__all__ = ["configure_logging", "get_logger"]
