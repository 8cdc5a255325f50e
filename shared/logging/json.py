"""Structured JSON logging.

One JSON object per record: the standard envelope (timestamp, level,
logger, event, service, hostname, pid, environment) plus whatever the call
site passed through ``extra``. Keys matching a redaction pattern are
masked before serialisation, recursively through nested dicts and lists.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

from shared.logging.logger import mark_configured

REDACTED = "[REDACTED]"

# Attributes every LogRecord carries; anything else arrived through `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class SensitiveDataFilter:
    def __init__(self, patterns: Iterable[str]):
        self.patterns = [p.lower() for p in patterns]

    def _is_sensitive(self, key: str) -> bool:
        lk = key.lower()
        return any(p in lk for p in self.patterns)

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.filter(value)
        if isinstance(value, (list, tuple)):
            return [self._scrub(v) for v in value]
        return value

    def filter(self, data: dict) -> dict:
        out = {}
        for k, v in data.items():
            if self._is_sensitive(str(k)):
                out[k] = REDACTED
            else:
                out[k] = self._scrub(v)
        return out


class CustomJsonFormatter(logging.Formatter):
    def __init__(
        self,
        service: str,
        environment: str,
        redaction_patterns: Iterable[str],
    ):
        super().__init__()
        self.hostname = socket.gethostname()
        self.pid = os.getpid()
        self.service_name = service
        self.environment = environment
        self.sensitive_filter = SensitiveDataFilter(redaction_patterns)

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "service": self.service_name,
            "hostname": self.hostname,
            "pid": self.pid,
            "environment": self.environment,
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in data:
                data[key] = value
        if record.exc_info:
            data["exception"] = self.format_exception(record.exc_info)
        data = self.sensitive_filter.filter(data)
        return json.dumps(data, default=str)

    @staticmethod
    def format_exception(exc_info) -> dict[str, Any]:
        et, ev, tb = exc_info
        return {
            "type": et.__name__,
            "message": str(ev),
            "stack": traceback.format_tb(tb),
        }


def configure_logging(
    service: str,
    environment: str,
    level: str,
    redaction_patterns: Iterable[str],
) -> logging.Logger:
    """Install a single JSON StreamHandler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter(service, environment, redaction_patterns))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    mark_configured()
    return root


__all__ = [
    "CustomJsonFormatter",
    "configure_logging",
    "SensitiveDataFilter",
    "REDACTED",
]
