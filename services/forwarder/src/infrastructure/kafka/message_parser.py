from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import ValidationError
from src.core.logger import get_logger
from src.domain.events import Event

logger = get_logger("forwarder.message_parser")


def decode_payload(raw: bytes | None) -> Any:
    """Deserializer for the Kafka consumer; undecodable bytes map to None."""
    if raw is None:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("undecodable_payload", extra={"size": len(raw)})
        return None


def parse_event(payload: Any) -> Optional[Event]:
    """Translate a decoded Kafka payload into an Event or None.

    Returns None for payloads that are not JSON objects or fail validation.
    """
    if not isinstance(payload, dict):
        return None
    try:
        return Event.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "invalid_event_payload",
            extra={"errors": e.error_count(), "error": str(e).splitlines()[0]},
        )
        return None
