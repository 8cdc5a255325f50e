"""Flatten an event's typed fields into a string lookup table."""

from __future__ import annotations

import math
from decimal import Decimal

from src.domain.events import Event, FieldKind


def format_double(value: float) -> str:
    """Shortest round-trippable positional text for a float.

    Never uses exponent notation and drops a trailing ``.0``, so ``5.0``
    becomes ``"5"`` and ``1e-05`` becomes ``"0.00001"``.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def extract_fields(event: Event) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for field in event.fields:
        if not field.values:
            continue
        if field.value_type is FieldKind.STRING:
            lookup[field.name] = field.first
        elif field.value_type is FieldKind.INTEGER:
            lookup[field.name] = str(field.first)
        elif field.value_type is FieldKind.DOUBLE:
            lookup[field.name] = format_double(field.first)
    return lookup
