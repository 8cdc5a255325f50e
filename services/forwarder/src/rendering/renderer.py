"""Turn a metric template plus an event's lookup table into a sample.

The value type is chosen by a single rule: rendered text containing a
``.`` is a 64-bit float, anything else a signed 64-bit integer. Text that
does not parse under its chosen type is reported as a ``RenderFailure``;
in legacy (non-strict) mode it is forwarded as zero instead.
"""

from __future__ import annotations

import math
import re
from typing import Mapping

from src.core.config import MetricTemplate
from src.domain.samples import (
    FloatValue,
    IntegerValue,
    MetricValue,
    Rendered,
    RenderFailure,
    RenderOutcome,
    Sample,
)
from src.rendering.interpolate import interpolate

NANOS_PER_SECOND = 1_000_000_000

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ValueParseError(ValueError):
    pass


def to_epoch_seconds(timestamp_ns: int) -> int:
    """Whole seconds, truncated toward zero."""
    seconds = abs(timestamp_ns) // NANOS_PER_SECOND
    return seconds if timestamp_ns >= 0 else -seconds


def parse_value(text: str) -> MetricValue:
    if "." in text:
        if not _FLOAT_RE.fullmatch(text):
            raise ValueParseError(f"invalid float {text!r}")
        number = float(text)
        if not math.isfinite(number):
            raise ValueParseError(f"float out of range {text!r}")
        return FloatValue(number)
    if not _INT_RE.fullmatch(text):
        raise ValueParseError(f"invalid integer {text!r}")
    number = int(text)
    if not INT64_MIN <= number <= INT64_MAX:
        raise ValueParseError(f"integer out of range {text!r}")
    return IntegerValue(number)


def zero_value(text: str) -> MetricValue:
    return FloatValue(0.0) if "." in text else IntegerValue(0)


def render_metric(
    template: MetricTemplate,
    lookup: Mapping[str, str],
    timestamp_ns: int,
    strict: bool = True,
    metric: str = "",
) -> RenderOutcome:
    """Render one template against one event.

    Args:
        template: Name/value/instance-id patterns.
        lookup: Field values of the event, as produced by ``extract_fields``.
        timestamp_ns: Event creation time in nanoseconds.
        strict: Report unparseable values instead of zeroing them.
        metric: Config key of the template, carried into failures.
    """
    name = interpolate(template.name, lookup)
    instance_id = ""
    if template.instance_id:
        instance_id = interpolate(template.instance_id, lookup)
    value_text = interpolate(template.value, lookup)

    zeroed = False
    try:
        value = parse_value(value_text)
    except ValueParseError as exc:
        if strict:
            return RenderFailure(
                metric=metric or name, value_text=value_text, reason=str(exc)
            )
        value = zero_value(value_text)
        zeroed = True

    sample = Sample(
        name=name,
        instance_id=instance_id,
        collected_at=to_epoch_seconds(timestamp_ns),
        value=value,
    )
    return Rendered(sample, zeroed=zeroed)
