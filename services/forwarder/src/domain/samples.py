from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class FloatValue:
    value: float


MetricValue = IntegerValue | FloatValue


@dataclass(frozen=True)
class Sample:
    """One concrete data point bound for the gateway."""

    name: str
    instance_id: str
    collected_at: int  # epoch seconds
    value: MetricValue

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "value": self.value.value,
            "collected_at": self.collected_at,
        }
        if self.instance_id:
            payload["instance"] = self.instance_id
        return payload


@dataclass(frozen=True)
class Rendered:
    sample: Sample
    zeroed: bool = False  # value did not parse and was replaced by zero


@dataclass(frozen=True)
class RenderFailure:
    """A template whose rendered value could not be parsed."""

    metric: str
    value_text: str
    reason: str


RenderOutcome = Rendered | RenderFailure
