"""Gateway message container and the accumulator that owns the active one."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from src.domain.samples import Sample

PROTO_VERSION = 1


@dataclass
class GatewayMessage:
    timestamp: int  # epoch seconds the batch was opened
    proto_version: int = PROTO_VERSION
    data: list[Sample] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)

    def to_payload(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "proto_version": self.proto_version,
            "data": [s.to_payload() for s in self.data],
        }


class BatchAccumulator:
    """Holds the samples of the current flush window.

    Not thread-safe: only the owning control loop may call ``add`` and
    ``reset``.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._active = self._new_message()

    def _new_message(self) -> GatewayMessage:
        return GatewayMessage(timestamp=int(self._clock()))

    @property
    def active(self) -> GatewayMessage:
        return self._active

    def add(self, sample: Sample) -> None:
        self._active.data.append(sample)

    def reset(self) -> GatewayMessage:
        """Start a fresh window and hand the previous message to the caller."""
        previous = self._active
        self._active = self._new_message()
        return previous

    def __len__(self) -> int:
        return len(self._active)
