"""Inbound event channel between the event source and the control loop."""

from __future__ import annotations

import asyncio

from src.domain.events import Event

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by ``get`` once the producer side has closed the channel."""


class EventChannel:
    """Bounded FIFO of events with explicit acknowledgement.

    Every event handed out by ``get`` must be passed back to ``ack`` once
    processed; ``join`` waits until all delivered events are acknowledged.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._drained = False  # close marker has been consumed
        self.acked = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, event: Event) -> None:
        if self._closed:
            raise ChannelClosed("cannot put on a closed channel")
        await self._queue.put(event)

    async def get(self) -> Event:
        if self._drained:
            raise ChannelClosed("event channel closed")
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.task_done()
            self._drained = True
            raise ChannelClosed("event channel closed")
        return item

    def ack(self, event: Event) -> None:
        self._queue.task_done()
        self.acked += 1

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def join(self) -> None:
        await self._queue.join()
