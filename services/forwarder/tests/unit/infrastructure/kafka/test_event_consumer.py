import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from src.infrastructure.kafka.consumer import (
    build_consumer,
    consume_events,
    start_consumer_with_retries,
)
from src.services.channel import ChannelClosed, EventChannel


class DummyKafkaConsumer:
    def __init__(self, messages=(), start_failures: int = 0, fail_with=None):
        self._messages = list(messages)
        self._failures_left = start_failures
        self._fail_with = fail_with
        self.start_calls = 0
        self.stopped = False

    async def start(self):
        self.start_calls += 1
        if self._failures_left > 0:
            self._failures_left -= 1
            raise RuntimeError("start failure")

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._messages:
            return SimpleNamespace(value=self._messages.pop(0))
        if self._fail_with is not None:
            raise self._fail_with
        raise StopAsyncIteration

    async def stop(self):
        self.stopped = True


async def _drain(channel: EventChannel) -> list:
    events = []
    while True:
        try:
            event = await channel.get()
        except ChannelClosed:
            return events
        channel.ack(event)
        events.append(event)


@pytest.mark.asyncio
async def test_start_consumer_with_retries():
    consumer = DummyKafkaConsumer(start_failures=2)

    with patch(
        "src.infrastructure.kafka.consumer.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        await start_consumer_with_retries(consumer)

    # Two failures + one success => three start attempts
    assert consumer.start_calls == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_start_consumer_gives_up():
    consumer = DummyKafkaConsumer(start_failures=10)

    with patch("src.infrastructure.kafka.consumer.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(RuntimeError):
            await start_consumer_with_retries(consumer, max_attempts=3)

    assert consumer.start_calls == 3


@pytest.mark.asyncio
async def test_consume_events_forwards_valid_events_and_closes_channel():
    consumer = DummyKafkaConsumer(
        messages=[
            {"timestamp": 1, "fields": {"host": "web1"}},
            None,
            {"timestamp": "bad"},
            {"timestamp": 2, "fields": {"host": "web2"}},
        ]
    )
    channel = EventChannel()

    await consume_events(consumer, channel)

    assert channel.closed
    assert consumer.stopped
    events = await _drain(channel)
    assert [e.timestamp for e in events] == [1, 2]


@pytest.mark.asyncio
async def test_consume_events_closes_channel_on_error():
    consumer = DummyKafkaConsumer(fail_with=RuntimeError("broker gone"))
    channel = EventChannel()

    with pytest.raises(RuntimeError):
        await consume_events(consumer, channel)

    assert channel.closed
    assert consumer.stopped


@pytest.mark.asyncio
async def test_consume_events_closes_channel_on_cancel():
    class BlockingConsumer(DummyKafkaConsumer):
        async def __anext__(self):
            await asyncio.Event().wait()

    consumer = BlockingConsumer()
    channel = EventChannel()
    task = asyncio.create_task(consume_events(consumer, channel))
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert channel.closed
    assert consumer.stopped


def test_build_consumer_uses_settings(settings):
    with patch("src.infrastructure.kafka.consumer.AIOKafkaConsumer") as cls:
        build_consumer(settings)

    args, kwargs = cls.call_args
    assert args == tuple(settings.forwarder_kafka_topics)
    assert kwargs["group_id"] == "metric-forwarder"
    assert kwargs["auto_offset_reset"] == "latest"
    assert kwargs["bootstrap_servers"] == settings.kafka_bootstrap_servers
