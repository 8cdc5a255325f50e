import asyncio

import pytest
from src.domain.events import Event
from src.services.channel import ChannelClosed, EventChannel


@pytest.mark.asyncio
async def test_events_delivered_in_order():
    channel = EventChannel()
    first, second = Event(timestamp=1), Event(timestamp=2)

    await channel.put(first)
    await channel.put(second)

    assert await channel.get() is first
    assert await channel.get() is second


@pytest.mark.asyncio
async def test_close_after_pending_events():
    channel = EventChannel()
    event = Event(timestamp=1)
    await channel.put(event)
    await channel.close()

    assert channel.closed
    assert await channel.get() is event
    with pytest.raises(ChannelClosed):
        await channel.get()
    # stays closed on every later read
    with pytest.raises(ChannelClosed):
        await channel.get()


@pytest.mark.asyncio
async def test_put_after_close_is_rejected():
    channel = EventChannel()
    await channel.close()
    await channel.close()

    with pytest.raises(ChannelClosed):
        await channel.put(Event(timestamp=1))


@pytest.mark.asyncio
async def test_join_waits_for_ack():
    channel = EventChannel()
    await channel.put(Event(timestamp=1))
    joined = asyncio.ensure_future(channel.join())

    event = await channel.get()
    await asyncio.sleep(0)
    assert not joined.done()

    channel.ack(event)
    await asyncio.wait_for(joined, timeout=1)
    assert channel.acked == 1


@pytest.mark.asyncio
async def test_join_completes_after_close_marker_consumed():
    channel = EventChannel()
    await channel.close()

    with pytest.raises(ChannelClosed):
        await channel.get()

    await asyncio.wait_for(channel.join(), timeout=1)


@pytest.mark.asyncio
async def test_bounded_channel_applies_backpressure():
    channel = EventChannel(maxsize=1)
    await channel.put(Event(timestamp=1))

    blocked = asyncio.ensure_future(channel.put(Event(timestamp=2)))
    await asyncio.sleep(0)
    assert not blocked.done()
    assert channel.qsize() == 1

    channel.ack(await channel.get())
    await asyncio.wait_for(blocked, timeout=1)
    assert channel.qsize() == 1
