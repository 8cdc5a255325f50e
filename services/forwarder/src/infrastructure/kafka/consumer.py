import asyncio
from typing import Any

from aiokafka import AIOKafkaConsumer
from src.core.config import Settings
from src.core.logger import get_logger
from src.services.channel import EventChannel

from .message_parser import decode_payload, parse_event

logger = get_logger("forwarder.consumer")


def build_consumer(settings: Settings) -> AIOKafkaConsumer:
    return AIOKafkaConsumer(
        *settings.forwarder_kafka_topics,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=settings.forwarder_kafka_consumer_group,
        enable_auto_commit=True,
        auto_offset_reset=settings.forwarder_consume_from,
        value_deserializer=decode_payload,
    )


async def start_consumer_with_retries(consumer: Any, max_attempts: int = 7) -> None:
    """Start the Kafka consumer with exponential backoff.

    Raises RuntimeError after exhausting retries.
    """
    delay = 1.0
    for attempt in range(1, max_attempts + 1):
        try:
            await consumer.start()
            logger.info("kafka_consumer_started", extra={"attempt": attempt})
            return
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "kafka_consumer_start_failed",
                extra={"attempt": attempt, "error": str(e), "retry_in": delay},
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, 30)
    raise RuntimeError("Kafka consumer could not start after retries")


async def consume_events(consumer: Any, channel: EventChannel) -> None:
    """Feed parsed events from Kafka into the channel.

    The channel is closed however this coroutine ends (exhaustion,
    cancellation or error), which moves the scheduler into draining.
    """
    try:
        await start_consumer_with_retries(consumer)
        skipped = 0
        async for msg in consumer:
            event = parse_event(msg.value)
            if event is None:
                skipped += 1
                continue
            await channel.put(event)
        logger.info("kafka_stream_ended", extra={"skipped": skipped})
    except asyncio.CancelledError:
        logger.info("consume_events_cancelled")
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("consume_events_fatal", extra={"error": str(e)})
        raise
    finally:
        await channel.close()
        try:
            await consumer.stop()
        except Exception:  # noqa: BLE001
            logger.exception("kafka_consumer_stop_failed")
        logger.info("kafka_consumer_stopped")
