"""Flush scheduler: the per-instance control loop.

The loop waits on two inputs, the next inbound event and the next timer
tick, and handles exactly one of them at a time. Events are rendered into
the active batch without any I/O; ticks swap the batch out and submit it
to the gateway. Because both paths run on the same task, the batch needs
no locking.

State machine::

    IDLE --START--> RUNNING --CLOSE--> DRAINING --FINISH--> STOPPED
                    RUNNING --EVENT/TICK--> RUNNING
                    DRAINING --TICK--> DRAINING
                    RUNNING/DRAINING --CANCEL--> STOPPED
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Callable, Protocol

from src.core.config import Settings
from src.core.logger import get_logger
from src.core.metrics import (
    ACTIVE_BATCH_SAMPLES,
    BATCH_SIZE,
    EVENTS_TOTAL,
    FLUSH_FAILURES,
    FLUSHES_TOTAL,
    RENDER_FAILURES,
    SAMPLES_DROPPED,
    SAMPLES_RENDERED,
    SAMPLES_SUBMITTED,
    SUBMIT_LATENCY,
    VALUES_ZEROED,
)
from src.domain.events import Event
from src.domain.samples import RenderFailure
from src.infrastructure.stackdriver.client import GatewayClient, SubmissionError
from src.rendering.extractor import extract_fields
from src.rendering.interpolate import placeholders
from src.rendering.renderer import render_metric
from src.services.batch import BatchAccumulator, GatewayMessage
from src.services.channel import ChannelClosed, EventChannel
from src.utils.concurrency import run_blocking
from src.utils.ticker import Ticker

logger = get_logger("forwarder.scheduler")


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class Trigger(str, Enum):
    START = "start"
    EVENT = "event"
    TICK = "tick"
    CLOSE = "close"
    FINISH = "finish"
    CANCEL = "cancel"


TRANSITIONS: dict[tuple[SchedulerState, Trigger], SchedulerState] = {
    (SchedulerState.IDLE, Trigger.START): SchedulerState.RUNNING,
    (SchedulerState.RUNNING, Trigger.EVENT): SchedulerState.RUNNING,
    (SchedulerState.RUNNING, Trigger.TICK): SchedulerState.RUNNING,
    (SchedulerState.RUNNING, Trigger.CLOSE): SchedulerState.DRAINING,
    (SchedulerState.RUNNING, Trigger.CANCEL): SchedulerState.STOPPED,
    (SchedulerState.DRAINING, Trigger.TICK): SchedulerState.DRAINING,
    (SchedulerState.DRAINING, Trigger.FINISH): SchedulerState.STOPPED,
    (SchedulerState.DRAINING, Trigger.CANCEL): SchedulerState.STOPPED,
}


class InvalidTransition(RuntimeError):
    def __init__(self, state: SchedulerState, trigger: Trigger):
        super().__init__(f"no transition from {state.value!r} on {trigger.value!r}")
        self.state = state
        self.trigger = trigger


class TickSource(Protocol):
    async def wait(self) -> Any: ...


class FlushScheduler:
    def __init__(
        self,
        settings: Settings,
        channel: EventChannel,
        ticker: TickSource | None = None,
        client_factory: Callable[..., GatewayClient] = GatewayClient,
        clock: Callable[[], float] = time.time,
        name: str = "forwarder",
    ):
        self.name = name
        self.state = SchedulerState.IDLE
        self._settings = settings
        self._templates = dict(settings.metric)
        self._channel = channel
        self._ticker = ticker or Ticker(settings.ticker_interval)
        self._client_factory = client_factory
        self._accumulator = BatchAccumulator(clock)

        logger.info(
            "templates_loaded",
            extra={
                "instance": name,
                "templates": {
                    key: placeholders(t.name + t.value + t.instance_id)
                    for key, t in self._templates.items()
                },
                "ticker_interval": settings.ticker_interval,
            },
        )

    @property
    def pending(self) -> int:
        return len(self._accumulator)

    @property
    def active_batch(self) -> GatewayMessage:
        return self._accumulator.active

    def snapshot(self) -> dict[str, Any]:
        return {
            "instance": self.name,
            "state": self.state.value,
            "pending_samples": self.pending,
            "templates": len(self._templates),
        }

    def _transition(self, trigger: Trigger) -> None:
        try:
            target = TRANSITIONS[(self.state, trigger)]
        except KeyError:
            raise InvalidTransition(self.state, trigger) from None
        if target is not self.state:
            logger.info(
                "scheduler_state_changed",
                extra={
                    "instance": self.name,
                    "from_state": self.state.value,
                    "to_state": target.value,
                    "trigger": trigger.value,
                },
            )
        self.state = target

    def handle_event(self, event: Event) -> int:
        """Render every template against ``event`` into the active batch.

        Returns the number of samples added. Templates whose value does not
        parse are logged and skipped.
        """
        EVENTS_TOTAL.inc()
        lookup = extract_fields(event)
        added = 0
        for key, template in self._templates.items():
            outcome = render_metric(
                template,
                lookup,
                event.timestamp,
                strict=self._settings.strict_values,
                metric=key,
            )
            if isinstance(outcome, RenderFailure):
                RENDER_FAILURES.labels(metric=key).inc()
                logger.warning(
                    "render_failed",
                    extra={
                        "instance": self.name,
                        "metric": key,
                        "value_text": outcome.value_text,
                        "reason": outcome.reason,
                    },
                )
                continue
            if outcome.zeroed:
                VALUES_ZEROED.inc()
            self._accumulator.add(outcome.sample)
            added += 1
        SAMPLES_RENDERED.inc(added)
        ACTIVE_BATCH_SAMPLES.set(self.pending)
        return added

    def _submit(self, batch: GatewayMessage) -> None:
        with self._client_factory(
            self._settings.api_key.get_secret_value(),
            url=self._settings.gateway_url,
            timeout=self._settings.submit_timeout_seconds,
        ) as client:
            client.send(batch)

    async def flush(self) -> bool:
        """Ship the active batch and start a new window.

        The window is reset before submission, so samples rendered later can
        never join the batch in flight. A failed batch is dropped.
        """
        batch = self._accumulator.reset()
        ACTIVE_BATCH_SAMPLES.set(0)
        size = len(batch)
        if size == 0:
            logger.debug("flush_skipped_empty", extra={"instance": self.name})
            return True

        start = time.perf_counter()
        try:
            await run_blocking(self._submit, batch)
        except SubmissionError as exc:
            FLUSH_FAILURES.inc()
            SAMPLES_DROPPED.inc(size)
            logger.error(
                "submission_failed",
                extra={
                    "instance": self.name,
                    "batch_size": size,
                    "status": exc.status_code,
                    "error": str(exc),
                },
            )
            return False
        except Exception as exc:  # noqa: BLE001
            FLUSH_FAILURES.inc()
            SAMPLES_DROPPED.inc(size)
            logger.exception(
                "submission_unexpected_error",
                extra={"instance": self.name, "batch_size": size, "error": str(exc)},
            )
            return False

        SUBMIT_LATENCY.observe(time.perf_counter() - start)
        BATCH_SIZE.observe(size)
        FLUSHES_TOTAL.inc()
        SAMPLES_SUBMITTED.inc(size)
        logger.info(
            "batch_submitted", extra={"instance": self.name, "batch_size": size}
        )
        return True

    def _on_event(self, event: Event) -> None:
        self._transition(Trigger.EVENT)
        try:
            self.handle_event(event)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "event_processing_failed",
                extra={"instance": self.name, "error": str(exc)},
            )
        finally:
            self._channel.ack(event)

    async def _on_tick(self) -> None:
        self._transition(Trigger.TICK)
        await self.flush()

    async def _drain(self) -> None:
        pending = self.pending
        if self._settings.drain_on_close:
            if pending:
                logger.info(
                    "draining_pending_batch",
                    extra={"instance": self.name, "batch_size": pending},
                )
            await self.flush()
        elif pending:
            self._accumulator.reset()
            ACTIVE_BATCH_SAMPLES.set(0)
            SAMPLES_DROPPED.inc(pending)
            logger.warning(
                "pending_batch_discarded",
                extra={"instance": self.name, "batch_size": pending},
            )
        self._transition(Trigger.FINISH)

    async def run(self) -> None:
        """Process events and ticks until the inbound channel closes."""
        self._transition(Trigger.START)
        next_event: asyncio.Future = asyncio.ensure_future(self._channel.get())
        next_tick: asyncio.Future = asyncio.ensure_future(self._ticker.wait())
        try:
            while self.state is SchedulerState.RUNNING:
                done, _ = await asyncio.wait(
                    {next_event, next_tick}, return_when=asyncio.FIRST_COMPLETED
                )
                # An event ready in the same wake-up as a tick is handled first
                if next_event in done:
                    try:
                        event = next_event.result()
                    except ChannelClosed:
                        self._transition(Trigger.CLOSE)
                    else:
                        self._on_event(event)
                        next_event = asyncio.ensure_future(self._channel.get())
                if next_tick in done:
                    await self._on_tick()
                    if self.state is SchedulerState.RUNNING:
                        next_tick = asyncio.ensure_future(self._ticker.wait())
            await self._drain()
        except asyncio.CancelledError:
            logger.info("scheduler_cancelled", extra={"instance": self.name})
            if self.state is not SchedulerState.STOPPED:
                self._transition(Trigger.CANCEL)
            raise
        finally:
            # An event taken off the channel but never handled still needs an ack
            if (
                next_event.done()
                and not next_event.cancelled()
                and next_event.exception() is None
            ):
                event = next_event.result()
                logger.warning(
                    "unhandled_event_acked",
                    extra={"instance": self.name, "timestamp": event.timestamp},
                )
                self._channel.ack(event)
            pending = [f for f in (next_event, next_tick) if not f.done()]
            for fut in pending:
                fut.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            logger.info(
                "scheduler_stopped",
                extra={"instance": self.name, "state": self.state.value},
            )
