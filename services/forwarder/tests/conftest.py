import asyncio
import time

import pytest
from src.core.config import Settings
from src.domain.events import Event
from src.infrastructure.stackdriver.client import SubmissionError
from src.services.batch import GatewayMessage


class ManualTicker:
    """Tick source driven by the test instead of the clock.

    ``tick()`` returns once the scheduler has handled the tick and is
    waiting for the next one.
    """

    def __init__(self):
        self._ticks: asyncio.Queue = asyncio.Queue()
        self._waiting = asyncio.Event()

    async def wait(self) -> float:
        self._waiting.set()
        return await self._ticks.get()

    async def fire(self) -> None:
        """Deliver a tick without waiting for it to be handled."""
        await self._waiting.wait()
        self._waiting.clear()
        await self._ticks.put(time.monotonic())

    async def tick(self) -> None:
        await self.fire()
        await self._waiting.wait()


class RecordingGateway:
    """Stands in for GatewayClient and its factory at the same time."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[GatewayMessage] = []
        self.api_keys: list[str] = []
        self.opened = 0
        self.closed = 0

    def __call__(self, api_key: str, url: str = "", timeout: float = 0.0):
        self.api_keys.append(api_key)
        self.opened += 1
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed += 1

    def send(self, message: GatewayMessage) -> None:
        if self.fail:
            raise SubmissionError("gateway rejected batch: 500", status_code=500)
        self.sent.append(message)


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "api_key": "test-api-key",
            "metric": {"cpu": {"name": "cpu.{{host}}", "value": "{{usage}}"}},
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def sample_event() -> Event:
    return Event(timestamp=60_000_000_000, fields={"host": "web1", "usage": 73.2})


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def failing_gateway() -> RecordingGateway:
    return RecordingGateway(fail=True)
