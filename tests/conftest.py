"""Pytest configuration and fixtures for Dictaview tests."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import pytest
from pubsub import pub

from dictaview.backend.base import (
    AbstractOverlayBackend,
    BackendError,
    CallbackSubscription,
    Subscription,
    SubscriptionError,
    GET_STATUS,
    GET_AUDIO_LEVEL,
    STATUS_CHANGED,
    TRANSCRIPTION_DELTA,
)


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Drop all pypubsub listeners left behind by a test."""
    yield
    pub.unsubAll()


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: float = 1_000_000.0):
        self.now = start_ms

    def advance(self, ms: float) -> None:
        self.now += ms

    def __call__(self) -> float:
        return self.now


class FakeBackend(AbstractOverlayBackend):
    """In-memory backend with controllable failures and delays."""

    def __init__(self, status: Any = "idle", level: Any = 0.0):
        self.status = status
        self.level = level
        self.status_error: Optional[Exception] = None
        self.level_error: Optional[Exception] = None
        self.failing_channels: set = set()
        self.hold_status: Optional[asyncio.Event] = None
        self.handlers: Dict[str, List[Callable[[Any], None]]] = {
            STATUS_CHANGED: [],
            TRANSCRIPTION_DELTA: [],
        }
        self.invocations: List[str] = []
        self.disposed = 0

    async def invoke(self, name: str, **args: Any) -> Any:
        self.invocations.append(name)
        if name == GET_STATUS:
            if self.hold_status is not None:
                await self.hold_status.wait()
            if self.status_error is not None:
                raise self.status_error
            return self.status
        if name == GET_AUDIO_LEVEL:
            if self.level_error is not None:
                raise self.level_error
            return self.level
        raise BackendError(f"Unknown backend command: {name}")

    async def subscribe(self, channel: str, handler: Callable[[Any], None]) -> Subscription:
        if channel in self.failing_channels:
            raise SubscriptionError(f"{channel} unavailable")
        self.handlers[channel].append(handler)

        def release() -> None:
            self.handlers[channel].remove(handler)
            self.disposed += 1

        return CallbackSubscription(release)

    def emit_status(self, payload: Any) -> None:
        for handler in list(self.handlers[STATUS_CHANGED]):
            handler(payload)

    def emit_delta(self, payload: Any) -> None:
        for handler in list(self.handlers[TRANSCRIPTION_DELTA]):
            handler(payload)

    @property
    def attached(self) -> int:
        return sum(len(handlers) for handlers in self.handlers.values())


@pytest.fixture
def fake_clock():
    """Deterministic clock starting at an arbitrary epoch."""
    return FakeClock()


@pytest.fixture
def fake_backend():
    """Backend double reporting idle with silent audio."""
    return FakeBackend()


@pytest.fixture
def make_machine(fake_backend, fake_clock):
    """Factory for state machines wired to the fake backend and clock."""
    from dictaview.overlay.state_machine import OverlayStateMachine

    machines = []

    def factory(backend=None, tick_interval_ms: int = 100):
        machine = OverlayStateMachine(
            backend or fake_backend,
            tick_interval_ms=tick_interval_ms,
            clock=fake_clock,
        )
        machines.append(machine)
        return machine

    yield factory

    for machine in machines:
        machine.dispose()


@pytest.fixture
def write_yaml(tmp_path):
    """Write text to a YAML file under tmp_path and return its path."""
    def writer(name: str, content: str) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)

    return writer
