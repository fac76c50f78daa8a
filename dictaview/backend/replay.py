"""Scripted replay of backend events for auto mode and testing.

A script is a YAML document with an ``events`` list. Each entry has an
``at_ms`` offset and exactly one of ``status``, ``delta`` or ``level``::

    events:
      - {at_ms: 0, status: listening}
      - {at_ms: 400, level: 0.08}
      - {at_ms: 900, delta: "hello "}
      - {at_ms: 2500, status: transcribing}
      - {at_ms: 3200, status: idle}
"""

import asyncio
import logging
import math
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Union
import yaml

from ..config import ConfigurationError
from ..models.events import ReplayEvent
from ..models.status import OverlayStatus
from .publisher import VoiceEventPublisher

logger = logging.getLogger(__name__)

_PAYLOAD_KEYS = ("status", "delta", "level")


def parse_event(entry: Dict[str, Any], index: int = 0) -> ReplayEvent:
    """Validate one script entry.

    Raises:
        ConfigurationError: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Event #{index + 1} must be a mapping, got {type(entry).__name__}")

    at_ms = entry.get("at_ms", 0)
    if isinstance(at_ms, bool) or not isinstance(at_ms, (int, float)) or not math.isfinite(at_ms) or at_ms < 0:
        raise ConfigurationError(f"Event #{index + 1} has invalid at_ms: {at_ms!r}")

    present = [key for key in _PAYLOAD_KEYS if key in entry]
    if len(present) != 1:
        raise ConfigurationError(
            f"Event #{index + 1} must have exactly one of {', '.join(_PAYLOAD_KEYS)}")

    key = present[0]
    value = entry[key]
    if key == "status":
        status = OverlayStatus.parse(value)
        if status is None:
            raise ConfigurationError(f"Event #{index + 1} has unknown status: {value!r}")
        return ReplayEvent(at_ms=int(at_ms), status=status)
    if key == "delta":
        return ReplayEvent(at_ms=int(at_ms), delta="" if value is None else str(value))

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Event #{index + 1} has non-numeric level: {value!r}")
    return ReplayEvent(at_ms=int(at_ms), level=float(value))


def parse_script(document: Any) -> List[ReplayEvent]:
    """Build a replay schedule, ordered by offset, from a parsed YAML document."""
    if not isinstance(document, dict) or not isinstance(document.get("events"), list):
        raise ConfigurationError("Replay script must contain an 'events' list")

    events = [parse_event(entry, i) for i, entry in enumerate(document["events"])]
    # sorted() is stable, so events sharing an offset keep script order
    return sorted(events, key=lambda event: event.at_ms)


def load_script(path: Union[str, Path]) -> List[ReplayEvent]:
    """Load and validate a replay script from a YAML file."""
    script_file = Path(path)
    if not script_file.exists():
        raise FileNotFoundError(f"Replay script not found: {script_file}")

    try:
        with open(script_file, 'r', encoding='utf-8') as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in replay script: {e}")

    events = parse_script(document)
    logger.info(f"Loaded {len(events)} replay events from {script_file}")
    return events


class ReplayDriver:
    """Publishes a replay schedule through a VoiceEventPublisher in real time."""

    def __init__(self,
                 publisher: VoiceEventPublisher,
                 events: List[ReplayEvent],
                 speed: float = 1.0,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize replay driver.

        Args:
            publisher: Publisher the events are sent through
            events: Schedule, ordered by at_ms
            speed: Playback speed factor (2.0 plays twice as fast)
            sleep: Coroutine used for waiting between events
        """
        if speed <= 0:
            raise ValueError(f"Replay speed must be positive, got {speed}")
        self.publisher = publisher
        self.events = events
        self.speed = speed
        self._sleep = sleep
        self.events_sent = 0

    async def run(self) -> int:
        """Replay all events.

        Returns:
            Number of events published
        """
        logger.info(f"Starting replay of {len(self.events)} events at {self.speed}x")
        position_ms = 0
        for event in self.events:
            wait_ms = event.at_ms - position_ms
            if wait_ms > 0:
                await self._sleep(wait_ms / 1000.0 / self.speed)
                position_ms = event.at_ms
            self.dispatch(event)

        logger.info(f"Replay finished: {self.events_sent} events published")
        return self.events_sent

    def dispatch(self, event: ReplayEvent) -> None:
        """Publish a single event."""
        kind = event.kind
        if kind == "status":
            self.publisher.publish_status(event.status)
        elif kind == "delta":
            self.publisher.publish_delta(event.delta)
        else:
            self.publisher.publish_level(event.level)
        self.events_sent += 1
