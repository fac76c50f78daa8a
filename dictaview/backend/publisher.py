"""Voice event publisher for the pipeline side of the pub/sub bridge."""

import logging
import threading
from typing import Optional, Union
from pubsub import pub

from ..models.status import OverlayStatus
from .base import STATUS_CHANGED, TRANSCRIPTION_DELTA

logger = logging.getLogger(__name__)


def topic_name(prefix: str, channel: str) -> str:
    """Full pypubsub topic name for a channel."""
    return f"{prefix}.{channel}" if prefix else channel


class VoiceEventPublisher:
    """Publishes status changes and transcription deltas using pubsub.pub.

    Also remembers the latest status and audio level so the overlay side can
    answer snapshot queries.
    """

    def __init__(self, topic_prefix: str = "voice"):
        """Initialize voice event publisher.

        Args:
            topic_prefix: Parent topic under which both channels are published
        """
        self.topic_prefix = topic_prefix
        self.status_topic = topic_name(topic_prefix, STATUS_CHANGED)
        self.delta_topic = topic_name(topic_prefix, TRANSCRIPTION_DELTA)

        self.lock = threading.Lock()
        self._current_status = OverlayStatus.IDLE
        self._latest_level = 0.0

        logger.info(f"VoiceEventPublisher initialized with topics: {self.status_topic}, {self.delta_topic}")

    @property
    def current_status(self) -> OverlayStatus:
        with self.lock:
            return self._current_status

    @property
    def latest_level(self) -> float:
        with self.lock:
            return self._latest_level

    def publish_status(self, status: Union[OverlayStatus, str]) -> None:
        """Record and publish a status change.

        Args:
            status: New status or its string value

        Raises:
            ValueError: If status is not a known status
        """
        parsed = OverlayStatus.parse(status)
        if parsed is None:
            raise ValueError(f"Unknown overlay status: {status!r}")

        with self.lock:
            self._current_status = parsed
        pub.sendMessage(self.status_topic, status=parsed)
        logger.debug(f"Published status: {parsed.value}")

    def publish_delta(self, text: Optional[str]) -> None:
        """Publish a transcription fragment. Empty fragments are published as-is."""
        pub.sendMessage(self.delta_topic, delta=text)
        logger.debug(f"Published transcription delta ({len(text or '')} chars)")

    def publish_level(self, level: float) -> None:
        """Record the latest raw audio level for get_audio_level queries."""
        with self.lock:
            self._latest_level = level
