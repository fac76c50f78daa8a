"""In-process overlay backend built on pypubsub topics."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict
from pubsub import pub

from .base import (
    AbstractOverlayBackend,
    BackendError,
    Subscription,
    SubscriptionError,
    CHANNELS,
    STATUS_CHANGED,
    GET_STATUS,
    GET_AUDIO_LEVEL,
)
from .publisher import VoiceEventPublisher, topic_name

logger = logging.getLogger(__name__)


class PubSubSubscription(Subscription):
    """Keeps a pypubsub listener alive until disposed.

    pypubsub only holds weak references to listeners, so the subscription owns
    the strong reference for as long as it is active.
    """

    def __init__(self, topic: str, listener: Callable[..., None]):
        self.topic = topic
        self._listener = listener

    def dispose(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        try:
            pub.unsubscribe(listener, self.topic)
            logger.debug(f"Unsubscribed from {self.topic}")
        except Exception as e:
            logger.warning(f"Error during unsubscribe from {self.topic}: {e}")

    @property
    def active(self) -> bool:
        return self._listener is not None


class PubSubOverlayBackend(AbstractOverlayBackend):
    """Answers overlay queries from a VoiceEventPublisher and relays its topics."""

    def __init__(self, publisher: VoiceEventPublisher):
        """Initialize backend.

        Args:
            publisher: Pipeline-side publisher whose topics and state are exposed
        """
        self.publisher = publisher
        self._commands: Dict[str, Callable[..., Any]] = {
            GET_STATUS: lambda: publisher.current_status,
            GET_AUDIO_LEVEL: lambda: publisher.latest_level,
        }
        logger.info(f"PubSubOverlayBackend initialized for topic prefix: {publisher.topic_prefix!r}")

    def register_command(self, name: str, handler: Callable[..., Any]) -> None:
        """Expose an extra query through invoke(). Handlers may be sync or async."""
        self._commands[name] = handler

    async def invoke(self, name: str, **args: Any) -> Any:
        handler = self._commands.get(name)
        if handler is None:
            raise BackendError(f"Unknown backend command: {name}")

        try:
            result = handler(**args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise BackendError(f"Backend command {name} failed: {e}") from e
        return result

    async def subscribe(self, channel: str, handler: Callable[[Any], None]) -> Subscription:
        if channel not in CHANNELS:
            raise SubscriptionError(f"Unknown channel: {channel}")

        topic = topic_name(self.publisher.topic_prefix, channel)
        deliver = self._bind_to_loop(asyncio.get_running_loop(), topic, handler)

        # Listener argument names must match the topic's message data
        if channel == STATUS_CHANGED:
            def listener(status):
                deliver(status)
        else:
            def listener(delta):
                deliver(delta)

        try:
            pub.subscribe(listener, topic)
        except Exception as e:
            raise SubscriptionError(f"Could not subscribe to {topic}: {e}") from e

        logger.info(f"Subscribed to {topic}")
        return PubSubSubscription(topic, listener)

    @staticmethod
    def _bind_to_loop(loop: asyncio.AbstractEventLoop, topic: str,
                      handler: Callable[[Any], None]) -> Callable[[Any], None]:
        """Deliver payloads on the subscribing loop, preserving arrival order."""

        def deliver(payload: Any) -> None:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None

            if running is loop:
                handler(payload)
                return

            try:
                loop.call_soon_threadsafe(handler, payload)
            except RuntimeError:
                logger.debug(f"Dropped {topic} event: subscriber loop is closed")

        return deliver
