"""Abstract backend boundary consumed by the overlay."""

from abc import ABC, abstractmethod
from typing import Any, Callable
import logging

logger = logging.getLogger(__name__)

# Push channels
STATUS_CHANGED = "status_changed"
TRANSCRIPTION_DELTA = "transcription_delta"
CHANNELS = (STATUS_CHANGED, TRANSCRIPTION_DELTA)

# Queries
GET_STATUS = "get_status"
GET_AUDIO_LEVEL = "get_audio_level"


class OverlayBackendError(Exception):
    """Base class for failures at the backend boundary."""


class BackendError(OverlayBackendError):
    """A backend query failed or is not available."""


class SubscriptionError(OverlayBackendError):
    """A push channel could not be attached."""


class Subscription(ABC):
    """Handle returned by subscribe(); disposing it detaches the handler."""

    @abstractmethod
    def dispose(self) -> None:
        """Detach the handler. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class CallbackSubscription(Subscription):
    """Subscription that runs a release callback exactly once."""

    def __init__(self, release: Callable[[], None]):
        self._release = release

    def dispose(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()

    @property
    def active(self) -> bool:
        return self._release is not None


class AbstractOverlayBackend(ABC):
    """Capabilities the overlay needs from the recording/transcription backend."""

    @abstractmethod
    async def invoke(self, name: str, **args: Any) -> Any:
        """Run a named query against the backend.

        Args:
            name: Query name, e.g. GET_STATUS
            **args: Query arguments

        Returns:
            Query result

        Raises:
            BackendError: If the query fails or is unknown
        """
        pass

    @abstractmethod
    async def subscribe(self, channel: str, handler: Callable[[Any], None]) -> Subscription:
        """Attach a handler to a push channel.

        Args:
            channel: STATUS_CHANGED or TRANSCRIPTION_DELTA
            handler: Called with each event payload, in arrival order

        Returns:
            Subscription used to detach the handler

        Raises:
            SubscriptionError: If the channel cannot be attached
        """
        pass
