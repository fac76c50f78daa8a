"""Audio level monitor feeding the overlay's level visualization."""

import asyncio
import logging
from typing import Callable, List, Optional

from ..backend.base import AbstractOverlayBackend, CallbackSubscription, Subscription, GET_AUDIO_LEVEL
from ..models.status import OverlayStatus
from .signal import condition_level, history_capacity, push_history

logger = logging.getLogger(__name__)

HistoryListener = Callable[[List[float]], None]


class LevelMonitor:
    """Polls the backend's audio level while listening and keeps a rolling history."""

    def __init__(self,
                 backend: AbstractOverlayBackend,
                 status_source: Callable[[], OverlayStatus],
                 history_length: int = 24,
                 poll_interval_ms: int = 50):
        """Initialize level monitor.

        Args:
            backend: Backend answering GET_AUDIO_LEVEL queries
            status_source: Returns the overlay's current status
            history_length: Number of conditioned samples kept for rendering
            poll_interval_ms: Delay between level queries
        """
        self.backend = backend
        self.status_source = status_source
        self.history_length = history_capacity(history_length)
        self.poll_interval_ms = poll_interval_ms

        self.history: List[float] = [0.0] * self.history_length
        self._listeners: List[HistoryListener] = []
        self._task: Optional[asyncio.Task] = None
        self._was_listening = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: HistoryListener) -> Subscription:
        """Register a callback invoked with every new history window."""
        self._listeners.append(listener)

        def release() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return CallbackSubscription(release)

    def sample(self, raw: float) -> List[float]:
        """Condition a raw level and push it into the history."""
        self.history = push_history(self.history, condition_level(raw), self.history_length)
        self._notify()
        return self.history

    def reset(self) -> None:
        """Return the history to silence."""
        self.history = [0.0] * self.history_length
        self._notify()

    async def poll_once(self) -> bool:
        """Query and record one level sample if the overlay is listening.

        Returns:
            True if a sample was recorded
        """
        if self.status_source() is not OverlayStatus.LISTENING:
            if self._was_listening:
                self._was_listening = False
                self.reset()
            return False

        self._was_listening = True
        try:
            raw = await self.backend.invoke(GET_AUDIO_LEVEL)
        except Exception as e:
            logger.debug(f"Audio level poll failed: {e}")
            return False

        self.sample(raw)
        return True

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"LevelMonitor started: {self.history_length} samples every {self.poll_interval_ms}ms")

    def stop(self) -> None:
        """Stop polling. Safe to call more than once."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("LevelMonitor stopped")

    async def _run(self) -> None:
        interval = self.poll_interval_ms / 1000.0
        while True:
            await self.poll_once()
            await asyncio.sleep(interval)

    def _notify(self) -> None:
        history = list(self.history)
        for listener in list(self._listeners):
            try:
                listener(history)
            except Exception as e:
                logger.error(f"Level listener failed: {e}", exc_info=True)
