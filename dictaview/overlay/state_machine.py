"""Overlay state machine.

Folds the backend's status and transcription-delta feeds into a single
OverlaySessionState and projects it into OverlaySnapshot objects for the
render layer.

Transitions (previous -> next):

* ``* -> listening`` (not from listening): clear preview, zero elapsed time,
  start timing.
* ``listening -> listening``: start timing only if it is not already running.
* ``* -> transcribing``: freeze elapsed time if timing, stop timing.
* ``* -> idle | error``: clear preview, stop timing, zero elapsed time.

All mutations happen on one asyncio event loop. Once disposed, the machine
ignores every late event, tick and query result.
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Callable, List, Optional

from ..backend.base import (
    AbstractOverlayBackend,
    CallbackSubscription,
    Subscription,
    GET_STATUS,
    STATUS_CHANGED,
    TRANSCRIPTION_DELTA,
)
from ..models.session import OverlaySessionState
from ..models.status import OverlayStatus
from ..models.ui import OverlaySnapshot
from .elapsed import ELAPSED_TICK_MS, format_elapsed
from .transcript import placeholder_text, should_append

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[OverlaySnapshot], None]


def wall_clock_ms() -> float:
    """Current wall-clock time in milliseconds."""
    return time.time() * 1000.0


class OverlayStateMachine:
    """Event-driven presentation state for the live recording overlay."""

    def __init__(self,
                 backend: AbstractOverlayBackend,
                 tick_interval_ms: int = ELAPSED_TICK_MS,
                 clock: Callable[[], float] = wall_clock_ms):
        """Initialize the state machine in the idle state.

        Args:
            backend: Source of the status snapshot and both push channels
            tick_interval_ms: Elapsed-time refresh period while listening
            clock: Returns the current time in milliseconds
        """
        self.backend = backend
        self.tick_interval_ms = tick_interval_ms
        self._clock = clock

        self._state = OverlaySessionState()
        self._alive = True
        self._synced = False
        self._status_events_seen = 0

        self._subscriptions: List[Subscription] = []
        self._listeners: List[SnapshotListener] = []
        self._ticker: Optional[asyncio.Task] = None
        self._snapshot = self._build_snapshot()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> OverlaySessionState:
        """Copy of the current session state."""
        return dataclasses.replace(self._state)

    @property
    def status(self) -> OverlayStatus:
        return self._state.status

    @property
    def snapshot(self) -> OverlaySnapshot:
        return self._snapshot

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def is_synced(self) -> bool:
        """True once the initial status query has completed or failed."""
        return self._synced

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def add_listener(self, listener: SnapshotListener) -> Subscription:
        """Register a callback invoked with every new snapshot."""
        self._listeners.append(listener)

        def release() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return CallbackSubscription(release)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Sync the initial status and attach both push channels.

        Neither step blocks the other. Failures are logged and leave the
        overlay in its current state.
        """
        logger.info("Starting overlay state machine")
        await asyncio.gather(self._sync_initial_status(), self._attach_subscriptions())
        if self._alive:
            logger.info(f"Overlay started: status={self.status.value}, "
                        f"{len(self._subscriptions)} channel(s) attached")

    def dispose(self) -> None:
        """Detach from the backend and stop timing. Safe to call more than once."""
        if not self._alive:
            return
        self._alive = False

        for subscription in self._subscriptions:
            try:
                subscription.dispose()
            except Exception as e:
                logger.warning(f"Error disposing subscription: {e}")
        self._subscriptions = []

        self._stop_ticker()
        self._listeners = []
        logger.info("Overlay state machine disposed")

    async def _sync_initial_status(self) -> None:
        events_before = self._status_events_seen
        try:
            payload = await self.backend.invoke(GET_STATUS)
        except Exception as e:
            if self._alive:
                self._synced = True
                logger.warning(f"Initial status sync failed, staying {self.status.value}: {e}")
            return

        if not self._alive:
            return
        self._synced = True

        if self._status_events_seen != events_before:
            logger.debug(f"Discarding initial status {payload!r}: newer status event already applied")
            return

        self.apply_status(payload)

    async def _attach_subscriptions(self) -> None:
        subscriptions = await asyncio.gather(
            self._attach(STATUS_CHANGED, self._on_status_changed),
            self._attach(TRANSCRIPTION_DELTA, self.apply_delta),
        )

        for subscription in subscriptions:
            if subscription is None:
                continue
            if self._alive:
                self._subscriptions.append(subscription)
            else:
                subscription.dispose()

    async def _attach(self, channel: str, handler: Callable[[Any], Any]) -> Optional[Subscription]:
        try:
            return await self.backend.subscribe(channel, handler)
        except Exception as e:
            logger.warning(f"Could not attach to {channel}, overlay stays passive: {e}")
            return None

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    def _on_status_changed(self, payload: Any) -> None:
        if not self._alive:
            return
        self._status_events_seen += 1
        self.apply_status(payload)

    def apply_status(self, payload: Any) -> bool:
        """Apply a status change.

        Args:
            payload: OverlayStatus or its string value

        Returns:
            True if the status was applied
        """
        if not self._alive:
            return False

        next_status = OverlayStatus.parse(payload)
        if next_status is None:
            logger.warning(f"Ignoring unknown status payload: {payload!r}")
            return False

        state = self._state
        previous = state.status
        state.status = next_status

        if next_status is OverlayStatus.LISTENING:
            if previous is not OverlayStatus.LISTENING:
                state.transcript_preview = ""
                state.recording_started_at = self._clock()
                state.elapsed_ms = 0
            elif state.recording_started_at is None:
                state.recording_started_at = self._clock()
                state.elapsed_ms = 0
        elif next_status is OverlayStatus.TRANSCRIBING:
            if state.recording_started_at is not None:
                state.elapsed_ms = self._elapsed_since(state.recording_started_at)
                state.recording_started_at = None
        else:
            state.transcript_preview = ""
            state.recording_started_at = None
            state.elapsed_ms = 0

        logger.debug(f"Status {previous.value} -> {next_status.value} (elapsed={state.elapsed_ms}ms)")
        self._sync_ticker()
        self._publish()
        return True

    def apply_delta(self, payload: Any) -> bool:
        """Append a transcription fragment to the preview if the status allows it.

        Returns:
            True if the fragment was appended
        """
        if not self._alive:
            return False

        if not isinstance(payload, str) or not payload:
            logger.debug(f"Discarding empty or malformed delta: {payload!r}")
            return False

        if not should_append(self._state.status):
            logger.debug(f"Discarding delta while {self._state.status.value}")
            return False

        self._state.transcript_preview += payload
        self._publish()
        return True

    def tick(self) -> bool:
        """Re-evaluate elapsed time while listening.

        Returns:
            True if elapsed time was updated
        """
        state = self._state
        if not self._alive or state.status is not OverlayStatus.LISTENING:
            return False
        if state.recording_started_at is None:
            return False

        state.elapsed_ms = self._elapsed_since(state.recording_started_at)
        self._publish()
        return True

    def _elapsed_since(self, started_at: float) -> int:
        return max(0, int(self._clock() - started_at))

    # ------------------------------------------------------------------
    # Ticker
    # ------------------------------------------------------------------

    def _sync_ticker(self) -> None:
        if self._alive and self._state.status is OverlayStatus.LISTENING:
            self._start_ticker()
        else:
            self._stop_ticker()

    def _start_ticker(self) -> None:
        if self.is_ticking:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: elapsed time only advances through explicit tick() calls
            return
        self._ticker = loop.create_task(self._run_ticker())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def _run_ticker(self) -> None:
        interval = self.tick_interval_ms / 1000.0
        while self._alive:
            await asyncio.sleep(interval)
            self.tick()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _build_snapshot(self) -> OverlaySnapshot:
        state = self._state
        return OverlaySnapshot(
            status=state.status,
            elapsed_label=format_elapsed(state.elapsed_ms),
            transcript_text=state.transcript_preview or placeholder_text(state.status),
            is_listening=state.status is OverlayStatus.LISTENING,
            is_transcribing=state.status is OverlayStatus.TRANSCRIBING,
            has_transcript=bool(state.transcript_preview),
        )

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener failed: {e}", exc_info=True)
