"""Unit tests for LevelMonitor."""

import asyncio

import pytest

from dictaview.backend.base import BackendError
from dictaview.models.status import OverlayStatus
from dictaview.overlay.levels import LevelMonitor
from dictaview.overlay.signal import condition_level


class StatusBox:
    """Mutable status source."""

    def __init__(self, status=OverlayStatus.IDLE):
        self.status = status

    def __call__(self):
        return self.status


@pytest.fixture
def status_box():
    return StatusBox()


@pytest.fixture
def monitor(fake_backend, status_box):
    monitor = LevelMonitor(fake_backend, status_box, history_length=4, poll_interval_ms=5)
    yield monitor
    monitor.stop()


@pytest.mark.unit
class TestLevelMonitor:
    """Test cases for LevelMonitor."""

    def test_history_starts_silent(self, monitor):
        assert monitor.history == [0.0, 0.0, 0.0, 0.0]

    def test_sample_conditions_and_rolls(self, monitor):
        monitor.sample(0.4)
        monitor.sample(0.1)

        assert monitor.history == [0.0, 0.0, 1.0, condition_level(0.1)]

    def test_sample_coerces_invalid_levels(self, monitor):
        monitor.sample(float("nan"))
        monitor.sample(None)

        assert monitor.history == [0.0, 0.0, 0.0, 0.0]

    def test_history_length_bounded_below(self, fake_backend, status_box):
        monitor = LevelMonitor(fake_backend, status_box, history_length=0)

        monitor.sample(0.4)

        assert monitor.history == [1.0]

    @pytest.mark.parametrize("length", [float("nan"), float("inf"), None])
    def test_non_finite_history_length_falls_back_to_one(self, fake_backend, status_box, length):
        monitor = LevelMonitor(fake_backend, status_box, history_length=length)

        assert monitor.history_length == 1
        assert monitor.history == [0.0]

    def test_listeners_receive_copies(self, monitor):
        seen = []
        monitor.add_listener(seen.append)

        monitor.sample(0.4)
        seen[0].append(99)

        assert monitor.history == [0.0, 0.0, 0.0, 1.0]

    def test_poll_skipped_when_not_listening(self, monitor, fake_backend):
        assert asyncio.run(monitor.poll_once()) is False
        assert fake_backend.invocations == []

    def test_poll_records_backend_level(self, monitor, fake_backend, status_box):
        status_box.status = OverlayStatus.LISTENING
        fake_backend.level = 0.4

        assert asyncio.run(monitor.poll_once()) is True
        assert monitor.history[-1] == 1.0

    def test_failed_poll_is_skipped(self, monitor, fake_backend, status_box):
        status_box.status = OverlayStatus.LISTENING
        fake_backend.level_error = BackendError("no device")

        assert asyncio.run(monitor.poll_once()) is False
        assert monitor.history == [0.0, 0.0, 0.0, 0.0]

    def test_history_resets_once_after_listening(self, monitor, fake_backend, status_box):
        seen = []
        status_box.status = OverlayStatus.LISTENING
        fake_backend.level = 0.2
        asyncio.run(monitor.poll_once())
        monitor.add_listener(seen.append)

        status_box.status = OverlayStatus.TRANSCRIBING
        asyncio.run(monitor.poll_once())
        asyncio.run(monitor.poll_once())

        assert monitor.history == [0.0, 0.0, 0.0, 0.0]
        assert len(seen) == 1

    def test_start_polls_until_stopped(self, monitor, fake_backend, status_box):
        status_box.status = OverlayStatus.LISTENING
        fake_backend.level = 0.1

        async def scenario():
            monitor.start()
            monitor.start()
            assert monitor.is_running
            await asyncio.sleep(0.05)
            monitor.stop()
            monitor.stop()
            assert not monitor.is_running
            return len(fake_backend.invocations)

        polls = asyncio.run(scenario())

        assert polls >= 2
        assert monitor.history[-1] == condition_level(0.1)
