"""Unit tests for the pypubsub overlay backend and its publisher."""

import asyncio
import threading

import pytest
from pubsub import pub

from dictaview.backend import (
    BackendError,
    PubSubOverlayBackend,
    SubscriptionError,
    VoiceEventPublisher,
    GET_AUDIO_LEVEL,
    GET_STATUS,
    STATUS_CHANGED,
    TRANSCRIPTION_DELTA,
)
from dictaview.models.status import OverlayStatus


@pytest.fixture
def publisher():
    return VoiceEventPublisher("voice")


@pytest.fixture
def backend(publisher):
    return PubSubOverlayBackend(publisher)


@pytest.mark.unit
class TestVoiceEventPublisher:
    """Test cases for VoiceEventPublisher."""

    def test_topics_use_prefix(self, publisher):
        assert publisher.status_topic == "voice.status_changed"
        assert publisher.delta_topic == "voice.transcription_delta"

    def test_tracks_current_status(self, publisher):
        assert publisher.current_status is OverlayStatus.IDLE

        publisher.publish_status("listening")

        assert publisher.current_status is OverlayStatus.LISTENING

    def test_rejects_unknown_status(self, publisher):
        with pytest.raises(ValueError):
            publisher.publish_status("recording")
        assert publisher.current_status is OverlayStatus.IDLE

    def test_sends_pubsub_messages(self, publisher):
        received = []

        def on_status(status):
            received.append(status)

        pub.subscribe(on_status, publisher.status_topic)
        publisher.publish_status(OverlayStatus.TRANSCRIBING)

        assert received == [OverlayStatus.TRANSCRIBING]

    def test_records_latest_level(self, publisher):
        publisher.publish_level(0.12)
        assert publisher.latest_level == 0.12


@pytest.mark.unit
class TestPubSubOverlayBackend:
    """Test cases for PubSubOverlayBackend."""

    def test_get_status_reflects_publisher(self, publisher, backend):
        publisher.publish_status("transcribing")

        assert asyncio.run(backend.invoke(GET_STATUS)) is OverlayStatus.TRANSCRIBING

    def test_get_audio_level(self, publisher, backend):
        publisher.publish_level(0.07)

        assert asyncio.run(backend.invoke(GET_AUDIO_LEVEL)) == 0.07

    def test_unknown_command_raises(self, backend):
        with pytest.raises(BackendError):
            asyncio.run(backend.invoke("start_recording"))

    def test_failing_command_is_wrapped(self, backend):
        def broken():
            raise RuntimeError("device lost")

        backend.register_command("get_microphones", broken)

        with pytest.raises(BackendError, match="device lost"):
            asyncio.run(backend.invoke("get_microphones"))

    def test_async_command_with_arguments(self, backend):
        async def echo(text):
            return text.upper()

        backend.register_command("echo", echo)

        assert asyncio.run(backend.invoke("echo", text="hi")) == "HI"

    def test_subscribers_receive_events_in_order(self, publisher, backend):
        statuses, deltas = [], []

        async def scenario():
            status_sub = await backend.subscribe(STATUS_CHANGED, statuses.append)
            delta_sub = await backend.subscribe(TRANSCRIPTION_DELTA, deltas.append)
            publisher.publish_status("listening")
            publisher.publish_delta("one ")
            publisher.publish_delta("")
            publisher.publish_delta("two")
            status_sub.dispose()
            delta_sub.dispose()

        asyncio.run(scenario())

        assert statuses == [OverlayStatus.LISTENING]
        assert deltas == ["one ", "", "two"]

    def test_dispose_stops_delivery_and_is_idempotent(self, publisher, backend):
        deltas = []

        async def scenario():
            subscription = await backend.subscribe(TRANSCRIPTION_DELTA, deltas.append)
            publisher.publish_delta("kept")
            subscription.dispose()
            subscription.dispose()
            publisher.publish_delta("dropped")
            return subscription

        subscription = asyncio.run(scenario())

        assert deltas == ["kept"]
        assert subscription.active is False

    def test_unknown_channel_raises(self, backend):
        async def scenario():
            await backend.subscribe("audio_level", print)

        with pytest.raises(SubscriptionError):
            asyncio.run(scenario())

    def test_foreign_thread_events_run_on_subscriber_loop(self, publisher, backend):
        delivered_on = []

        def handler(delta):
            delivered_on.append((delta, threading.get_ident()))

        async def scenario():
            loop_thread = threading.get_ident()
            subscription = await backend.subscribe(TRANSCRIPTION_DELTA, handler)

            worker = threading.Thread(
                target=lambda: [publisher.publish_delta(str(i)) for i in range(5)])
            worker.start()
            worker.join()
            for _ in range(100):
                if len(delivered_on) == 5:
                    break
                await asyncio.sleep(0.01)
            subscription.dispose()
            return loop_thread

        loop_thread = asyncio.run(scenario())

        assert [delta for delta, _ in delivered_on] == ["0", "1", "2", "3", "4"]
        assert all(ident == loop_thread for _, ident in delivered_on)
