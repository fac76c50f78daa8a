"""Backend boundary for the overlay: interface, pub/sub bridge and replay."""

from .base import (
    AbstractOverlayBackend,
    OverlayBackendError,
    BackendError,
    SubscriptionError,
    Subscription,
    CallbackSubscription,
    STATUS_CHANGED,
    TRANSCRIPTION_DELTA,
    GET_STATUS,
    GET_AUDIO_LEVEL,
)
from .publisher import VoiceEventPublisher
from .pubsub_backend import PubSubOverlayBackend, PubSubSubscription
from .replay import ReplayDriver, load_script, parse_script

__all__ = [
    "AbstractOverlayBackend",
    "OverlayBackendError",
    "BackendError",
    "SubscriptionError",
    "Subscription",
    "CallbackSubscription",
    "STATUS_CHANGED",
    "TRANSCRIPTION_DELTA",
    "GET_STATUS",
    "GET_AUDIO_LEVEL",
    "VoiceEventPublisher",
    "PubSubOverlayBackend",
    "PubSubSubscription",
    "ReplayDriver",
    "load_script",
    "parse_script",
]
