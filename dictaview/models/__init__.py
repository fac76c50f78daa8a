"""Data models for the Dictaview overlay."""

from .status import OverlayStatus
from .session import OverlaySessionState
from .ui import OverlaySnapshot
from .events import ReplayEvent

__all__ = [
    "OverlayStatus",
    "OverlaySessionState",
    "OverlaySnapshot",
    "ReplayEvent",
]
