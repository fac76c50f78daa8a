"""Overlay status model."""

from enum import Enum
from typing import Any, Optional


class OverlayStatus(Enum):
    """Current recording/transcription phase reported by the backend."""
    IDLE = "idle"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Any) -> Optional["OverlayStatus"]:
        """Coerce a backend payload into a status.

        Accepts an OverlayStatus or its string value (case-insensitive).

        Returns:
            The matching status, or None if the payload is not a known status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None
