"""Overlay session data models."""

from dataclasses import dataclass
from typing import Optional

from .status import OverlayStatus


@dataclass
class OverlaySessionState:
    """Mutable state owned by a single OverlayStateMachine."""
    status: OverlayStatus = OverlayStatus.IDLE
    elapsed_ms: int = 0
    transcript_preview: str = ""
    recording_started_at: Optional[float] = None  # ms, set only while timing

    @property
    def is_timing(self) -> bool:
        return self.recording_started_at is not None
