"""Event models for scripted backend replay."""

from dataclasses import dataclass
from typing import Optional

from .status import OverlayStatus


@dataclass
class ReplayEvent:
    """A single scripted backend event.

    Exactly one of status, delta or level is set.
    """
    at_ms: int  # Offset from the start of the replay
    status: Optional[OverlayStatus] = None
    delta: Optional[str] = None
    level: Optional[float] = None

    @property
    def kind(self) -> str:
        if self.status is not None:
            return "status"
        if self.delta is not None:
            return "delta"
        return "level"
