"""UI-related data models."""

from dataclasses import dataclass

from .status import OverlayStatus


@dataclass(frozen=True)
class OverlaySnapshot:
    """Read-only projection of the overlay state for the render layer."""
    status: OverlayStatus
    elapsed_label: str
    transcript_text: str
    is_listening: bool
    is_transcribing: bool
    has_transcript: bool = False  # False while transcript_text is a placeholder
