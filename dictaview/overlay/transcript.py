"""Transcript preview policy.

Transcription deltas can arrive shortly after the status has moved away from an
active phase. Only listening and transcribing sessions accept fragments, so
stray text from a finished or failed session never reaches the preview.
"""

from ..models.status import OverlayStatus

_PLACEHOLDERS = {
    OverlayStatus.LISTENING: "Listening...",
    OverlayStatus.TRANSCRIBING: "Transcribing...",
}


def should_append(status: OverlayStatus) -> bool:
    """Whether a transcription delta should be appended in this status."""
    return status in (OverlayStatus.LISTENING, OverlayStatus.TRANSCRIBING)


def placeholder_text(status: OverlayStatus) -> str:
    """Caption shown while no transcript text has accumulated."""
    return _PLACEHOLDERS.get(status, "")
