"""Terminal UI for the Dictaview overlay."""

from .overlay_screen import OverlayScreen

__all__ = ["OverlayScreen"]
