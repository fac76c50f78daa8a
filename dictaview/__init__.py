"""Dictaview - live recording overlay for desktop dictation."""

__version__ = "0.1.0"
