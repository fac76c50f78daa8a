"""Live recording overlay core."""

from .signal import condition_level, push_history, LEVEL_GAIN, LEVEL_EXPONENT
from .elapsed import format_elapsed, ELAPSED_TICK_MS
from .transcript import should_append, placeholder_text
from .state_machine import OverlayStateMachine, wall_clock_ms
from .levels import LevelMonitor

__all__ = [
    "condition_level",
    "push_history",
    "LEVEL_GAIN",
    "LEVEL_EXPONENT",
    "format_elapsed",
    "ELAPSED_TICK_MS",
    "should_append",
    "placeholder_text",
    "OverlayStateMachine",
    "wall_clock_ms",
    "LevelMonitor",
]
