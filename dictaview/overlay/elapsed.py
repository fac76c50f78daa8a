"""Elapsed recording time formatting."""

import math

# Cadence at which the overlay re-evaluates elapsed time while listening
ELAPSED_TICK_MS = 100


def format_elapsed(elapsed_ms: float) -> str:
    """Format a duration in milliseconds as MM:SS.

    Minutes are not wrapped at 60. Non-finite or negative input is treated as 0.
    """
    if isinstance(elapsed_ms, bool) or not isinstance(elapsed_ms, (int, float)):
        safe_ms = 0
    elif not math.isfinite(elapsed_ms):
        safe_ms = 0
    else:
        safe_ms = max(0, math.floor(elapsed_ms))

    total_seconds = safe_ms // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
