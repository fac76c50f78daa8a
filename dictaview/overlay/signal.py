"""Audio level conditioning for the overlay's level visualization.

Raw backend levels for normal speech are usually within 0.0-0.2. A fixed gain
brings typical speech into a usable visual range while loud input still
saturates at 1, and a power curve keeps quiet speech distinguishable from
silence.
"""

import math
from typing import List, Sequence

LEVEL_GAIN = 2.5
LEVEL_EXPONENT = 0.7


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def condition_level(raw: float) -> float:
    """Convert a raw audio level sample into a perceptually scaled value.

    Args:
        raw: Unitless level reported by the backend

    Returns:
        Conditioned level in [0, 1]; non-finite input maps to 0
    """
    if not _is_finite_number(raw):
        return 0.0

    gained = min(1.0, _clamp01(raw) * LEVEL_GAIN)
    return gained ** LEVEL_EXPONENT


def history_capacity(max_length) -> int:
    """Usable window size: floored, at least 1, and 1 for non-finite input."""
    if not _is_finite_number(max_length):
        return 1
    return max(1, math.floor(max_length))


def push_history(history: Sequence[float], value: float, max_length: int) -> List[float]:
    """Append a level to a fixed-length rolling window.

    The returned list is always exactly max_length long (oldest first) and is
    left-padded with silence while fewer samples are available. The input
    sequence is not modified.

    Args:
        history: Previous window, oldest first
        value: New level; clamped to [0, 1], non-finite coerced to 0
        max_length: Window capacity; floored and bounded below at 1, non-finite
            treated as 1

    Returns:
        New window
    """
    bounded_length = history_capacity(max_length)
    safe_value = _clamp01(value) if _is_finite_number(value) else 0.0

    keep = bounded_length - 1
    window = list(history[-keep:]) if keep > 0 else []
    window.append(safe_value)

    padding = bounded_length - len(window)
    if padding > 0:
        window = [0.0] * padding + window
    return window
