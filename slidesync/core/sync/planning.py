"""
Sampling interval planning.

A fixed frame budget keeps the payload roughly the same size whatever the
video length. The two-second floor stops short videos from being sampled
more densely than seeking can resolve.
"""

import math

from .errors import InvalidDurationError

TARGET_FRAME_COUNT = 800
MIN_SAMPLING_INTERVAL = 2


def plan_sampling_interval(duration: float, target_frame_count: int = TARGET_FRAME_COUNT) -> int:
    """
    Return the whole-second spacing between sampled frames.

    Raises InvalidDurationError for non-finite or non-positive durations
    instead of returning an interval that would never advance.
    """
    if target_frame_count < 1:
        raise ValueError("target_frame_count must be positive")
    if not math.isfinite(duration) or duration <= 0:
        raise InvalidDurationError(duration)

    interval = math.floor(duration / target_frame_count)
    return max(MIN_SAMPLING_INTERVAL, interval)


def expected_frame_count(duration: float, interval: int) -> int:
    """Frames emitted for every sample time strictly before `duration`."""
    if interval < 1:
        raise ValueError("interval must be positive")
    return math.ceil(duration / interval)
