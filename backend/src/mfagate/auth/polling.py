"""Poll interval schedule for push challenges."""

from __future__ import annotations

from typing import Sequence


def clamp_counter(intervals: Sequence[int], counter: int) -> int:
    """Clamp ``counter`` to the last index of ``intervals``."""
    if not intervals:
        raise ValueError("Polling interval schedule must not be empty")
    if counter < 0:
        raise ValueError("Auth counter must not be negative")
    return min(counter, len(intervals) - 1)


def poll_interval(intervals: Sequence[int], counter: int) -> int:
    """Seconds the client should wait before the next poll.

    Once the counter passes the end of the schedule the last interval
    repeats.

    Examples:
        >>> poll_interval([1, 2, 5, 10], 2)
        5
        >>> poll_interval([1, 2, 5, 10], 9)
        10
    """
    return intervals[clamp_counter(intervals, counter)]
