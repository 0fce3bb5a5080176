"""Time source shared by the playback services."""

import time
from collections.abc import Callable

Clock = Callable[[], float]


def system_clock() -> float:
    """Return the current wall-clock time in seconds since the epoch."""
    return time.time()
