"""
Clock utilities for freshness bookkeeping.
"""
import time
from typing import Callable

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """
    Current monotonic time in milliseconds.
    """
    return time.monotonic() * 1000.0
