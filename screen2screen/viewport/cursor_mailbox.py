"""Cursor feedback rate limiting and coalescing"""

import threading
import time
from typing import Callable, Optional

from screen2screen.common.types import CursorFeedback


class CursorMailbox:
    """
    Depth-1 slot between the feedback producer and the viewport consumer

    A new sample overwrites an unconsumed one; the consumer only ever sees the
    latest position. Safe to use from the network thread and the render
    thread at once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[CursorFeedback] = None
        self.overwritten_count: int = 0

    def put(self, feedback: CursorFeedback) -> None:
        """Store a sample, replacing any pending one"""
        with self._lock:
            if self._pending is not None:
                self.overwritten_count += 1
            self._pending = feedback

    def take(self) -> Optional[CursorFeedback]:
        """Remove and return the pending sample, or None"""
        with self._lock:
            feedback, self._pending = self._pending, None
        return feedback


class FeedbackThrottle:
    """
    Minimum-interval gate for host cursor feedback

    Samples arriving sooner than `interval` after the last accepted one are
    rejected; the next accepted sample carries the newer position anyway.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize throttle

        Args:
            interval: Minimum seconds between accepted samples
            clock: Monotonic time source
        """
        self.interval: float = interval
        self._clock = clock
        self._last_accepted: Optional[float] = None

    def sample_accept(self) -> bool:
        """
        Decide whether a sample may be sent now

        Returns:
            True when the interval has elapsed since the last accepted sample
        """
        now = self._clock()
        if self._last_accepted is not None and now - self._last_accepted < self.interval:
            return False
        self._last_accepted = now
        return True
