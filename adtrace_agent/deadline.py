from __future__ import annotations

import math
import time
from typing import Callable


class Deadline:
    """Run-scoped wall-clock budget.

    A ``timeout_ms`` of 0 means unbounded: ``remaining()`` is infinite and
    ``past_buffer()`` never trips. Stages ask ``past_buffer(n)`` before starting
    work that needs roughly ``n`` milliseconds.
    """

    def __init__(self, timeout_ms: int, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started = clock()
        self.timeout_ms = max(0, int(timeout_ms))

    @property
    def bounded(self) -> bool:
        return self.timeout_ms > 0

    def elapsed_ms(self) -> float:
        return (self._clock() - self._started) * 1000

    def elapsed_s(self) -> float:
        return self.elapsed_ms() / 1000

    def remaining(self) -> float:
        if not self.bounded:
            return math.inf
        return max(0.0, self.timeout_ms - self.elapsed_ms())

    def past_buffer(self, buffer_ms: int) -> bool:
        if not self.bounded:
            return False
        return self.remaining() < buffer_ms

    def cap(self, timeout_s: float) -> float:
        """Clamp a per-call timeout so it never outlives the run."""
        if not self.bounded:
            return timeout_s
        return max(0.5, min(timeout_s, self.remaining() / 1000))
