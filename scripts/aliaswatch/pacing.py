"""Minimum-interval pacing for calls to a rate-limited API."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger("aliaswatch.pacing")


class RequestPacer:
    """Keeps consecutive requests at least ``min_interval`` seconds apart.

    The interval is measured from when the previous response arrived, so
    call ``mark()`` after every response and ``wait()`` before every request.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._next_allowed: Optional[float] = None

    def wait(self) -> float:
        """Block until the next request may be issued. Returns seconds slept."""
        if self._next_allowed is None:
            return 0.0
        delay = self._next_allowed - self._clock()
        if delay <= 0:
            return 0.0
        logger.debug("Pacing next request by %.2fs", delay)
        self._sleep(delay)
        return delay

    def mark(self, delay: Optional[float] = None) -> None:
        """Record a response; ``delay`` (e.g. a Retry-After) extends the gap."""
        gap = max(self.min_interval, delay or 0.0)
        self._next_allowed = self._clock() + gap
