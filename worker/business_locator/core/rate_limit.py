"""Minimum-interval throttle shared by everything that calls the geocoder."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


class MinIntervalThrottle:
    """Block callers so that consecutive calls are at least ``min_interval`` apart.

    ``wait()`` only spaces out the start of each call. Use ``slot()`` around
    the whole request when at most one may be in flight at a time.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._slot_lock = threading.Lock()
        self._last_call = None

    @contextmanager
    def slot(self) -> Iterator[float]:
        """Hold the single request slot: wait for the interval, then keep it until exit."""
        with self._slot_lock:
            yield self.wait()

    def wait(self) -> float:
        """Sleep until the next call is allowed; return the time slept."""
        with self._lock:
            waited = 0.0
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                remaining = self.min_interval - elapsed
                if remaining > 0:
                    logger.debug("Throttling geocoder call for %.3fs", remaining)
                    self._sleep(remaining)
                    waited = remaining
            self._last_call = self._clock()
            return waited
