"""
Fixed-delay throttle between provider requests.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class RequestThrottle:
    """
    Sleeps a fixed interval after each provider call attempt.
    """

    def __init__(
        self,
        *,
        delay_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep
        self.pauses = 0

    def pause(self) -> None:
        self.pauses += 1
        if self._delay_seconds > 0:
            self._sleep(self._delay_seconds)
