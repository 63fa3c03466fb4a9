"""Process-wide throttling state shared by every search."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)


@dataclass
class RateLimitGuard:
    """Tracks a single "blocked until" deadline set by HTTP 429 responses.

    A 429 on any query blocks every query until the window elapses.
    """

    default_delay_seconds: float = 2.0
    clock: Callable[[], float] = time.monotonic
    _blocked_until: float | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def check_allowed(self) -> float | None:
        """Return None when requests may proceed, else seconds left in the block."""
        with self._lock:
            if self._blocked_until is None:
                return None
            remaining = self._blocked_until - self.clock()
            if remaining <= 0:
                self._blocked_until = None
                return None
            return remaining

    def record_rate_limited(self, retry_after: float | None = None) -> float:
        """Start (or extend) the block window and return the time left in it.

        A shorter ``retry_after`` never cuts an existing block, so the result
        can be longer than the requested delay.
        """
        delay = self.default_delay_seconds if retry_after is None else retry_after
        with self._lock:
            now = self.clock()
            blocked_until = now + delay
            if self._blocked_until is None or blocked_until > self._blocked_until:
                self._blocked_until = blocked_until
            remaining = self._blocked_until - now
        _logger.warning(
            "Search API rate limited; blocking requests for %.2fs", remaining
        )
        return remaining

    @property
    def blocked_until(self) -> float | None:
        with self._lock:
            return self._blocked_until
