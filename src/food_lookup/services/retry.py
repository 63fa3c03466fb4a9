"""Retry policy and fetch lifecycle states."""

from dataclasses import dataclass
from enum import StrEnum

from food_lookup.domain.errors import FoodLookupError, RateLimitedError


class FetchState(StrEnum):
    """Lifecycle of one deduplicated fetch."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    BLOCKED = "blocked"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of classifying one failed attempt."""

    retry: bool
    delay_seconds: float = 0.0
    next_state: FetchState = FetchState.FAILED


_GIVE_UP = RetryDecision(retry=False, next_state=FetchState.FAILED)
_EXHAUSTED = RetryDecision(retry=False, next_state=FetchState.EXHAUSTED)


@dataclass(frozen=True)
class RetryPolicy:
    """Decide whether and when a failed search is re-issued.

    Rate-limited attempts wait for the server hint (or a default delay); 5xx and
    network failures use a linear backoff. Everything else is terminal.
    """

    max_retries: int = 2
    base_delay_seconds: float = 0.5
    rate_limit_default_delay_seconds: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def decide(self, error: FoodLookupError, attempt: int) -> RetryDecision:
        """Classify a failure raised on the 0-based ``attempt``."""
        if not error.retryable:
            return _GIVE_UP
        if attempt >= self.max_retries:
            return _EXHAUSTED
        if isinstance(error, RateLimitedError):
            delay = error.retry_after
            if delay is None:
                delay = self.rate_limit_default_delay_seconds
            return RetryDecision(
                retry=True, delay_seconds=delay, next_state=FetchState.BLOCKED
            )
        return RetryDecision(
            retry=True,
            delay_seconds=(attempt + 1) * self.base_delay_seconds,
            next_state=FetchState.BACKING_OFF,
        )
