"""Tests for the rate-limit guard."""

from food_lookup.services.rate_limit import RateLimitGuard
from tests.conftest import FakeClock


def test_guard_allows_until_rate_limited() -> None:
    clock = FakeClock()
    guard = RateLimitGuard(clock=clock)

    assert guard.check_allowed() is None
    assert guard.record_rate_limited(5.0) == 5.0
    assert guard.check_allowed() == 5.0

    clock.now = 3.0
    assert guard.check_allowed() == 2.0

    clock.now = 5.0
    assert guard.check_allowed() is None
    assert guard.blocked_until is None


def test_guard_uses_default_delay_without_hint() -> None:
    clock = FakeClock(now=10.0)
    guard = RateLimitGuard(default_delay_seconds=2.0, clock=clock)

    assert guard.record_rate_limited() == 2.0
    assert guard.blocked_until == 12.0


def test_guard_never_shortens_a_block() -> None:
    clock = FakeClock()
    guard = RateLimitGuard(clock=clock)

    guard.record_rate_limited(30.0)
    guard.record_rate_limited(1.0)

    assert guard.blocked_until == 30.0


def test_guard_reports_the_longer_window_it_keeps() -> None:
    clock = FakeClock()
    guard = RateLimitGuard(clock=clock)

    assert guard.record_rate_limited(10.0) == 10.0
    assert guard.record_rate_limited(1.0) == 10.0

    clock.now = 4.0
    assert guard.record_rate_limited(1.0) == 6.0
    assert guard.blocked_until == 10.0
