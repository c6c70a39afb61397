"""
Rate limiter tests driven by a fake clock.
"""

import pytest

from unified_payments.middleware.security import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRateLimiter:

    def test_allows_up_to_limit(self, clock):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=clock)

        decisions = [limiter.hit("key") for _ in range(3)]

        assert all(decision.allowed for decision in decisions)
        assert [decision.remaining for decision in decisions] == [2, 1, 0]

    def test_rejects_request_over_limit(self, clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.hit("key")
        limiter.hit("key")

        clock.advance(10.5)
        decision = limiter.hit("key")

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.retry_after == 50

    def test_retry_after_is_at_least_one_second(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("key")

        clock.advance(59.9)
        decision = limiter.hit("key")

        assert decision.allowed is False
        assert decision.retry_after == 1

    def test_window_resets_after_expiry(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.hit("key")
        assert limiter.hit("key").allowed is False

        clock.advance(61)
        decision = limiter.hit("key")

        assert decision.allowed is True
        assert decision.remaining == 0

    def test_keys_are_counted_separately(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.hit("first").allowed is True
        assert limiter.hit("second").allowed is True
        assert limiter.hit("first").allowed is False

    def test_expired_keys_are_pruned_when_full(self, clock):
        limiter = RateLimiter(max_requests=5, window_seconds=10, clock=clock, max_tracked_keys=2)
        limiter.hit("a")
        limiter.hit("b")

        clock.advance(11)
        limiter.hit("c")

        assert set(limiter._counters) == {"c"}

    def test_tracked_keys_stay_bounded(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock, max_tracked_keys=3)

        for index in range(50):
            clock.advance(0.1)
            limiter.hit(f"client-{index}")

        assert len(limiter._counters) == 3
        assert set(limiter._counters) == {"client-47", "client-48", "client-49"}

    def test_live_entry_closest_to_reset_is_evicted(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock, max_tracked_keys=2)
        limiter.hit("oldest")
        clock.advance(5)
        limiter.hit("newer")
        clock.advance(5)

        limiter.hit("incoming")

        assert set(limiter._counters) == {"newer", "incoming"}
        assert limiter.hit("newer").allowed is False
