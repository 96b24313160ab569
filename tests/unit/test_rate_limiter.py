"""Unit tests for the keyed RateLimiter."""

import threading

import pytest
from limits.storage import MemoryStorage, storage_from_string

from services.limits import Limits
from services.rate_limiter import RateLimiter, RateLimitPolicy

FIVE_PER_MINUTE = RateLimitPolicy("test", points=5, window_seconds=60, block_seconds=300)
NO_BLOCK = RateLimitPolicy("soft", points=2, window_seconds=60)


class TestConsume:
    def test_allows_up_to_points(self, limiter):
        results = [limiter.consume(FIVE_PER_MINUTE, "1.2.3.4") for _ in range(5)]
        assert all(r.allowed for r in results)
        assert [r.remaining_points for r in results] == [4, 3, 2, 1, 0]

    def test_overdraw_blocks_for_block_seconds(self, limiter):
        for _ in range(5):
            limiter.consume(FIVE_PER_MINUTE, "k")
        result = limiter.consume(FIVE_PER_MINUTE, "k")
        assert not result.allowed
        assert result.retry_after_seconds == 300

    def test_blocked_key_rejected_until_block_ends(self, limiter, clock):
        for _ in range(6):
            limiter.consume(FIVE_PER_MINUTE, "k")
        # Window has long reset, but the block still holds
        clock.advance(seconds=120)
        blocked = limiter.consume(FIVE_PER_MINUTE, "k")
        assert not blocked.allowed
        assert blocked.retry_after_seconds == 180

        clock.advance(seconds=180)
        assert limiter.consume(FIVE_PER_MINUTE, "k").allowed

    def test_block_served_starts_fresh_window(self, limiter, clock):
        for _ in range(6):
            limiter.consume(FIVE_PER_MINUTE, "k")
        clock.advance(seconds=301)
        results = [limiter.consume(FIVE_PER_MINUTE, "k") for _ in range(5)]
        assert all(r.allowed for r in results)

    def test_window_reset_restores_points(self, limiter, clock):
        for _ in range(5):
            limiter.consume(FIVE_PER_MINUTE, "k")
        clock.advance(seconds=60)
        assert limiter.consume(FIVE_PER_MINUTE, "k").remaining_points == 4

    def test_without_block_reports_window_remainder(self, limiter, clock):
        limiter.consume(NO_BLOCK, "k")
        limiter.consume(NO_BLOCK, "k")
        clock.advance(seconds=15)
        result = limiter.consume(NO_BLOCK, "k")
        assert not result.allowed
        assert result.retry_after_seconds == 45
        clock.advance(seconds=45)
        assert limiter.consume(NO_BLOCK, "k").allowed

    def test_keys_are_independent(self, limiter):
        for _ in range(6):
            limiter.consume(FIVE_PER_MINUTE, "a")
        assert limiter.consume(FIVE_PER_MINUTE, "b").allowed

    def test_policies_are_independent(self, limiter):
        for _ in range(6):
            limiter.consume(FIVE_PER_MINUTE, "k")
        assert limiter.consume(NO_BLOCK, "k").allowed

    def test_cost_counts_multiple_points(self, limiter):
        assert limiter.consume(FIVE_PER_MINUTE, "k", cost=5).allowed
        assert not limiter.consume(FIVE_PER_MINUTE, "k").allowed

    def test_block_marker_does_not_collide_with_window(self, limiter, clock):
        single = RateLimitPolicy("single", points=1, window_seconds=60, block_seconds=60)
        assert limiter.consume(single, "k").allowed
        blocked = limiter.consume(single, "k")
        assert not blocked.allowed
        assert blocked.retry_after_seconds == 60
        clock.advance(seconds=60)
        assert limiter.consume(single, "k").allowed


@pytest.mark.usefixtures("limiter")
class TestSharedStorage:
    def test_limiters_on_one_storage_share_counts(self, clock):
        storage = MemoryStorage()
        first = RateLimiter(storage, clock=clock)
        second = RateLimiter(storage, clock=clock)
        for _ in range(5):
            first.consume(FIVE_PER_MINUTE, "k")
        assert not second.consume(FIVE_PER_MINUTE, "k").allowed
        assert not first.consume(FIVE_PER_MINUTE, "k").allowed

    def test_storage_from_uri(self, clock):
        shared = RateLimiter(storage_from_string("memory://"), clock=clock)
        assert shared.consume(NO_BLOCK, "k").remaining_points == 1


def test_concurrent_consumers_never_exceed_points(limiter):
    policy = RateLimitPolicy("burst", points=50, window_seconds=60, block_seconds=60)
    allowed = []
    guard = threading.Lock()

    def worker():
        for _ in range(20):
            if limiter.consume(policy, "shared").allowed:
                with guard:
                    allowed.append(1)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(allowed) == 50


@pytest.mark.parametrize(
    "policy, points, window, block",
    [
        (Limits.LOGIN_IP, 20, 300, 300),
        (Limits.REGISTER_IP, 10, 1800, 300),
        (Limits.OTP_IP, 5, 600, 300),
        (Limits.OTP_SEND, 3, 900, 0),
        (Limits.OTP_DELIVERY, 5, 600, 1800),
        (Limits.FORGOT_PASSWORD, 8, 1800, 1800),
    ],
    ids=lambda v: v.name if isinstance(v, RateLimitPolicy) else None,
)
def test_policy_table(policy, points, window, block):
    assert (policy.points, policy.window_seconds, policy.block_seconds) == (points, window, block)
