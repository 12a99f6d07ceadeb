"""Tests for the per-session sliding-window rate limiter."""
import pytest

from wardsafe.services.safety_service.config import RateLimitConfig
from wardsafe.services.safety_service.rate_limiter import RateLimiter


class FakeClock:
    """Millisecond clock advanced manually."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(RateLimitConfig(max_requests=15, window_ms=60000), clock=clock)


class TestAdmission:
    """Tests for ordinary admission."""

    def test_first_request_allowed(self, limiter):
        decision = limiter.check()

        assert decision.allowed is True
        assert decision.remaining == 14

    def test_sixteenth_request_rejected(self, limiter):
        for _ in range(15):
            assert limiter.check().allowed is True

        decision = limiter.check()

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.retry_after_seconds == 60

    def test_rejection_not_recorded(self, limiter):
        for _ in range(16):
            limiter.check()

        assert limiter.window_count() == 15

    def test_retry_after_counts_from_oldest(self, limiter, clock):
        for _ in range(15):
            limiter.check()
            clock.advance(1000)
        clock.advance(-1000)

        decision = limiter.check()

        # Oldest admission was 14s ago
        assert decision.allowed is False
        assert decision.retry_after_seconds == 46

    def test_retry_after_at_least_one_second(self, limiter, clock):
        for _ in range(15):
            limiter.check()
        clock.advance(59_999)

        assert limiter.check().retry_after_seconds == 1


class TestWindowExpiry:
    """Old timestamps leave the window."""

    def test_capacity_restored_after_window(self, limiter, clock):
        for _ in range(15):
            limiter.check()
        assert limiter.check().allowed is False

        clock.advance(60_001)

        decision = limiter.check()
        assert decision.allowed is True
        assert decision.remaining == 14

    def test_partial_expiry(self, limiter, clock):
        for _ in range(10):
            limiter.check()
        clock.advance(30_000)
        for _ in range(5):
            limiter.check()
        clock.advance(30_001)

        assert limiter.window_count() == 5

    def test_window_count_prunes(self, limiter, clock):
        limiter.check()
        clock.advance(60_001)

        assert limiter.window_count() == 0


class TestEmergencyBypass:
    """Emergency admissions bypass an exhausted window."""

    def test_bypass_when_exhausted(self, limiter):
        for _ in range(15):
            limiter.check()

        decision = limiter.check(emergency=True)

        assert decision.allowed is True
        assert decision.bypassed is True
        assert decision.remaining == 0
        assert limiter.window_count() == 16

    def test_bypass_disabled(self, clock):
        limiter = RateLimiter(
            RateLimitConfig(max_requests=1, emergency_bypass=False),
            clock=clock,
        )
        limiter.check()

        decision = limiter.check(emergency=True)

        assert decision.allowed is False
        assert decision.bypassed is False


class TestConfig:
    """Tests for RateLimitConfig validation."""

    def test_defaults(self):
        config = RateLimitConfig()

        assert config.max_requests == 15
        assert config.window_ms == 60000
        assert config.emergency_bypass is True

    @pytest.mark.parametrize("kwargs", [
        {"max_requests": 0},
        {"window_ms": -1},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RateLimitConfig(**kwargs)

    def test_decision_to_dict(self, limiter):
        data = limiter.check().to_dict()

        assert data == {
            "allowed": True,
            "remaining": 14,
            "retry_after_seconds": 0,
            "bypassed": False,
        }
