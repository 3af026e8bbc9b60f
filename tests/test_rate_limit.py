"""Tests for school_backend.rate_limit: fixed windows driven by a fake clock."""
from __future__ import annotations

import pytest

from school_backend.config import Settings
from school_backend.rate_limit import (
    CONTACT,
    GENERAL,
    LOGO,
    FixedWindowRateLimiter,
    RatePolicy,
    RateWindowStore,
    build_rate_limiter,
)


def _limiter(clock, *specs):
    policies = [RatePolicy.from_string(name, limit_string) for name, limit_string in specs]
    return FixedWindowRateLimiter(policies, clock=clock)


# =====================================================================
# Policy parsing
# =====================================================================

class TestRatePolicy:

    def test_parses_multi_unit_window(self):
        policy = RatePolicy.from_string(GENERAL, "100/15 minutes")
        assert policy.window_seconds == 15 * 60
        assert policy.max_requests == 100

    def test_parses_single_unit_window(self):
        policy = RatePolicy.from_string(CONTACT, "5/hour")
        assert policy.window_seconds == 3600
        assert policy.max_requests == 5

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            RatePolicy.from_string(LOGO, "lots please")

    def test_default_policies(self):
        limiter = build_rate_limiter(Settings())
        assert limiter.policy(GENERAL).max_requests == 100
        assert limiter.policy(GENERAL).window_seconds == 900
        assert limiter.policy(CONTACT).max_requests == 5
        assert limiter.policy(CONTACT).window_seconds == 3600
        assert limiter.policy(LOGO).max_requests == 10
        assert limiter.policy(LOGO).window_seconds == 3600

    def test_policy_messages(self):
        limiter = build_rate_limiter(Settings())
        assert limiter.policy(GENERAL).message == "Too many requests from this IP, please try again later."
        assert limiter.policy(CONTACT).message == "Too many contact form submissions, please try again later."
        assert limiter.policy(LOGO).message == "Too many requests, please try again later."

    def test_empty_policy_list_rejected(self):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter([])


# =====================================================================
# Fixed-window counting
# =====================================================================

class TestCheckAndConsume:

    def test_max_requests_allowed_then_rejected(self, clock):
        limiter = _limiter(clock, (CONTACT, "5/hour"))
        results = [limiter.check_and_consume(CONTACT, "1.2.3.4").allowed for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_window_resets_after_duration(self, clock):
        limiter = _limiter(clock, (CONTACT, "5/hour"))
        for _ in range(6):
            limiter.check_and_consume(CONTACT, "1.2.3.4")

        clock.advance(3599)
        assert limiter.check_and_consume(CONTACT, "1.2.3.4").allowed is False

        clock.advance(1)
        decision = limiter.check_and_consume(CONTACT, "1.2.3.4")
        assert decision.allowed is True
        assert decision.remaining == 4

    def test_window_starts_at_first_request(self, clock):
        limiter = _limiter(clock, (LOGO, "2/minute"))
        limiter.check_and_consume(LOGO, "k")
        clock.advance(30)
        limiter.check_and_consume(LOGO, "k")
        # 60s after the first request, not the second
        clock.advance(30)
        assert limiter.check_and_consume(LOGO, "k").allowed is True

    def test_boundary_burst_is_allowed(self, clock):
        """Fixed windows let 2x max through around a window edge."""
        limiter = _limiter(clock, (LOGO, "3/minute"))
        limiter.check_and_consume(LOGO, "k")
        clock.advance(59)
        assert limiter.check_and_consume(LOGO, "k").allowed
        assert limiter.check_and_consume(LOGO, "k").allowed
        clock.advance(1)
        allowed = [limiter.check_and_consume(LOGO, "k").allowed for _ in range(3)]
        assert allowed == [True, True, True]

    def test_client_keys_are_independent(self, clock):
        limiter = _limiter(clock, (CONTACT, "1/hour"))
        assert limiter.check_and_consume(CONTACT, "a").allowed
        assert not limiter.check_and_consume(CONTACT, "a").allowed
        assert limiter.check_and_consume(CONTACT, "b").allowed

    def test_policies_are_independent(self, clock):
        limiter = _limiter(clock, (CONTACT, "1/hour"), (LOGO, "1/hour"))
        assert limiter.check_and_consume(CONTACT, "a").allowed
        assert limiter.check_and_consume(LOGO, "a").allowed
        assert not limiter.check_and_consume(CONTACT, "a").allowed

    def test_rejection_does_not_raise(self, clock):
        limiter = _limiter(clock, (CONTACT, "1/hour"))
        limiter.check_and_consume(CONTACT, "a")
        decision = limiter.check_and_consume(CONTACT, "a")
        assert decision.allowed is False
        assert decision.remaining == 0

    def test_decision_reports_reset_and_retry_after(self, clock):
        limiter = _limiter(clock, (CONTACT, "5/hour"))
        first = limiter.check_and_consume(CONTACT, "a")
        assert first.limit == 5
        assert first.remaining == 4
        assert first.reset_after == pytest.approx(3600)

        clock.advance(10.5)
        second = limiter.check_and_consume(CONTACT, "a")
        assert second.reset_after == pytest.approx(3589.5)
        assert second.retry_after == 3590

    def test_reset_clears_all_windows(self, clock):
        limiter = _limiter(clock, (CONTACT, "1/hour"))
        limiter.check_and_consume(CONTACT, "a")
        limiter.reset()
        assert limiter.check_and_consume(CONTACT, "a").allowed


# =====================================================================
# Store housekeeping
# =====================================================================

class TestRateWindowStore:

    def test_expired_windows_are_purged(self, clock):
        store = RateWindowStore()
        limiter = FixedWindowRateLimiter(
            [RatePolicy.from_string(GENERAL, "100/15 minutes"),
             RatePolicy.from_string(CONTACT, "5/hour")],
            store=store,
            clock=clock,
        )
        limiter.check_and_consume(CONTACT, "a")
        limiter.check_and_consume(GENERAL, "a")
        assert len(store) == 2

        clock.advance(3600)
        limiter.check_and_consume(GENERAL, "b")
        # both of "a"'s windows expired and were dropped
        assert len(store) == 1
        assert store.get(GENERAL, "b") is not None

    def test_live_windows_survive_purge(self, clock):
        store = RateWindowStore()
        limiter = FixedWindowRateLimiter(
            [RatePolicy.from_string(GENERAL, "100/15 minutes"),
             RatePolicy.from_string(CONTACT, "5/hour")],
            store=store,
            clock=clock,
        )
        limiter.check_and_consume(CONTACT, "a")
        clock.advance(900)
        limiter.check_and_consume(GENERAL, "b")
        assert store.get(CONTACT, "a").count == 1
