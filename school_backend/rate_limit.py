"""Fixed-window rate limiting keyed by client address.

Policies are declared with the ``limits`` notation used by slowapi
(``"100/15 minutes"``, ``"5/hour"``) and clients are keyed with slowapi's
``get_remote_address``. Counting happens in an explicit
:class:`RateWindowStore` owned by the application, with an injectable clock,
so tests can move time forward instead of sleeping.

Algorithm
---------
On each call, if no window exists for ``(policy, key)`` or the window has
expired, a new window starts with count 1. Otherwise the count is
incremented and the request is allowed while ``count <= max``. Windows start
at the first request, so a client can land up to ``2 * max`` requests around
a window boundary.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from limits import RateLimitItem, parse
from slowapi.util import get_remote_address
from starlette.requests import Request

from school_backend.config import Settings

log = logging.getLogger(__name__)

GENERAL = "general"
CONTACT = "contact"
LOGO = "logo"

GENERAL_MESSAGE = "Too many requests from this IP, please try again later."
CONTACT_MESSAGE = "Too many contact form submissions, please try again later."
DEFAULT_MESSAGE = "Too many requests, please try again later."

Clock = Callable[[], float]


@dataclass(frozen=True)
class RatePolicy:
    """A named limit: at most ``max_requests`` per ``window_seconds``."""
    name: str
    limit: RateLimitItem
    message: str = DEFAULT_MESSAGE

    @property
    def window_seconds(self) -> int:
        return self.limit.get_expiry()

    @property
    def max_requests(self) -> int:
        return self.limit.amount

    @classmethod
    def from_string(cls, name: str, limit_string: str, message: str = DEFAULT_MESSAGE) -> "RatePolicy":
        try:
            item = parse(limit_string)
        except ValueError as exc:
            raise ValueError(f"Invalid rate limit for '{name}': {limit_string!r}") from exc
        return cls(name=name, limit=item, message=message)


@dataclass
class RateWindow:
    start: float
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the current window ends

    @property
    def retry_after(self) -> int:
        return max(1, math.ceil(self.reset_after))


class RateWindowStore:
    """Mapping of ``(policy, client key)`` to the client's current window."""

    def __init__(self) -> None:
        self._windows: Dict[Tuple[str, str], RateWindow] = {}

    def get(self, policy: str, key: str) -> Optional[RateWindow]:
        return self._windows.get((policy, key))

    def put(self, policy: str, key: str, window: RateWindow) -> None:
        self._windows[(policy, key)] = window

    def purge(self, is_expired: Callable[[str, RateWindow], bool]) -> int:
        """Drop windows for which ``is_expired(policy, window)`` is true."""
        stale = [k for k, w in self._windows.items() if is_expired(k[0], w)]
        for k in stale:
            del self._windows[k]
        return len(stale)

    def clear(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


class FixedWindowRateLimiter:
    """Check-and-consume limiter over a set of named policies.

    Not thread-safe: all calls are expected from the event loop thread.
    """

    def __init__(
        self,
        policies: Iterable[RatePolicy],
        store: Optional[RateWindowStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.policies: Dict[str, RatePolicy] = {p.name: p for p in policies}
        if not self.policies:
            raise ValueError("At least one rate policy is required")
        self.store = store if store is not None else RateWindowStore()
        self.clock = clock or time.monotonic
        self._purge_interval = min(p.window_seconds for p in self.policies.values())
        self._last_purge = self.clock()

    def policy(self, name: str) -> RatePolicy:
        return self.policies[name]

    def _expired(self, policy_name: str, window: RateWindow, now: float) -> bool:
        return now >= window.start + self.policies[policy_name].window_seconds

    def _maybe_purge(self, now: float) -> None:
        if now - self._last_purge < self._purge_interval:
            return
        self._last_purge = now
        dropped = self.store.purge(lambda name, w: self._expired(name, w, now))
        if dropped:
            log.debug("Purged %d expired rate windows", dropped)

    def check_and_consume(self, policy_name: str, client_key: str) -> RateLimitDecision:
        """Count one request from ``client_key`` against ``policy_name``.

        Rejection is an ordinary outcome, reported through
        ``RateLimitDecision.allowed``; the caller decides how to answer.
        """
        policy = self.policies[policy_name]
        now = self.clock()
        self._maybe_purge(now)

        window = self.store.get(policy_name, client_key)
        if window is None or self._expired(policy_name, window, now):
            window = RateWindow(start=now, count=1)
            self.store.put(policy_name, client_key, window)
        else:
            window.count += 1

        limit = policy.max_requests
        return RateLimitDecision(
            allowed=window.count <= limit,
            limit=limit,
            remaining=max(0, limit - window.count),
            reset_after=window.start + policy.window_seconds - now,
        )

    def reset(self) -> None:
        self.store.clear()


def client_key(request: Request) -> str:
    """Rate-limit bucket for a request: the connection's peer address."""
    return get_remote_address(request)


def build_rate_limiter(settings: Settings, clock: Optional[Clock] = None) -> FixedWindowRateLimiter:
    """Create the limiter with the general, contact and logo policies."""
    policies = [
        RatePolicy.from_string(GENERAL, settings.rate_limit_general, GENERAL_MESSAGE),
        RatePolicy.from_string(CONTACT, settings.rate_limit_contact, CONTACT_MESSAGE),
        RatePolicy.from_string(LOGO, settings.rate_limit_logo, DEFAULT_MESSAGE),
    ]
    return FixedWindowRateLimiter(policies, clock=clock)


def rate_limit_headers(decision: RateLimitDecision) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


__all__ = [
    "GENERAL", "CONTACT", "LOGO",
    "RatePolicy", "RateWindow", "RateWindowStore", "RateLimitDecision",
    "FixedWindowRateLimiter", "build_rate_limiter", "client_key",
    "rate_limit_headers",
]
