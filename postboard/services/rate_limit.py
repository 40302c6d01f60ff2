"""
Per-key fixed-window rate limiting.

Each limiter class (general traffic, write actions, auth attempts) gets its own
SlidingWindowLimiter with its own window length and cap. Windows are counted
from the first request after the previous window ran out, so a burst that
straddles the boundary can see up to 2x cap in a short span. That is accepted.

State lives in process memory only and is lost on restart.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: Optional[float] = None


@dataclass
class RateWindow:
    key: str
    count: int
    window_start: float


class SlidingWindowLimiter:
    """Admit at most ``cap`` requests per key per ``window`` seconds."""

    def __init__(self, name: str, window: float, cap: int, clock: Clock = time.time):
        if cap < 1:
            raise ValueError("cap must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.name = name
        self.window = float(window)
        self.cap = int(cap)
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def admit(self, key: str) -> RateDecision:
        now = self._clock()
        with self._lock:
            win = self._windows.get(key)
            if win is None or now - win.window_start > self.window:
                self._windows[key] = RateWindow(key, 1, now)
                return RateDecision(True, self.cap - 1)

            if win.count >= self.cap:
                retry_after = win.window_start + self.window - now
                return RateDecision(False, 0, retry_after)

            win.count += 1
            return RateDecision(True, self.cap - win.count)

    def enforce(self, key: str) -> RateDecision:
        """Like admit(), but raise RateLimitExceeded on denial."""
        decision = self.admit(key)
        if not decision.allowed:
            logger.info("Rate limit %s hit for %s", self.name, key)
            raise RateLimitExceeded(self.name, decision.retry_after)
        return decision

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


class RateLimiters:
    """
    Named limiter classes built from config.

    ``classes`` maps a class name to ``{"window": seconds, "cap": n}``, e.g.
    ``{"write": {"window": 60, "cap": 20}}``.
    """

    def __init__(self, classes: Mapping[str, Mapping[str, float]], clock: Clock = time.time):
        self._limiters: Dict[str, SlidingWindowLimiter] = {
            name: SlidingWindowLimiter(name, spec["window"], int(spec["cap"]), clock)
            for name, spec in classes.items()
        }

    def __getitem__(self, limiter_class: str) -> SlidingWindowLimiter:
        return self._limiters[limiter_class]

    def __contains__(self, limiter_class: str) -> bool:
        return limiter_class in self._limiters

    def admit(self, limiter_class: str, key: str) -> RateDecision:
        return self._limiters[limiter_class].admit(key)

    def enforce(self, limiter_class: str, key: str) -> RateDecision:
        return self._limiters[limiter_class].enforce(key)
