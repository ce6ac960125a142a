"""
Per-caller admission control for the Wordle Royale resolver.

Each caller (client IP) may make at most `max_requests` admitted requests
in any trailing `window_seconds` interval. Rejected requests are not
recorded, so a caller that backs off regains capacity as soon as its oldest
admitted request leaves the window. The limiter knows nothing about games.
"""

import time
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional


@dataclass
class RateLimitResult:
    """Admission decision for one request."""
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None


class RateLimiter:
    """
    Sliding window limiter keyed by caller id.

    Admission timestamps are kept oldest-first per caller; a single lock
    covers every caller's queue.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            max_requests: Admitted requests allowed per caller per window
            window_seconds: Length of the trailing window
            clock: Time source in seconds
        """
        self._limit = max(1, max_requests)
        self._window = window_seconds
        self._clock = clock
        self._admitted: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, stamps: Deque[float], now: float) -> int:
        horizon = now - self._window
        dropped = 0
        while stamps and stamps[0] <= horizon:
            stamps.popleft()
            dropped += 1
        return dropped

    def admit(self, caller_id: str) -> bool:
        """Shorthand for `check(caller_id).allowed`."""
        return self.check(caller_id).allowed

    def check(self, caller_id: str) -> RateLimitResult:
        """Decide on one request and record it if admitted."""
        now = self._clock()

        with self._lock:
            stamps = self._admitted.setdefault(caller_id, deque())
            self._prune(stamps, now)

            if len(stamps) >= self._limit:
                frees_at = stamps[0] + self._window
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=frees_at,
                    retry_after=max(0.0, frees_at - now)
                )

            stamps.append(now)
            return RateLimitResult(
                allowed=True,
                remaining=self._limit - len(stamps),
                reset_at=stamps[0] + self._window
            )

    def reset(self, caller_id: Optional[str] = None) -> None:
        """Forget one caller, or every caller when `caller_id` is None."""
        with self._lock:
            if caller_id is None:
                self._admitted = {}
            else:
                self._admitted.pop(caller_id, None)

    def cleanup_expired(self) -> int:
        """
        Drop timestamps that have left the window, and callers left with none.

        Returns:
            Number of timestamps dropped
        """
        now = self._clock()
        dropped = 0
        with self._lock:
            for caller_id in list(self._admitted):
                stamps = self._admitted[caller_id]
                dropped += self._prune(stamps, now)
                if not stamps:
                    del self._admitted[caller_id]
        return dropped
