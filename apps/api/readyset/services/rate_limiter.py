from __future__ import annotations

import math
import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_after_s: int
    reset_at_s: int


class InMemoryRateLimiter:
    """Sliding-window limiter keyed per caller, local to this process."""

    def __init__(self) -> None:
        self._buckets: dict[str, list[float]] = {}
        self._lock = Lock()

    def check(self, key: str, *, max_requests: int, window_s: int) -> RateLimitResult:
        now = time.time()
        with self._lock:
            history = [value for value in self._buckets.get(key, []) if value > now - window_s]

            if len(history) >= max_requests:
                self._buckets[key] = history
                return _build_result(
                    allowed=False,
                    remaining=0,
                    now=now,
                    reset_deadline_s=min(history) + window_s,
                )

            history.append(now)
            self._buckets[key] = history
            return _build_result(
                allowed=True,
                remaining=max_requests - len(history),
                now=now,
                reset_deadline_s=history[0] + window_s,
            )

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _build_result(
    *,
    allowed: bool,
    remaining: int,
    now: float,
    reset_deadline_s: float,
) -> RateLimitResult:
    reset_after_s = max(1, math.ceil(reset_deadline_s - now))
    reset_at_s = max(math.ceil(reset_deadline_s), math.ceil(now))
    return RateLimitResult(
        allowed=allowed,
        remaining=remaining,
        reset_after_s=reset_after_s,
        reset_at_s=reset_at_s,
    )


_memory_rate_limiter = InMemoryRateLimiter()


def get_rate_limiter() -> InMemoryRateLimiter:
    return _memory_rate_limiter


def reset_rate_limiter_state() -> None:
    _memory_rate_limiter.reset()
