"""Rate estimation and draw rate limiting for progress bars.

All points in time are plain floats in seconds, as returned by
:func:`time.monotonic`.
"""

from __future__ import annotations

import math
import threading
import time

EXPONENTIAL_WEIGHTING_SECONDS = 15.0
INTERVAL_NS = 1_000_000
MAX_BURST = 10


def estimator_weight(age: float) -> float:
    """Weight given to an estimate that is ``age`` seconds old.

    Data older than 15 seconds keeps a collective weight of 0.1.
    """
    return 0.1 ** (age / EXPONENTIAL_WEIGHTING_SECONDS)


class Estimator:
    """Double-smoothed, time-based exponentially weighted rate estimator."""

    def __init__(self, now: float) -> None:
        self.smoothed_steps_per_sec = 0.0
        self.double_smoothed_steps_per_sec = 0.0
        self.prev_steps = 0
        self.prev_time = now
        self.start_time = now

    def record(self, new_steps: int, now: float) -> None:
        """Feed a new absolute step count observed at ``now``."""
        if new_steps <= self.prev_steps or now <= self.prev_time:
            # A backwards seek restarts the estimate from the new position.
            if new_steps < self.prev_steps:
                self.prev_steps = new_steps
                self.reset(now)
            return

        delta_steps = new_steps - self.prev_steps
        delta_t = now - self.prev_time
        new_steps_per_second = delta_steps / delta_t

        weight = estimator_weight(delta_t)
        self.smoothed_steps_per_sec = (
            self.smoothed_steps_per_sec * weight + new_steps_per_second * (1.0 - weight)
        )

        # The single estimate starts from zero, so it is normalised by the
        # weight actually covered by samples before feeding the second level.
        delta_t_start = now - self.start_time
        total_weight = 1.0 - estimator_weight(delta_t_start)
        normalized = self.smoothed_steps_per_sec / total_weight

        self.double_smoothed_steps_per_sec = (
            self.double_smoothed_steps_per_sec * weight + normalized * (1.0 - weight)
        )

        self.prev_steps = new_steps
        self.prev_time = now

    def reset(self, now: float) -> None:
        """Forget all rate data before ``now``; the step count is kept."""
        self.smoothed_steps_per_sec = 0.0
        self.double_smoothed_steps_per_sec = 0.0
        self.prev_time = now
        self.start_time = now

    def steps_per_second(self, now: float) -> float:
        """Current rate, treating the time since the last record as a zero-step update."""
        delta_t = max(0.0, now - self.prev_time)
        reweight = estimator_weight(delta_t)

        delta_t_start = max(0.0, now - self.start_time)
        total_weight = 1.0 - estimator_weight(delta_t_start)
        if total_weight == 0.0:
            return math.nan

        sps = self.smoothed_steps_per_sec * reweight / total_weight
        dsps = self.double_smoothed_steps_per_sec * reweight + sps * (1.0 - reweight)
        return dsps / total_weight


class AtomicPosition:
    """Thread-safe position counter with a token-bucket draw limiter."""

    def __init__(self, start: float | None = None) -> None:
        self.start = time.monotonic() if start is None else start
        self.pos = 0
        self._capacity = MAX_BURST
        self._prev_ns = 0
        self._lock = threading.Lock()

    def allow(self, now: float) -> bool:
        """Whether a redraw is allowed at ``now``: bursts of 10, then one per millisecond."""
        if now < self.start:
            return False
        with self._lock:
            capacity = self._capacity
            elapsed = round((now - self.start) * 1e9)
            diff = max(0, elapsed - self._prev_ns)
            if capacity == 0 and diff < INTERVAL_NS:
                return False
            new, remainder = divmod(diff, INTERVAL_NS)
            self._capacity = min(MAX_BURST, capacity + new - 1)
            self._prev_ns = elapsed - remainder
            return True

    def reset(self, now: float) -> None:
        """Move the position back to zero and restart the limiter clock."""
        self.set(0)
        elapsed_ms = int(max(0.0, now - self.start) * 1000)
        with self._lock:
            self._prev_ns = elapsed_ms

    def inc(self, delta: int) -> None:
        """Advance the position by ``delta``."""
        with self._lock:
            self.pos += delta

    def set(self, pos: int) -> None:
        """Set the position."""
        with self._lock:
            self.pos = pos