"""Circuit breaker guarding the payment gateway.

The breaker keeps a count-based rolling window of the most recent call
outcomes. Each outcome records whether the call failed (raised) and whether
it was slow. Once enough calls are buffered, a failure rate or slow-call
rate at or above its threshold opens the breaker.

Transitions:
- CLOSED -> OPEN when the failure rate or slow-call rate over the window
  reaches its threshold (after at least ``min_calls`` outcomes).
- OPEN -> HALF_OPEN after ``reset_timeout`` seconds.
- HALF_OPEN -> CLOSED on a successful probe; only one probe may be in
  flight; a failed or slow probe sends the breaker back to OPEN.

This implementation is thread-safe via an internal lock.
"""

import threading
import time
from collections import deque
from typing import Callable

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(RuntimeError):
    """Raised by ``before_call`` when the protected call must not run."""


class CircuitBreaker:
    """Rolling-window circuit breaker with CLOSED/OPEN/HALF_OPEN states."""

    def __init__(
        self,
        name: str,
        window_size: int = 10,
        min_calls: int = 5,
        failure_rate_threshold: float = 50.0,
        slow_call_duration: float = 2.0,
        slow_call_rate_threshold: float = 100.0,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.window_size = window_size
        self.min_calls = min(min_calls, window_size)
        self.failure_rate_threshold = failure_rate_threshold
        self.slow_call_duration = slow_call_duration
        self.slow_call_rate_threshold = slow_call_rate_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.RLock()
        self._window: deque[tuple[bool, bool]] = deque(maxlen=window_size)
        self._state = CLOSED
        self._opened_at = 0.0
        self._half_open_probe_in_flight = False

    @property
    def state(self) -> str:
        """Current breaker state with time-based transition handling."""
        with self._lock:
            if self._state == OPEN and (self._clock() - self._opened_at) >= self.reset_timeout:
                self._state = HALF_OPEN
                self._half_open_probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check and update state before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            CircuitOpenError: If the circuit is OPEN or a HALF_OPEN probe is
                already in flight.
        """
        with self._lock:
            st = self.state
            if st == OPEN:
                raise CircuitOpenError("CIRCUIT_OPEN")
            if st == HALF_OPEN:
                if self._half_open_probe_in_flight:
                    raise CircuitOpenError("CIRCUIT_HALF_OPEN_BUSY")
                self._half_open_probe_in_flight = True
            return st

    def on_success(self, duration: float = 0.0):
        """Record a call that returned normally after ``duration`` seconds."""
        self._record(failed=False, duration=duration)

    def on_failure(self, duration: float = 0.0):
        """Record a call that raised after ``duration`` seconds."""
        self._record(failed=True, duration=duration)

    def on_finish(self):
        """Release any HALF_OPEN probe flag after a call finishes."""
        with self._lock:
            if self._state == HALF_OPEN:
                self._half_open_probe_in_flight = False

    def reset(self):
        """Force the breaker back to CLOSED with an empty window."""
        with self._lock:
            self._window.clear()
            self._state = CLOSED
            self._opened_at = 0.0
            self._half_open_probe_in_flight = False

    def snapshot(self) -> dict:
        """Return state and window rates for health/monitoring endpoints."""
        with self._lock:
            failure_rate, slow_rate = self._rates()
            return {
                "name": self.name,
                "state": self.state,
                "buffered_calls": len(self._window),
                "failure_rate": failure_rate,
                "slow_call_rate": slow_rate,
            }

    def _rates(self) -> tuple[float, float]:
        total = len(self._window)
        if not total:
            return 0.0, 0.0
        failed = sum(1 for f, _ in self._window if f)
        slow = sum(1 for _, s in self._window if s)
        return failed * 100.0 / total, slow * 100.0 / total

    def _record(self, failed: bool, duration: float):
        slow = duration >= self.slow_call_duration
        with self._lock:
            if self._state == HALF_OPEN:
                if failed or slow:
                    self._trip()
                else:
                    self._window.clear()
                    self._state = CLOSED
                return
            if self._state == OPEN:
                # late answer from a call started before the breaker opened
                return
            self._window.append((failed, slow))
            if len(self._window) < self.min_calls:
                return
            failure_rate, slow_rate = self._rates()
            if failure_rate >= self.failure_rate_threshold or slow_rate >= self.slow_call_rate_threshold:
                self._trip()

    def _trip(self):
        self._state = OPEN
        self._opened_at = self._clock()
        self._half_open_probe_in_flight = False
        self._window.clear()
