"""Synthetic traffic generator.

``LoadGenerator`` drives GET requests against a set of endpoints of this
service at a naturalistic cadence: a jittered base interval, occasional
bursts of back-to-back requests and occasional quiet periods. It keeps
live statistics (counters, mean latency, requests per second over the
trailing minute) that can be read at any time.

Each run gets its own stop token (a ``threading.Event``). The loop checks
the token before every request and sleeps by waiting on it, so ``stop()``
takes effect at the next natural check point without interrupting a
request already in flight. At most one loop runs at a time: a new run
waits for the previous loop thread to finish before it starts iterating.
"""

import logging
import random
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

logger = logging.getLogger("traffic")

MIN_INTERVAL_MS = 100
BURST_GAP_SECONDS = 0.05
ERROR_BACKOFF_SECONDS = 1.0
RPS_WINDOW_SECONDS = 60
MAX_TRACKED_TIMESTAMPS = 100_000


@dataclass(frozen=True)
class TrafficConfig:
    """Traffic shape.

    Quiet is drawn first, then burst, so with
    ``quiet_probability + burst_probability >= 1`` the single-request branch
    is never reached and bursts happen only with the remaining probability.

    Attributes:
        base_interval_ms: Mean pause between ticks (> 0).
        variation_percent: Uniform jitter around the base, 0-100.
        burst_probability: Chance a tick is a burst, 0-1.
        quiet_probability: Chance a tick is a quiet period, 0-1.
        burst_count: Requests per burst (>= 1).
        quiet_duration_ms: Length of a quiet period.
        target_endpoints: Paths resolved against the service base URL.
    """

    base_interval_ms: int = 1000
    variation_percent: int = 50
    burst_probability: float = 0.1
    quiet_probability: float = 0.05
    burst_count: int = 5
    quiet_duration_ms: int = 5000
    target_endpoints: tuple[str, ...] = ("/api/orders/",)

    def __post_init__(self):
        if self.base_interval_ms <= 0:
            raise ValueError("base_interval_ms must be > 0")
        if not 0 <= self.variation_percent <= 100:
            raise ValueError("variation_percent must be within 0-100")
        if not 0.0 <= self.burst_probability <= 1.0 or not 0.0 <= self.quiet_probability <= 1.0:
            raise ValueError("probabilities must be within 0-1")
        if self.burst_count < 1:
            raise ValueError("burst_count must be >= 1")
        if self.quiet_duration_ms < 0:
            raise ValueError("quiet_duration_ms must be >= 0")
        if not self.target_endpoints:
            raise ValueError("target_endpoints must not be empty")

    def as_dict(self) -> dict:
        d = asdict(self)
        d["target_endpoints"] = list(self.target_endpoints)
        return d


QUICK_START_CONFIG = TrafficConfig(
    base_interval_ms=800, variation_percent=60, burst_probability=0.15, quiet_probability=0.08, burst_count=3
)
STRESS_TEST_CONFIG = TrafficConfig(
    base_interval_ms=300, variation_percent=40, burst_probability=0.25, quiet_probability=0.03, burst_count=8
)


@dataclass(frozen=True)
class TrafficStats:
    """Point-in-time snapshot returned by ``LoadGenerator.get_stats``."""

    is_running: bool
    total_requests: int
    success_requests: int
    failed_requests: int
    total_response_time_ms: float
    average_response_time_ms: float
    current_rps_estimate: float
    start_time: Optional[datetime]
    last_request_time: Optional[datetime]

    def as_dict(self) -> dict:
        d = asdict(self)
        for key in ("start_time", "last_request_time"):
            d[key] = d[key].isoformat() if d[key] else None
        return d


class LoadGenerator:
    """Background traffic generator with start/stop/reconfigure control.

    Args:
        base_url: Base address the target endpoints are resolved against.
        client: httpx client to send requests with. Built from ``base_url``
            and ``request_timeout`` when omitted.
        rng: Random source for intervals, bursts, quiet periods and
            endpoint picks.
        clock: Wall clock in epoch seconds, used for stats timestamps.
        request_timeout: Timeout, in seconds, of the default client.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.Client] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        request_timeout: float = 5.0,
    ):
        self._client = client or httpx.Client(base_url=base_url, timeout=request_timeout)
        self._rng = rng or random.Random()
        self._clock = clock

        self._control = threading.Lock()
        self._running = False
        self._token = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._config = TrafficConfig()

        self._stats_lock = threading.Lock()
        self._total = 0
        self._success = 0
        self._failed = 0
        self._total_response_ms = 0.0
        self._start_time: Optional[datetime] = None
        self._last_request_time: Optional[datetime] = None
        self._timestamps: deque[float] = deque(maxlen=MAX_TRACKED_TIMESTAMPS)

    # ---- control ----

    @property
    def config(self) -> TrafficConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, config: Optional[TrafficConfig] = None) -> bool:
        """Start a new run, unless one is already running.

        Returns:
            bool: False (and nothing reset) if already running.
        """
        with self._control:
            if self._running:
                return False
            self._running = True
            self._config = config or TrafficConfig()
            self._reset_stats()
            token = threading.Event()
            self._token = token
            previous = self._thread
            self._thread = threading.Thread(
                target=self._run, args=(token, previous), name="traffic-generator", daemon=True
            )
            self._thread.start()
        logger.info("traffic generator started", extra={"config": self._config.as_dict()})
        return True

    def stop(self) -> bool:
        """Signal the running loop to exit at its next check point.

        Returns:
            bool: False if nothing was running.
        """
        with self._control:
            if not self._running:
                return False
            self._running = False
            self._token.set()
        logger.info("traffic generator stopped")
        return True

    def update_config(self, config: TrafficConfig):
        """Swap the active config; the loop picks it up on its next tick."""
        self._config = config
        logger.info("traffic generator config updated", extra={"config": config.as_dict()})

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current loop thread to exit. Returns True if it did."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # ---- stats ----

    def get_stats(self) -> TrafficStats:
        """Prune the RPS window and return an immutable snapshot."""
        now = self._clock()
        with self._stats_lock:
            cutoff = now - RPS_WINDOW_SECONDS
            while self._timestamps and self._timestamps[0] < cutoff:
                self._timestamps.popleft()
            return TrafficStats(
                is_running=self._running,
                total_requests=self._total,
                success_requests=self._success,
                failed_requests=self._failed,
                total_response_time_ms=self._total_response_ms,
                average_response_time_ms=(self._total_response_ms / self._total) if self._total else 0.0,
                current_rps_estimate=len(self._timestamps) / RPS_WINDOW_SECONDS,
                start_time=self._start_time,
                last_request_time=self._last_request_time,
            )

    def _reset_stats(self):
        now = self._clock()
        with self._stats_lock:
            self._total = 0
            self._success = 0
            self._failed = 0
            self._total_response_ms = 0.0
            self._last_request_time = None
            self._timestamps.clear()
            self._start_time = datetime.fromtimestamp(now, tz=timezone.utc)

    def _record(self, success: bool, response_time_ms: float, token: Optional[threading.Event] = None):
        now = self._clock()
        with self._stats_lock:
            # a request that outlived its run must not count toward the next one
            if token is not None and token.is_set():
                return
            self._total += 1
            if success:
                self._success += 1
            else:
                self._failed += 1
            self._total_response_ms += response_time_ms
            self._last_request_time = datetime.fromtimestamp(now, tz=timezone.utc)
            self._timestamps.append(now)

    # ---- loop ----

    def _run(self, token: threading.Event, previous: Optional[threading.Thread]):
        if previous is not None:
            previous.join()
        logger.info("traffic generation loop started")
        while not token.is_set():
            try:
                self._tick(self._config, token)
            except Exception:
                logger.exception("error in traffic generation loop")
                token.wait(ERROR_BACKOFF_SECONDS)
        logger.info("traffic generation loop ended")

    def _tick(self, config: TrafficConfig, token: threading.Event):
        """One loop iteration: quiet period, burst or single request."""
        interval_ms = self._next_interval_ms(config)

        if self._rng.random() < config.quiet_probability:
            logger.debug("quiet period", extra={"duration_ms": config.quiet_duration_ms})
            token.wait(config.quiet_duration_ms / 1000.0)
            return

        if self._rng.random() < config.burst_probability:
            logger.debug("burst", extra={"count": config.burst_count})
            for _ in range(config.burst_count):
                if token.is_set():
                    return
                self._make_request(config, token)
                token.wait(BURST_GAP_SECONDS)
        else:
            if token.is_set():
                return
            self._make_request(config, token)

        token.wait(interval_ms / 1000.0)

    def _next_interval_ms(self, config: TrafficConfig) -> int:
        variation = int(config.base_interval_ms * config.variation_percent / 100)
        jitter = self._rng.randint(-variation, variation)
        return max(config.base_interval_ms + jitter, MIN_INTERVAL_MS)

    def _make_request(self, config: TrafficConfig, token: Optional[threading.Event] = None):
        endpoint = self._rng.choice(config.target_endpoints)
        started = time.perf_counter()
        try:
            resp = self._client.get(endpoint)
        except httpx.HTTPError as e:
            self._record(False, (time.perf_counter() - started) * 1000, token)
            logger.debug("traffic request failed", extra={"endpoint": endpoint, "error": str(e)})
            return
        except Exception:
            self._record(False, (time.perf_counter() - started) * 1000, token)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        self._record(resp.is_success, elapsed_ms, token)
        logger.debug("traffic request done", extra={"endpoint": endpoint, "status": resp.status_code})
