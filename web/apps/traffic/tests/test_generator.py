"""Unit tests for LoadGenerator.

Requests go through ``httpx.MockTransport`` and the stop token is replaced
by a recording fake, so the loop logic is exercised without sleeping or
touching the network.
"""

import random
from datetime import datetime, timezone

import httpx
import pytest

from apps.traffic.generator import (
    BURST_GAP_SECONDS,
    QUICK_START_CONFIG,
    STRESS_TEST_CONFIG,
    LoadGenerator,
    TrafficConfig,
)


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class FakeToken:
    """Stop token that records waits and optionally sets itself after N waits."""

    def __init__(self, stop_after=None):
        self.waits = []
        self.stop_after = stop_after
        self._set = False

    def is_set(self):
        return self._set

    def set(self):
        self._set = True

    def wait(self, timeout=None):
        self.waits.append(timeout)
        if self.stop_after is not None and len(self.waits) >= self.stop_after:
            self._set = True
        return self._set


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_generator(handler=None, value=0.5, clock=None):
    seen = []

    def default_handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json=[])

    transport = httpx.MockTransport(handler or default_handler)
    client = httpx.Client(transport=transport, base_url="http://testserver")
    gen = LoadGenerator(client=client, rng=FixedRandom(value), clock=clock or FakeClock())
    return gen, seen


def test_burst_sends_burst_count_requests_with_gaps():
    gen, seen = make_generator()
    config = TrafficConfig(base_interval_ms=1000, variation_percent=0, burst_probability=1.0,
                           quiet_probability=0.0, burst_count=4)
    token = FakeToken()

    gen._tick(config, token)

    assert len(seen) == 4
    assert token.waits == [BURST_GAP_SECONDS] * 4 + [1.0]
    stats = gen.get_stats()
    assert stats.total_requests == 4
    assert stats.success_requests == 4


def test_burst_stops_when_token_set():
    gen, seen = make_generator()
    config = TrafficConfig(burst_probability=1.0, quiet_probability=0.0, burst_count=10)
    token = FakeToken(stop_after=2)

    gen._tick(config, token)

    assert len(seen) == 2


def test_single_request_tick():
    gen, seen = make_generator()
    config = TrafficConfig(base_interval_ms=400, variation_percent=0, burst_probability=0.0, quiet_probability=0.0)
    token = FakeToken()

    gen._tick(config, token)

    assert seen == ["/api/orders/"]
    assert token.waits == [0.4]


def test_quiet_tick_sends_nothing():
    gen, seen = make_generator()
    config = TrafficConfig(quiet_probability=1.0, quiet_duration_ms=3000)
    token = FakeToken()

    gen._tick(config, token)

    assert seen == []
    assert token.waits == [3.0]


def test_quiet_takes_precedence_over_burst():
    gen, seen = make_generator(value=0.0)
    config = TrafficConfig(quiet_probability=1.0, burst_probability=1.0)
    gen._tick(config, FakeToken())
    assert seen == []


def test_interval_has_a_floor():
    gen, _ = make_generator()
    assert gen._next_interval_ms(TrafficConfig(base_interval_ms=50, variation_percent=0)) == 100
    assert gen._next_interval_ms(TrafficConfig(base_interval_ms=800, variation_percent=0)) == 800


def test_interval_jitter_stays_in_range():
    gen = LoadGenerator(client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
                        rng=random.Random(7))
    config = TrafficConfig(base_interval_ms=1000, variation_percent=50)
    for _ in range(200):
        assert 500 <= gen._next_interval_ms(config) <= 1500


def test_non_2xx_counts_as_failure():
    gen, _ = make_generator(handler=lambda r: httpx.Response(503))
    gen._make_request(TrafficConfig())
    stats = gen.get_stats()
    assert stats.failed_requests == 1
    assert stats.success_requests == 0


def test_transport_error_counts_as_failure_and_does_not_raise():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    gen, _ = make_generator(handler=handler)
    gen._make_request(TrafficConfig())
    assert gen.get_stats().failed_requests == 1


def test_average_response_time():
    gen, _ = make_generator()
    gen._record(True, 100.0)
    gen._record(False, 300.0)
    stats = gen.get_stats()
    assert stats.total_requests == 2
    assert stats.total_response_time_ms == 400.0
    assert stats.average_response_time_ms == 200.0


def test_average_is_zero_without_requests():
    gen, _ = make_generator()
    assert gen.get_stats().average_response_time_ms == 0.0


def test_rps_counts_only_the_last_minute():
    clock = FakeClock(now=0.0)
    gen, _ = make_generator(clock=clock)
    for _ in range(30):
        gen._record(True, 1.0)
    clock.now = 61.0
    gen._record(True, 1.0)

    stats = gen.get_stats()
    assert stats.total_requests == 31
    assert stats.current_rps_estimate == pytest.approx(1 / 60)


def test_rps_with_steady_traffic():
    clock = FakeClock(now=0.0)
    gen, _ = make_generator(clock=clock)
    for second in range(61):
        clock.now = float(second)
        gen._record(True, 1.0)
    # the request at t=0 is exactly 60s old and still inside the window
    assert gen.get_stats().current_rps_estimate == pytest.approx(61 / 60)
    clock.now = 61.0
    assert gen.get_stats().current_rps_estimate == pytest.approx(60 / 60)


def test_last_request_time_follows_clock():
    clock = FakeClock(now=1_700_000_000.0)
    gen, _ = make_generator(clock=clock)
    gen._record(True, 1.0)
    assert gen.get_stats().last_request_time == datetime.fromtimestamp(1_700_000_000.0, tz=timezone.utc)


QUIET = TrafficConfig(quiet_probability=1.0, quiet_duration_ms=60_000)


def test_start_stop_lifecycle():
    gen, seen = make_generator()
    assert gen.start(QUIET) is True
    assert gen.is_running is True
    assert gen.start(QUIET) is False

    assert gen.stop() is True
    assert gen.stop() is False
    assert gen.join(timeout=2.0) is True
    assert gen.is_running is False
    assert seen == []


def test_start_resets_stats():
    clock = FakeClock()
    gen, _ = make_generator(clock=clock)
    gen._record(True, 10.0)
    gen._record(False, 10.0)

    gen.start(QUIET)
    try:
        stats = gen.get_stats()
        assert stats.is_running is True
        assert stats.total_requests == 0
        assert stats.last_request_time is None
        assert stats.start_time == datetime.fromtimestamp(clock.now, tz=timezone.utc)
    finally:
        gen.stop()
        gen.join(timeout=2.0)


def test_failed_start_does_not_reset_stats():
    gen, _ = make_generator()
    gen.start(QUIET)
    try:
        gen._record(True, 5.0)
        assert gen.start(QUIET) is False
        assert gen.get_stats().total_requests == 1
    finally:
        gen.stop()
        gen.join(timeout=2.0)


def test_restart_after_stop():
    gen, _ = make_generator()
    gen.start(QUIET)
    gen.stop()
    assert gen.start(QUIET) is True
    assert gen.is_running is True
    gen.stop()
    assert gen.join(timeout=2.0) is True


def test_request_from_stopped_run_is_not_counted_in_next_run():
    gen, _ = make_generator()
    gen.start(QUIET)
    old_token = gen._token
    gen.stop()
    gen.start(QUIET)
    try:
        # a request of the first run finishing after the restart
        gen._record(True, 5.0, old_token)
        assert gen.get_stats().total_requests == 0

        gen._record(True, 5.0, gen._token)
        assert gen.get_stats().total_requests == 1
    finally:
        gen.stop()
        gen.join(timeout=2.0)


def test_in_flight_request_finishing_after_stop_is_dropped():
    token = FakeToken()

    def handler(request):
        token.set()
        return httpx.Response(200, json=[])

    gen, _ = make_generator(handler=handler)
    gen._make_request(TrafficConfig(), token)
    assert gen.get_stats().total_requests == 0


def test_update_config_applies_without_restart():
    gen, _ = make_generator()
    gen.update_config(STRESS_TEST_CONFIG)
    assert gen.config == STRESS_TEST_CONFIG
    assert gen.is_running is False


def test_presets():
    assert QUICK_START_CONFIG.base_interval_ms == 800
    assert QUICK_START_CONFIG.burst_count == 3
    assert STRESS_TEST_CONFIG.base_interval_ms == 300
    assert STRESS_TEST_CONFIG.burst_count == 8


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_interval_ms": 0},
        {"variation_percent": 101},
        {"burst_probability": 1.5},
        {"quiet_probability": -0.1},
        {"burst_count": 0},
        {"target_endpoints": ()},
    ],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        TrafficConfig(**kwargs)
