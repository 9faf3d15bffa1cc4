"""Tests for the circuit breaker state machine."""

import pytest

from devquality.consul_service.exceptions import CircuitOpenError, ConsulConnectionError
from devquality.consul_service.resilience import CircuitBreaker, CircuitState

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        name="registry",
        failure_threshold=3,
        recovery_timeout=30,
        half_open_max_requests=2,
        record_exceptions=(ConsulConnectionError,),
        clock=clock,
    )


def _fail(breaker: CircuitBreaker) -> None:
    def boom():
        raise ConsulConnectionError("down")

    with pytest.raises(ConsulConnectionError):
        breaker.call(boom)


class TestCircuitBreaker:
    def test_starts_closed(self, breaker):
        assert breaker.is_closed()
        assert breaker.get_status()["state"] == "CLOSED"
        assert breaker.get_status()["time_since_last_failure"] is None

    def test_successful_call_returns_result(self, breaker):
        assert breaker.call(lambda x: x * 2, 21) == 42

    def test_opens_after_threshold(self, breaker):
        for _ in range(3):
            _fail(breaker)

        assert breaker.is_open()
        with pytest.raises(CircuitOpenError, match="is OPEN"):
            breaker.call(lambda: "never")

    def test_below_threshold_stays_closed(self, breaker):
        _fail(breaker)
        _fail(breaker)

        assert breaker.is_closed()
        assert breaker.failure_count == 2

    def test_unrecorded_exceptions_do_not_count(self, breaker):
        def bad_input():
            raise ValueError("bad input")

        for _ in range(5):
            with pytest.raises(ValueError):
                breaker.call(bad_input)

        assert breaker.is_closed()
        assert breaker.failure_count == 0

    def test_half_open_after_recovery_timeout(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)

        clock.advance(30)
        assert breaker.call(lambda: "ok") == "ok"

        assert breaker.is_half_open()

    def test_closes_after_enough_half_open_successes(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)
        clock.advance(31)

        breaker.call(lambda: "ok")
        breaker.call(lambda: "ok")

        assert breaker.is_closed()
        assert breaker.failure_count == 0

    def test_half_open_failure_reopens(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)
        clock.advance(31)

        _fail(breaker)

        assert breaker.is_open()

    def test_half_open_limits_trial_calls(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)
        clock.advance(31)

        breaker.before_call()
        breaker.before_call()
        with pytest.raises(CircuitOpenError, match="HALF_OPEN"):
            breaker.before_call()

    def test_unrecorded_error_in_half_open_frees_its_slot(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)
        clock.advance(31)

        def not_found():
            raise LookupError("ghost")

        with pytest.raises(LookupError):
            breaker.call(not_found)
        with pytest.raises(LookupError):
            breaker.call(not_found)

        assert breaker.is_closed()
        assert breaker.call(lambda: "ok") == "ok"

    def test_stale_half_open_slots_are_renewed(self, breaker, clock):
        for _ in range(3):
            _fail(breaker)
        clock.advance(31)
        breaker.before_call()
        breaker.before_call()

        clock.advance(29)
        with pytest.raises(CircuitOpenError, match="HALF_OPEN"):
            breaker.before_call()

        clock.advance(1)
        breaker.before_call()

        assert breaker.is_half_open()
        assert breaker.half_open_requests == 1

    def test_reset(self, breaker):
        for _ in range(3):
            _fail(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_status_reports_failures(self, breaker, clock):
        _fail(breaker)
        clock.advance(5)

        status = breaker.get_status()

        assert status["name"] == "registry"
        assert status["failure_count"] == 1
        assert status["time_since_last_failure"] == 5
        assert status["half_open_requests"] is None
