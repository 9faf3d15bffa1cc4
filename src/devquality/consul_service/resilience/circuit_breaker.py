"""Circuit breaker guarding calls to the registry."""

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from devquality.consul_service.exceptions import CircuitOpenError
from devquality.consul_service.logging import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """Circuit breaker for fault tolerance.

    Only exceptions listed in ``record_exceptions`` count as failures; any
    other exception is treated as an answered call. A HALF_OPEN breaker whose
    trial slots stay taken for ``recovery_timeout`` hands out fresh slots.
    Safe to share between request threads.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_requests: int = 3,
        record_exceptions: tuple[type[BaseException], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_requests = half_open_max_requests
        self.record_exceptions = record_exceptions
        self._clock = clock
        self._lock = threading.Lock()

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: float | None = None
        self.half_open_requests = 0
        self.success_count = 0
        self.last_state_change = clock()

    def before_call(self) -> None:
        """Admit a call or raise ``CircuitOpenError``."""
        with self._lock:
            now = self._clock()

            if self.state == CircuitState.OPEN:
                if now - self.last_failure_time >= self.recovery_timeout:
                    self._transition(CircuitState.HALF_OPEN, now)
                    logger.info("circuit_breaker.half_open", breaker=self.name)
                else:
                    retry_after = self.recovery_timeout - (now - self.last_failure_time)
                    raise CircuitOpenError(
                        f"Circuit breaker '{self.name}' is OPEN, retry after {retry_after:.0f} seconds"
                    )

            if self.state == CircuitState.HALF_OPEN:
                stale = now - self.last_state_change >= self.recovery_timeout
                if self.half_open_requests >= self.half_open_max_requests and stale:
                    # Trial calls that never reported back no longer hold their slots
                    self._transition(CircuitState.HALF_OPEN, now)
                    logger.info("circuit_breaker.half_open_renewed", breaker=self.name)
                if self.half_open_requests >= self.half_open_max_requests:
                    raise CircuitOpenError(
                        f"Circuit breaker '{self.name}' is HALF_OPEN and saturated with trial calls"
                    )
                self.half_open_requests += 1

    def on_success(self) -> None:
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.half_open_max_requests:
                    self._transition(CircuitState.CLOSED, self._clock())
                    logger.info("circuit_breaker.closed", breaker=self.name)
            elif self.failure_count > 0:
                self.failure_count -= 1

    def on_failure(self, exc: BaseException) -> None:
        if not isinstance(exc, self.record_exceptions):
            # The dependency answered; only the outcome was an error
            self.on_success()
            return

        with self._lock:
            now = self._clock()
            self.failure_count += 1
            self.last_failure_time = now

            if self.state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN, now)
                logger.warning("circuit_breaker.reopened", breaker=self.name, error=str(exc))
            elif (
                self.state == CircuitState.CLOSED
                and self.failure_count >= self.failure_threshold
            ):
                self._transition(CircuitState.OPEN, now)
                logger.warning(
                    "circuit_breaker.opened",
                    breaker=self.name,
                    failures=self.failure_count,
                    error=str(exc),
                )

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute a synchronous function with circuit breaker protection."""
        self.before_call()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self.on_failure(exc)
            raise
        self.on_success()
        return result

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        with self._lock:
            self._transition(CircuitState.CLOSED, self._clock())

    def _transition(self, state: CircuitState, now: float) -> None:
        self.state = state
        self.last_state_change = now
        self.half_open_requests = 0
        self.success_count = 0
        if state == CircuitState.CLOSED:
            self.failure_count = 0

    def get_status(self) -> dict[str, Any]:
        """Get circuit breaker status."""
        now = self._clock()
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "time_since_last_failure": (
                now - self.last_failure_time if self.last_failure_time is not None else None
            ),
            "time_in_current_state": now - self.last_state_change,
            "half_open_requests": (
                self.half_open_requests if self.state == CircuitState.HALF_OPEN else None
            ),
            "success_count": self.success_count if self.state == CircuitState.HALF_OPEN else None,
        }

    def is_open(self) -> bool:
        """Check if circuit is open."""
        return self.state == CircuitState.OPEN

    def is_closed(self) -> bool:
        """Check if circuit is closed."""
        return self.state == CircuitState.CLOSED

    def is_half_open(self) -> bool:
        """Check if circuit is half-open."""
        return self.state == CircuitState.HALF_OPEN
