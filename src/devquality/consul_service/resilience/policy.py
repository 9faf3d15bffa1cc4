"""
Resilience policy applied around registry calls.

Retry (tenacity) wraps the circuit breaker, which wraps the optional time
limiter, which wraps the call itself. A fallback, when given, is served only
while the breaker rejects calls.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from devquality.consul_service.exceptions import CircuitOpenError, ConsulConnectionError
from devquality.consul_service.logging import get_logger
from devquality.consul_service.monitoring import REGISTRY_CALL_DURATION, record_call
from devquality.consul_service.resilience.circuit_breaker import CircuitBreaker
from devquality.consul_service.settings import Settings

logger = get_logger(__name__)

T = TypeVar("T")
Fallback = Callable[[Exception], Any]


class ResiliencePolicy:
    """Retry, circuit breaker, time limiter and fallback for one named boundary."""

    def __init__(
        self,
        name: str,
        max_attempts: int = 3,
        wait_multiplier: float = 0.5,
        wait_min: float = 0.5,
        wait_max: float = 5.0,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_requests: int = 3,
        time_limit: float = 5.0,
        fallback_enabled: bool = True,
        retry_on: tuple[type[Exception], ...] = (ConsulConnectionError,),
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.name = name
        self.max_attempts = max_attempts
        self.wait_multiplier = wait_multiplier
        self.wait_min = wait_min
        self.wait_max = wait_max
        self.time_limit = time_limit
        self.fallback_enabled = fallback_enabled
        self.retry_on = retry_on
        self.breaker = breaker or CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            half_open_max_requests=half_open_max_requests,
            record_exceptions=retry_on,
        )

    @classmethod
    def from_settings(cls, config: Settings.ResilienceSettings) -> "ResiliencePolicy":
        return cls(
            name=config.name,
            max_attempts=config.max_attempts,
            wait_multiplier=config.wait_multiplier,
            wait_min=config.wait_min,
            wait_max=config.wait_max,
            failure_threshold=config.failure_threshold,
            recovery_timeout=config.recovery_timeout,
            half_open_max_requests=config.half_open_max_requests,
            time_limit=config.time_limit,
            fallback_enabled=config.fallback_enabled,
        )

    def _retry_kwargs(self, operation: str) -> dict[str, Any]:
        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "resilience.retry",
                policy=self.name,
                operation=operation,
                attempt=state.attempt_number,
                error=str(exc),
            )

        return {
            "stop": stop_after_attempt(self.max_attempts),
            "wait": wait_exponential(
                multiplier=self.wait_multiplier, min=self.wait_min, max=self.wait_max
            ),
            "retry": retry_if_exception_type(self.retry_on),
            "before_sleep": _log_retry,
            "reraise": True,
        }

    def call(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        fallback: Fallback | None = None,
        **kwargs: Any,
    ) -> T:
        """Run ``func`` with retry and circuit breaking."""
        start = time.perf_counter()
        try:
            result = Retrying(**self._retry_kwargs(operation))(
                self.breaker.call, func, *args, **kwargs
            )
        except CircuitOpenError as exc:
            return self._handle_rejection(operation, exc, fallback)
        except Exception:
            record_call(self.name, operation, "failure")
            raise
        finally:
            REGISTRY_CALL_DURATION.labels(policy=self.name, operation=operation).observe(
                time.perf_counter() - start
            )

        record_call(self.name, operation, "success")
        return result

    async def call_async(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        fallback: Fallback | None = None,
        **kwargs: Any,
    ) -> T:
        """Run blocking ``func`` on the thread pool with retry, breaker and time limit."""
        start = time.perf_counter()
        try:
            result = await AsyncRetrying(**self._retry_kwargs(operation))(
                self._limited_attempt, operation, func, *args, **kwargs
            )
        except CircuitOpenError as exc:
            return self._handle_rejection(operation, exc, fallback)
        except Exception:
            record_call(self.name, operation, "failure")
            raise
        finally:
            REGISTRY_CALL_DURATION.labels(policy=self.name, operation=operation).observe(
                time.perf_counter() - start
            )

        record_call(self.name, operation, "success")
        return result

    async def _limited_attempt(
        self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        self.breaker.before_call()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs), timeout=self.time_limit
            )
        except asyncio.TimeoutError:
            exc = ConsulConnectionError(
                f"Registry call '{operation}' timed out after {self.time_limit:g} seconds"
            )
            self.breaker.on_failure(exc)
            raise exc from None
        except Exception as exc:
            self.breaker.on_failure(exc)
            raise
        self.breaker.on_success()
        return result

    def _handle_rejection(
        self, operation: str, exc: CircuitOpenError, fallback: Fallback | None
    ) -> Any:
        if fallback is None or not self.fallback_enabled:
            record_call(self.name, operation, "rejected")
            logger.warning("resilience.rejected", policy=self.name, operation=operation)
            raise exc

        record_call(self.name, operation, "fallback")
        logger.warning(
            "resilience.fallback",
            policy=self.name,
            operation=operation,
            reason=str(exc),
        )
        return fallback(exc)

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "max_attempts": self.max_attempts,
            "time_limit": self.time_limit,
            "fallback_enabled": self.fallback_enabled,
            "circuit_breaker": self.breaker.get_status(),
        }
