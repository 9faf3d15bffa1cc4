"""Retry, circuit breaking and time limiting around registry calls."""

from devquality.consul_service.resilience.circuit_breaker import CircuitBreaker, CircuitState
from devquality.consul_service.resilience.policy import ResiliencePolicy

__all__ = ["CircuitBreaker", "CircuitState", "ResiliencePolicy"]
