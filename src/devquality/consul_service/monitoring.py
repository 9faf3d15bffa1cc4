"""Prometheus metrics for registry calls."""

from prometheus_client import Counter, Histogram

REGISTRY_CALLS = Counter(
    "consul_registry_calls_total",
    "Registry calls made through the resilience policy",
    ["policy", "operation", "outcome"],
)

REGISTRY_CALL_DURATION = Histogram(
    "consul_registry_call_duration_seconds",
    "Duration of registry calls including retries",
    ["policy", "operation"],
)


def record_call(policy: str, operation: str, outcome: str) -> None:
    """Count one call outcome: success, failure, fallback or rejected."""
    REGISTRY_CALLS.labels(policy=policy, operation=operation, outcome=outcome).inc()
