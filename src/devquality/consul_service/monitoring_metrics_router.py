"""
Custom metrics and monitoring status endpoints.

Prometheus exposition lives at the root ``/metrics`` mount; these routes
return plain JSON snapshots for dashboards and humans.
"""

from datetime import UTC, datetime
from typing import Any

import psutil
from fastapi import APIRouter

from devquality.consul_service.config.router import RuntimeDep, SettingsDep
from devquality.consul_service.discovery.router import DiscoveryServiceDep
from devquality.consul_service.logging import get_logger
from devquality.consul_service.resilience import CircuitState

logger = get_logger(__name__)

# Note: prefix /api/v1 is added during router registration in routers.py
metrics_router = APIRouter(prefix="/metrics", tags=["Metrics"])

MB = 1024 * 1024


@metrics_router.get("/custom")
def get_custom_metrics(settings: SettingsDep, runtime: RuntimeDep) -> dict[str, Any]:
    """
    Process memory, uptime and host load.

    Returns a flat snapshot without the response envelope.
    """
    process = psutil.Process(runtime.pid)
    memory = psutil.virtual_memory()
    rss = process.memory_info().rss

    try:
        load_average: float | None = round(psutil.getloadavg()[0], 2)
    except (AttributeError, OSError):
        load_average = None

    return {
        "memory": {
            "process_rss_mb": rss // MB,
            "process_percent": round(process.memory_percent(), 2),
            "system_total_mb": memory.total // MB,
            "system_available_mb": memory.available // MB,
            "system_used_percent": memory.percent,
        },
        "uptime": {
            "start_time": runtime.start_time.isoformat(),
            "uptime_seconds": round(runtime.uptime_seconds(), 3),
            "uptime_minutes": runtime.uptime_minutes(),
        },
        "system": {
            "available_processors": psutil.cpu_count() or 1,
            "load_average": load_average,
            "threads": process.num_threads(),
        },
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@metrics_router.get("/status")
def get_monitoring_status(
    settings: SettingsDep, service: DiscoveryServiceDep
) -> dict[str, Any]:
    """Monitoring summary, including the registry circuit breaker state."""
    memory = psutil.virtual_memory()
    policy_status = service.policy.get_status()
    breaker_state = policy_status["circuit_breaker"]["state"]

    checks = {
        "memory": "OK" if memory.percent < settings.management.memory_warning_percent else "WARNING",
        "consul": "CONNECTED" if breaker_state == CircuitState.CLOSED.value else breaker_state,
        "config": "LOADED",
    }
    logger.debug("metrics.status.requested", checks=checks)

    return {
        "status": "HEALTHY",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": settings.app_name,
        "checks": checks,
        "resilience": policy_status,
    }


__all__ = ["metrics_router"]
