"""
Centralized router registration for all API endpoints.

Every route is public and mounted under /api/v1.
"""

import importlib
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import FastAPI

from devquality.consul_service.logging import get_logger

logger = get_logger(__name__)

API_PREFIX = "/api/v1"


@dataclass
class RouterConfig:
    """Configuration for a router to be registered."""

    module_path: str
    router_name: str
    prefix: str
    tags: Sequence[str | Enum] | None
    description: str = ""


ROUTER_CONFIGS = [
    # ===========================================
    # Health & Configuration
    # ===========================================
    RouterConfig(
        module_path="devquality.consul_service.config.router",
        router_name="health_router",
        prefix=API_PREFIX,
        tags=["Health"],
        description="Health and info endpoints at /api/v1/health and /api/v1/info",
    ),
    RouterConfig(
        module_path="devquality.consul_service.config.router",
        router_name="router",
        prefix=API_PREFIX,
        tags=["Configuration"],
        description="Configuration endpoints",
    ),
    # ===========================================
    # Service Discovery
    # ===========================================
    RouterConfig(
        module_path="devquality.consul_service.discovery.router",
        router_name="router",
        prefix=API_PREFIX,
        tags=["Service Discovery"],
        description="Consul service discovery endpoints",
    ),
    # ===========================================
    # Monitoring
    # ===========================================
    RouterConfig(
        module_path="devquality.consul_service.monitoring_metrics_router",
        router_name="metrics_router",
        prefix=API_PREFIX,
        tags=["Metrics"],
        description="Custom metrics endpoints",
    ),
]


def _register_router(app: FastAPI, config: RouterConfig) -> None:
    """Import and include a single router.

    Unlike optional plugin routers, every router here is core: import and
    attribute errors propagate and abort startup.
    """
    module = importlib.import_module(config.module_path)
    router = getattr(module, config.router_name)

    router_tags = list(config.tags) if config.tags is not None else None
    app.include_router(router, prefix=config.prefix, tags=router_tags)

    logger.info(
        "router.registered",
        router=config.description or config.module_path,
        prefix=config.prefix,
    )


def register_routers(app: FastAPI) -> None:
    """Register all API routers with the application."""
    for config in ROUTER_CONFIGS:
        _register_router(app, config)

    logger.info("router.registration.complete", count=len(ROUTER_CONFIGS))


def get_api_info() -> dict[str, Any]:
    """Get information about registered API endpoints."""
    return {
        "version": "v1",
        "base_path": API_PREFIX,
        "endpoints": {
            "health": f"{API_PREFIX}/health",
            "info": f"{API_PREFIX}/info",
            "consul": f"{API_PREFIX}/consul",
            "config": f"{API_PREFIX}/config",
            "metrics": f"{API_PREFIX}/metrics",
        },
        "public_endpoints": ["/metrics", "/docs", "/openapi.json"],
    }
