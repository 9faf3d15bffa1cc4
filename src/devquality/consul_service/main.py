"""
Main FastAPI application entry point for the Consul Discovery Service.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from devquality.consul_service.discovery import (
    DiscoveryClient,
    DiscoveryService,
    build_discovery_client,
)
from devquality.consul_service.exception_handlers import register_exception_handlers
from devquality.consul_service.logging import get_logger
from devquality.consul_service.middleware import RequestContextMiddleware
from devquality.consul_service.resilience import ResiliencePolicy
from devquality.consul_service.routers import API_PREFIX, get_api_info, register_routers
from devquality.consul_service.runtime import RuntimeInfo
from devquality.consul_service.settings import Settings, get_settings, validate_configuration

logger = get_logger(__name__)


def _log_startup_banner(settings: Settings, runtime: RuntimeInfo) -> None:
    base_url = f"http://localhost:{settings.port}{settings.root_path.rstrip('/')}"
    logger.info(
        "service.startup.ready",
        service=settings.app_name,
        version=settings.app_version,
        profiles=settings.active_profiles,
        consul=settings.consul.address,
        local_url=base_url,
        api_docs=f"{base_url}/docs",
        health=f"{base_url}{API_PREFIX}/health",
        services=f"{base_url}{API_PREFIX}/consul/services",
        pid=runtime.pid,
        **runtime.environment(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle events."""
    settings: Settings = app.state.settings

    try:
        warnings = validate_configuration(settings)
    except ValueError as e:
        logger.critical("config.validation.failed", error=str(e))
        raise RuntimeError(f"Invalid configuration: {e}") from e

    for warning in warnings:
        logger.warning("config.validation.warning", warning=warning)
    logger.info("config.validation.complete", warnings=len(warnings))

    _log_startup_banner(settings, app.state.runtime)

    yield

    client = app.state.discovery_service.client
    close = getattr(client, "close", None)
    if callable(close):
        close()
    logger.info("service.shutdown.complete", service=settings.app_name)


def create_application(
    settings: Settings | None = None,
    discovery_client: DiscoveryClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings snapshot; defaults to the global settings
        discovery_client: Registry client; defaults to the Consul client built from settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Consul Discovery Service API",
        description=(
            "REST API for service discovery, health checks and configuration "
            "backed by a Consul agent"
        ),
        version=settings.app_version,
        contact={
            "name": settings.contact.name,
            "email": settings.contact.email,
            "url": settings.contact.url,
        },
        license_info={"name": "MIT License", "url": "https://opensource.org/licenses/MIT"},
        servers=[
            {"url": f"http://localhost:{settings.port}", "description": "Local development server"}
        ],
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    # Application state shared with request dependencies
    client = discovery_client or build_discovery_client(settings)
    policy = ResiliencePolicy.from_settings(settings.resilience)
    app.state.settings = settings
    app.state.runtime = RuntimeInfo()
    app.state.policy = policy
    app.state.discovery_service = DiscoveryService(
        client,
        policy,
        fallback_services=settings.resilience.fallback_services,
    )

    app.add_middleware(
        RequestContextMiddleware,
        header_name=settings.observability.correlation_id_header,
        enable_correlation_ids=settings.observability.enable_correlation_ids,
    )

    # Configure CORS last so it wraps responses generated by upstream middleware.
    if settings.cors.enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.origins,
            allow_credentials=settings.cors.credentials,
            allow_methods=settings.cors.methods,
            allow_headers=settings.cors.headers,
            max_age=settings.cors.max_age,
        )

    register_exception_handlers(app)
    logger.info("exception_handlers.registered")

    register_routers(app)

    @app.get("/api", include_in_schema=False)
    async def api_info() -> dict[str, Any]:
        """API info endpoint (root)."""
        return get_api_info()

    # Metrics endpoint (if metrics enabled)
    if settings.observability.enable_metrics:
        from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

        @app.get("/metrics", include_in_schema=False)
        async def metrics_root() -> Response:
            """Serve Prometheus metrics."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# Create application instance
app = create_application()


# For development server
if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "devquality.consul_service.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.reload or _settings.is_development,
        log_level=_settings.observability.log_level.value.lower(),
    )
