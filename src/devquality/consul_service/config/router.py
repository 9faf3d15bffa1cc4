"""
Health, info and configuration endpoints.
"""

import asyncio
from datetime import UTC, datetime
from typing import Annotated, Any

import psutil
from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import JSONResponse

from devquality.consul_service.discovery.router import DiscoveryServiceDep
from devquality.consul_service.exceptions import InvalidArgumentError, PropertyNotFoundError
from devquality.consul_service.logging import get_logger
from devquality.consul_service.responses import ApiResponse
from devquality.consul_service.runtime import RuntimeInfo, get_runtime
from devquality.consul_service.settings import Settings, get_settings, reset_settings

logger = get_logger(__name__)

health_router = APIRouter()
router = APIRouter(prefix="/config")

SECRET_SUFFIXES = ("token", "password", "secret")
MASK = "******"


def get_app_settings(request: Request) -> Settings:
    """Settings snapshot held by the running application."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
RuntimeDep = Annotated[RuntimeInfo, Depends(get_runtime)]


def _mask(key: str, value: Any) -> Any:
    if value is not None and key.lower().endswith(SECRET_SUFFIXES):
        return MASK
    return value


def _status(percent: float, threshold: float) -> str:
    return "UP" if percent < threshold else "WARNING"


async def _consul_status(service: Any) -> str:
    try:
        await asyncio.wait_for(
            asyncio.to_thread(service.client.get_services), timeout=service.policy.time_limit
        )
    except TimeoutError:
        logger.warning("health.consul.timeout", time_limit=service.policy.time_limit)
        return "DOWN"
    except Exception as e:
        logger.warning("health.consul.down", error=str(e))
        return "DOWN"
    return "UP"


# ========================================
# Health & Info
# ========================================


@health_router.get("/health", summary="Application health check")
async def health(
    request: Request,
    settings: SettingsDep,
    runtime: RuntimeDep,
    service: DiscoveryServiceDep,
) -> Any:
    """Current health of the application and its dependencies."""
    try:
        checks = {
            "application": "UP",
            "consul": await _consul_status(service),
            "disk_space": _status(
                psutil.disk_usage("/").percent, settings.management.disk_warning_percent
            ),
            "memory": _status(
                psutil.virtual_memory().percent, settings.management.memory_warning_percent
            ),
        }
        payload = {
            "status": "UP" if checks["consul"] == "UP" else "DEGRADED",
            "service": settings.app_name,
            "port": settings.port,
            "timestamp": datetime.now(UTC),
            "uptime_minutes": runtime.uptime_minutes(),
            "checks": checks,
            "version": settings.app_version,
        }
    except Exception as e:
        logger.error("health.check.failed", error=str(e))
        body = ApiResponse.fail(
            "Application health check failed",
            "HEALTH_CHECK_FAILED",
            path=request.url.path,
            data={"status": "DOWN", "error": str(e), "timestamp": datetime.now(UTC)},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json", by_alias=True),
        )

    logger.debug("health.check.requested", service=settings.app_name)
    return ApiResponse.ok(payload, "Application is healthy", path=request.url.path)


@health_router.get(
    "/info", response_model=ApiResponse[dict[str, Any]], summary="Application information"
)
def info(request: Request, settings: SettingsDep, runtime: RuntimeDep) -> ApiResponse[dict[str, Any]]:
    """Detailed information about the application."""
    payload = {
        "application": {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": settings.app_description,
            "port": settings.port,
        },
        "environment": {
            "active_profiles": settings.active_profiles,
            **runtime.environment(),
        },
        "runtime": {
            "start_time": runtime.start_time,
            "uptime_minutes": runtime.uptime_minutes(),
            **runtime.resources(),
        },
        "consul": {
            "host": settings.consul.host,
            "port": settings.consul.port,
            "discovery_enabled": settings.consul.discovery_enabled,
            "config_enabled": settings.consul.config_enabled,
        },
    }
    return ApiResponse.ok(
        payload, "Application information retrieved successfully", path=request.url.path
    )


# ========================================
# Configuration
# ========================================


@router.get(
    "/properties",
    response_model=ApiResponse[dict[str, Any]],
    summary="Get all application properties",
)
def get_all_properties(request: Request, settings: SettingsDep) -> ApiResponse[dict[str, Any]]:
    """Current configuration, grouped by area."""
    properties = {
        "application": {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": settings.app_description,
            "environment": settings.environment.value,
            "active_profiles": settings.active_profiles,
        },
        "server": {
            "host": settings.host,
            "port": settings.port,
            "root_path": settings.root_path,
        },
        "consul": {
            "host": settings.consul.host,
            "port": settings.consul.port,
            "discovery_enabled": settings.consul.discovery_enabled,
            "config_enabled": settings.consul.config_enabled,
        },
        "resilience": {
            "max_attempts": settings.resilience.max_attempts,
            "failure_threshold": settings.resilience.failure_threshold,
            "recovery_timeout": settings.resilience.recovery_timeout,
            "time_limit": settings.resilience.time_limit,
        },
        "management": {
            "endpoints_exposure": settings.management.endpoints_exposure,
            "health_show_details": settings.management.health_show_details,
        },
    }
    logger.info("config.properties.retrieved")
    return ApiResponse.ok(
        properties, "Configuration properties retrieved successfully", path=request.url.path
    )


@router.get(
    "/properties/{key}",
    response_model=ApiResponse[dict[str, Any]],
    summary="Get specific property",
    responses={
        400: {"description": "Invalid property key"},
        404: {"description": "Property not found"},
    },
)
def get_property(
    key: Annotated[str, Path(description="Dotted property key", examples=["consul.host"])],
    request: Request,
    settings: SettingsDep,
) -> ApiResponse[dict[str, Any]]:
    """A single property by its dotted key."""
    if not key or not key.strip():
        raise InvalidArgumentError("Property key cannot be null or empty")

    flat = settings.flatten()
    if key not in flat:
        logger.warning("config.property.not_found", key=key)
        raise PropertyNotFoundError(key)

    value = _mask(key, flat[key])
    logger.debug("config.property.retrieved", key=key)
    return ApiResponse.ok(
        {"key": key, "value": value, "timestamp": datetime.now(UTC)},
        f"Property '{key}' retrieved successfully",
        path=request.url.path,
    )


@router.get("/info", response_model=ApiResponse[dict[str, Any]], summary="Get application info")
def get_application_info(
    request: Request, settings: SettingsDep, runtime: RuntimeDep
) -> ApiResponse[dict[str, Any]]:
    """Basic application information."""
    payload = {
        "application": {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": settings.app_description,
        },
        "environment": {
            "active_profiles": settings.active_profiles,
            "python_version": runtime.environment()["python_version"],
        },
        "consul": {
            "host": settings.consul.host,
            "port": settings.consul.port,
        },
        "contact": {
            "name": settings.contact.name,
            "email": settings.contact.email,
        },
        "timestamp": datetime.now(UTC),
    }
    return ApiResponse.ok(
        payload, "Application information retrieved successfully", path=request.url.path
    )


@router.post("/refresh", response_model=ApiResponse[dict[str, Any]], summary="Refresh configuration")
def refresh_configuration(request: Request) -> ApiResponse[dict[str, Any]]:
    """Reload settings from the environment and swap the application's snapshot.

    Thresholds already applied to the resilience policy keep their startup values.
    """
    previous: Settings = request.app.state.settings
    reset_settings()
    current = get_settings()
    request.app.state.settings = current

    before, after = previous.flatten(), current.flatten()
    changed = sorted(k for k in before.keys() | after.keys() if before.get(k) != after.get(k))

    logger.info("config.refreshed", changed=changed)
    return ApiResponse.ok(
        {
            "status": "SUCCESS",
            "changed": changed,
            "timestamp": datetime.now(UTC),
        },
        "Configuration refresh triggered successfully",
        path=request.url.path,
    )


@router.get("/profiles", response_model=ApiResponse[dict[str, Any]], summary="Get environment profiles")
def get_profiles(request: Request, settings: SettingsDep) -> ApiResponse[dict[str, Any]]:
    """Active and default configuration profiles."""
    payload = {
        "active": settings.active_profiles,
        "default": ["default"],
        "count": len(settings.profiles),
        "timestamp": datetime.now(UTC),
    }
    return ApiResponse.ok(
        payload, "Environment profiles retrieved successfully", path=request.url.path
    )
