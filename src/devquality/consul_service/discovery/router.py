"""
Service Discovery API Router
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, status

from devquality.consul_service.discovery.models import (
    ServiceInstance,
    ServiceRegistration,
    ServiceStats,
)
from devquality.consul_service.discovery.service import DiscoveryService
from devquality.consul_service.logging import get_logger
from devquality.consul_service.responses import ApiResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/consul")

ServiceNameParam = Annotated[
    str, Path(description="Name of the service", examples=["user-service"])
]


def get_discovery_service(request: Request) -> DiscoveryService:
    """Discovery service built at application startup."""
    return request.app.state.discovery_service


DiscoveryServiceDep = Annotated[DiscoveryService, Depends(get_discovery_service)]


@router.get(
    "/services",
    response_model=ApiResponse[list[str]],
    summary="Get all registered services",
    responses={503: {"description": "Consul connection failed"}},
)
def get_registered_services(
    request: Request, service: DiscoveryServiceDep
) -> ApiResponse[list[str]]:
    """Retrieve all services registered in Consul."""
    logger.info("api.services.list")
    services = service.get_registered_services()
    return ApiResponse.ok(
        services,
        f"Successfully retrieved {len(services)} services",
        path=request.url.path,
    )


@router.get(
    "/services/async",
    response_model=ApiResponse[list[str]],
    summary="Get all registered services (async)",
    responses={503: {"description": "Consul connection failed"}},
)
async def get_registered_services_async(
    request: Request, service: DiscoveryServiceDep
) -> ApiResponse[list[str]]:
    """Retrieve all services through the retry/circuit-breaker/time-limit policy."""
    logger.info("api.services.list_async")
    services = await service.get_registered_services_async()
    return ApiResponse.ok(
        services,
        f"Successfully retrieved {len(services)} services",
        path=request.url.path,
    )


@router.get(
    "/services/stats",
    response_model=ApiResponse[ServiceStats],
    summary="Get service statistics",
    responses={503: {"description": "Consul connection failed"}},
)
def get_service_stats(request: Request, service: DiscoveryServiceDep) -> ApiResponse[ServiceStats]:
    """Retrieve aggregate statistics about all services."""
    logger.info("api.services.stats")
    stats = service.get_service_stats()
    return ApiResponse.ok(
        stats, "Service statistics retrieved successfully", path=request.url.path
    )


@router.get(
    "/services/{service_name}",
    response_model=ApiResponse[list[ServiceInstance]],
    summary="Get service instances",
    responses={
        400: {"description": "Invalid service name"},
        404: {"description": "Service not found"},
        503: {"description": "Consul connection failed"},
    },
)
def get_service_instances(
    service_name: ServiceNameParam, request: Request, service: DiscoveryServiceDep
) -> ApiResponse[list[ServiceInstance]]:
    """Retrieve all instances of a specific service."""
    logger.info("api.services.instances", service=service_name)
    instances = service.get_service_instances(service_name)
    return ApiResponse.ok(
        instances,
        f"Successfully retrieved {len(instances)} instances for service '{service_name}'",
        path=request.url.path,
    )


@router.get(
    "/services/{service_name}/health",
    response_model=ApiResponse[bool],
    summary="Check service health",
)
def check_service_health(
    service_name: ServiceNameParam, request: Request, service: DiscoveryServiceDep
) -> ApiResponse[bool]:
    """Check if a service has healthy instances."""
    logger.info("api.services.health", service=service_name)
    healthy = service.is_service_healthy(service_name)
    return ApiResponse.ok(
        healthy,
        f"Service '{service_name}' is {'healthy' if healthy else 'unhealthy'}",
        path=request.url.path,
    )


@router.post(
    "/register",
    response_model=ApiResponse[str],
    status_code=status.HTTP_201_CREATED,
    summary="Register a service",
    responses={
        400: {"description": "Invalid service registration data"},
    },
)
def register_service(
    registration: ServiceRegistration, request: Request, service: DiscoveryServiceDep
) -> ApiResponse[str]:
    """Validate and acknowledge a registration request."""
    logger.info("api.services.register", service=registration.service_name)
    result = service.register_service(registration)
    return ApiResponse.ok(result, "Service registered successfully", path=request.url.path)
