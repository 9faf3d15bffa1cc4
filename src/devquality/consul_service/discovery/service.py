"""
Discovery service: facade over the registry client.

Lookups, statistics aggregation, registration validation and health checks.
"""

from collections import Counter

from devquality.consul_service.discovery.client import DiscoveryClient
from devquality.consul_service.discovery.models import (
    ServiceHealthLabel,
    ServiceInstance,
    ServiceRegistration,
    ServiceStats,
)
from devquality.consul_service.exceptions import (
    ConsulConnectionError,
    InvalidArgumentError,
    ServiceNotFoundError,
    ServiceRegistrationError,
)
from devquality.consul_service.logging import get_logger
from devquality.consul_service.resilience import ResiliencePolicy

logger = get_logger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


class DiscoveryService:
    """Service discovery operations exposed over HTTP."""

    def __init__(
        self,
        client: DiscoveryClient,
        policy: ResiliencePolicy,
        fallback_services: list[str] | None = None,
    ) -> None:
        self.client = client
        self.policy = policy
        self.fallback_services = list(fallback_services or [])

    # ------------------------------------------------------------------
    # Service listing
    # ------------------------------------------------------------------

    def get_registered_services(self) -> list[str]:
        """Names of every registered service."""
        try:
            services = self.client.get_services()
        except Exception as e:
            logger.error("discovery.services.failed", error=str(e))
            raise ConsulConnectionError("Failed to retrieve services from Consul") from e

        logger.info("discovery.services.found", count=len(services), services=services)
        return services

    async def get_registered_services_async(self) -> list[str]:
        """Same lookup on the thread pool, behind retry, breaker and time limit."""
        return await self.policy.call_async(
            "get_registered_services",
            self.get_registered_services,
            fallback=self._services_fallback,
        )

    def _services_fallback(self, exc: Exception) -> list[str]:
        logger.warning(
            "discovery.services.fallback", reason=str(exc), services=self.fallback_services
        )
        return list(self.fallback_services)

    # ------------------------------------------------------------------
    # Instance lookup
    # ------------------------------------------------------------------

    def get_service_instances(self, service_name: str) -> list[ServiceInstance]:
        """Instances of ``service_name``.

        Raises:
            InvalidArgumentError: blank name, before the registry is called
            ServiceNotFoundError: the registry reports zero instances
            ConsulConnectionError: the registry could not be queried
        """
        if service_name is None or not service_name.strip():
            raise InvalidArgumentError("Service name cannot be null or empty")

        return self.policy.call("get_service_instances", self._fetch_instances, service_name)

    def _fetch_instances(self, service_name: str) -> list[ServiceInstance]:
        try:
            records = self.client.get_instances(service_name)
        except Exception as e:
            logger.error("discovery.instances.failed", service=service_name, error=str(e))
            raise ConsulConnectionError("Failed to retrieve service instances") from e

        if not records:
            logger.warning("discovery.instances.none", service=service_name)
            raise ServiceNotFoundError(service_name)

        try:
            instances = [ServiceInstance.from_registry(record) for record in records]
        except Exception as e:
            logger.error("discovery.instances.malformed", service=service_name, error=str(e))
            raise ConsulConnectionError("Failed to retrieve service instances") from e

        logger.info(
            "discovery.instances.found",
            service=service_name,
            count=len(instances),
            instance_ids=[i.instance_id for i in instances],
        )
        return instances

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def is_service_healthy(self, service_name: str) -> bool:
        """True if any instance is UP. Never raises."""
        try:
            instances = self.get_service_instances(service_name)
        except ServiceNotFoundError:
            return False
        except Exception as e:
            logger.error("discovery.health.failed", service=service_name, error=str(e))
            return False

        return any(instance.is_up for instance in instances)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_service_stats(self) -> ServiceStats:
        """Aggregate counts over every registered service.

        A service with no instances is tallied as unavailable; any other
        lookup failure aborts the whole aggregation.
        """
        try:
            services = self.get_registered_services()

            instances_by_service: dict[str, int] = {}
            services_by_status: Counter[str] = Counter()
            total_instances = 0
            healthy_services = 0
            assumed_healthy = 0

            for service_name in services:
                try:
                    instances = self.get_service_instances(service_name)
                except ServiceNotFoundError:
                    instances_by_service[service_name] = 0
                    services_by_status[ServiceHealthLabel.UNAVAILABLE.value] += 1
                    continue

                instances_by_service[service_name] = len(instances)
                total_instances += len(instances)

                if any(instance.is_up for instance in instances):
                    healthy_services += 1
                    services_by_status[ServiceHealthLabel.HEALTHY.value] += 1
                    if not any(instance.status_reported for instance in instances):
                        assumed_healthy += 1
                else:
                    services_by_status[ServiceHealthLabel.UNHEALTHY.value] += 1

        except Exception as e:
            logger.error("discovery.stats.failed", error=str(e))
            raise ConsulConnectionError("Failed to calculate service statistics") from e

        return ServiceStats(
            total_services=len(services),
            healthy_services=healthy_services,
            unhealthy_services=len(services) - healthy_services,
            total_instances=total_instances,
            services_by_status=dict(services_by_status),
            instances_by_service=instances_by_service,
            assumed_healthy_services=assumed_healthy,
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_service(self, registration: ServiceRegistration) -> str:
        """Validate a registration request and acknowledge it.

        Nothing is written to Consul; the agent registers this process itself.
        """
        try:
            self._validate_registration(registration)
        except InvalidArgumentError as e:
            logger.error(
                "discovery.registration.rejected",
                service=registration.service_name,
                error=str(e),
            )
            raise ServiceRegistrationError(f"Failed to register service: {e}") from e

        logger.info(
            "discovery.registration.validated",
            service=registration.service_name,
            host=registration.host,
            port=registration.port,
            instance_id=registration.instance_id,
        )
        return f"Service '{registration.service_name}' registered successfully"

    @staticmethod
    def _validate_registration(registration: ServiceRegistration) -> None:
        if not registration.service_name or not registration.service_name.strip():
            raise InvalidArgumentError("Service name is required")

        if not registration.host or not registration.host.strip():
            raise InvalidArgumentError("Host is required")

        port = registration.port
        if port is None or port < MIN_PORT or port > MAX_PORT:
            raise InvalidArgumentError(f"Port must be between {MIN_PORT} and {MAX_PORT}")

        if not registration.instance_id or not registration.instance_id.strip():
            registration.instance_id = (
                f"{registration.service_name}:{registration.host}:{registration.port}"
            )
