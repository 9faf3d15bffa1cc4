"""
Discovery API schemas.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devquality.consul_service.discovery.client import RegistryInstance

DEFAULT_INSTANCE_STATUS = "UP"
SERVICE_NAME_PATTERN = r"^[a-zA-Z0-9-_]+$"


class ServiceHealthLabel(str, Enum):
    """Labels used in ``ServiceStats.services_by_status``."""

    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    UNAVAILABLE = "UNAVAILABLE"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServiceInstance(CamelModel):
    """Stable response shape for one service instance."""

    service_id: str
    instance_id: str
    host: str
    port: int
    uri: str
    secure: bool = False
    metadata: dict[str, str] = Field(default_factory=dict)
    status: str = DEFAULT_INSTANCE_STATUS
    scheme: str = "http"

    @property
    def status_reported(self) -> bool:
        """Whether the registry carried an explicit ``status`` for this instance."""
        return "status" in self.metadata

    @property
    def is_up(self) -> bool:
        return self.status.upper() == DEFAULT_INSTANCE_STATUS

    @classmethod
    def from_registry(cls, instance: RegistryInstance) -> "ServiceInstance":
        return cls(
            service_id=instance.service_id,
            instance_id=instance.instance_id,
            host=instance.host,
            port=instance.port,
            uri=instance.uri,
            secure=instance.secure,
            metadata=dict(instance.metadata),
            status=instance.metadata.get("status") or DEFAULT_INSTANCE_STATUS,
            scheme=instance.scheme,
        )


class ServiceStats(CamelModel):
    """Aggregate counts over every registered service."""

    total_services: int = 0
    healthy_services: int = 0
    unhealthy_services: int = 0
    total_instances: int = 0
    services_by_status: dict[str, int] = Field(default_factory=dict)
    instances_by_service: dict[str, int] = Field(default_factory=dict)
    assumed_healthy_services: int = Field(
        0,
        description="Services counted healthy only because no instance reported a status",
    )
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ServiceRegistration(CamelModel):
    """Registration request. Validated and acknowledged, never sent to Consul."""

    service_name: str = Field(
        ...,
        min_length=1,
        pattern=SERVICE_NAME_PATTERN,
        description="Letters, numbers, hyphens and underscores",
        examples=["user-service"],
    )
    host: str = Field(..., min_length=1, examples=["10.0.0.12"])
    port: int = Field(..., gt=0, examples=[8080])
    instance_id: str | None = None
    secure: bool = False
    tags: list[str] | None = None
    metadata: dict[str, str] | None = None
    health_check_path: str = "/actuator/health"
    health_check_interval: int = Field(15, description="Seconds between health checks")
    scheme: str = "http"
