"""
Registry client: the only place that talks to Consul.

The rest of the service depends on the ``DiscoveryClient`` protocol so tests
and alternative registries can be plugged in.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

import consul

from devquality.consul_service.logging import get_logger
from devquality.consul_service.settings import Settings

logger = get_logger(__name__)


@dataclass
class RegistryInstance:
    """One running endpoint of a named service, as reported by the registry."""

    service_id: str
    instance_id: str
    host: str
    port: int
    secure: bool = False
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def uri(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class DiscoveryClient(Protocol):
    """Answers "which services exist" and "which instances does a service have"."""

    def get_services(self) -> list[str]: ...  # pragma: no cover - protocol definition

    def get_instances(
        self, service_name: str
    ) -> list[RegistryInstance]: ...  # pragma: no cover - protocol definition


class ConsulDiscoveryClient:
    """``DiscoveryClient`` backed by the Consul HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8500,
        scheme: str = "http",
        token: str | None = None,
        datacenter: str | None = None,
        verify: bool = True,
        query_passing: bool = False,
    ) -> None:
        self.datacenter = datacenter
        self.query_passing = query_passing
        self._consul = consul.Consul(
            host=host,
            port=port,
            scheme=scheme,
            token=token,
            dc=datacenter,
            verify=verify,
        )

    def get_services(self) -> list[str]:
        """Names of every service in the catalog."""
        _, services = self._consul.catalog.services()
        return list(services or {})

    def get_instances(self, service_name: str) -> list[RegistryInstance]:
        """Instances of ``service_name``; passing-only when configured."""
        _, entries = self._consul.health.service(service_name, passing=self.query_passing)
        return [self._to_instance(entry) for entry in entries or []]

    @staticmethod
    def _to_instance(entry: dict[str, Any]) -> RegistryInstance:
        service = entry.get("Service") or {}
        node = entry.get("Node") or {}
        metadata = {str(k): str(v) for k, v in (service.get("Meta") or {}).items()}

        # Services registered without an address inherit the node's
        host = service.get("Address") or node.get("Address") or ""

        return RegistryInstance(
            service_id=service.get("Service", ""),
            instance_id=service.get("ID", ""),
            host=host,
            port=int(service.get("Port") or 0),
            secure=metadata.get("secure", "").lower() == "true",
            metadata=metadata,
        )

    def close(self) -> None:
        """Release the underlying HTTP session, when the client exposes one."""
        http = getattr(self._consul, "http", None)
        session = getattr(http, "session", None)
        if session is not None:
            session.close()


def build_discovery_client(settings: Settings) -> ConsulDiscoveryClient:
    """Create the Consul-backed client from settings."""
    logger.info(
        "discovery.client.configured",
        address=settings.consul.address,
        datacenter=settings.consul.datacenter,
        query_passing=settings.consul.query_passing,
    )
    return ConsulDiscoveryClient(
        host=settings.consul.host,
        port=settings.consul.port,
        scheme=settings.consul.scheme,
        token=settings.consul.token,
        datacenter=settings.consul.datacenter,
        verify=settings.consul.verify,
        query_passing=settings.consul.query_passing,
    )
