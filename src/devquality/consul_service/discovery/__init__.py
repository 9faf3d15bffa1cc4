"""
Service discovery over Consul.

Provides:
- DiscoveryClient protocol and the Consul-backed implementation
- DiscoveryService facade (lookups, statistics, registration validation)
- REST router mounted at /api/v1/consul
"""

from devquality.consul_service.discovery.client import (
    ConsulDiscoveryClient,
    DiscoveryClient,
    RegistryInstance,
    build_discovery_client,
)
from devquality.consul_service.discovery.models import (
    ServiceInstance,
    ServiceRegistration,
    ServiceStats,
)
from devquality.consul_service.discovery.service import DiscoveryService

__all__ = [
    "ConsulDiscoveryClient",
    "DiscoveryClient",
    "DiscoveryService",
    "RegistryInstance",
    "ServiceInstance",
    "ServiceRegistration",
    "ServiceStats",
    "build_discovery_client",
]
