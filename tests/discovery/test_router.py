"""HTTP tests for the service discovery router."""

import pytest

from tests.fakes import FakeDiscoveryClient, make_instance

pytestmark = pytest.mark.integration

BASE = "/api/v1/consul"


class TestListServices:
    def test_list_services(self, client):
        response = client.get(f"{BASE}/services")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == ["user-service", "order-service"]
        assert body["message"] == "Successfully retrieved 2 services"
        assert body["error"] is None
        assert body["path"] == f"{BASE}/services"
        assert body["timestamp"]

    def test_list_services_registry_down(self, client, fake_client):
        fake_client.error = ConnectionError("connection refused")

        response = client.get(f"{BASE}/services")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "CONSUL_CONNECTION_FAILED"
        assert body["message"] == "Failed to retrieve services from Consul"
        assert body["path"] == f"{BASE}/services"

    def test_list_services_async(self, client):
        response = client.get(f"{BASE}/services/async")

        assert response.status_code == 200
        assert response.json()["data"] == ["user-service", "order-service"]

    def test_list_services_async_fallback(self, client, app, fake_client):
        app.state.policy.breaker.failure_threshold = 1
        fake_client.error = ConnectionError("down")

        response = client.get(f"{BASE}/services/async")

        assert response.status_code == 200
        assert response.json()["data"] == ["consul", "config-server"]


class TestServiceInstances:
    def test_get_instances(self, client):
        response = client.get(f"{BASE}/services/user-service")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Successfully retrieved 2 instances for service 'user-service'"
        first = body["data"][0]
        assert first["serviceId"] == "user-service"
        assert first["instanceId"] == "user-service-1"
        assert first["host"] == "10.0.0.1"
        assert first["port"] == 8080
        assert first["uri"] == "http://10.0.0.1:8080"
        assert first["status"] == "UP"

    def test_unknown_service_is_404(self, client):
        response = client.get(f"{BASE}/services/ghost")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "SERVICE_NOT_FOUND"
        assert body["message"] == "Service 'ghost' not found in Consul registry"

    def test_blank_name_is_400_without_registry_call(self, client, fake_client):
        response = client.get(f"{BASE}/services/%20%20")

        assert response.status_code == 400
        assert response.json()["error"] == "ILLEGAL_ARGUMENT"
        assert fake_client.calls == []

    def test_registry_down_is_503(self, client, fake_client):
        fake_client.error = ConnectionError("down")

        response = client.get(f"{BASE}/services/user-service")

        assert response.status_code == 503
        assert response.json()["error"] == "CONSUL_CONNECTION_FAILED"


class TestServiceHealth:
    def test_healthy(self, client):
        response = client.get(f"{BASE}/services/user-service/health")

        assert response.status_code == 200
        body = response.json()
        assert body["data"] is True
        assert body["message"] == "Service 'user-service' is healthy"

    def test_unhealthy(self, client):
        response = client.get(f"{BASE}/services/order-service/health")

        assert response.json()["data"] is False
        assert response.json()["message"] == "Service 'order-service' is unhealthy"

    def test_unknown_service_is_false_not_404(self, client):
        response = client.get(f"{BASE}/services/ghost/health")

        assert response.status_code == 200
        assert response.json()["data"] is False


class TestServiceStats:
    def test_stats_two_service_example(self, client, fake_client):
        fake_client.services = {"a": [make_instance("a")], "b": []}

        response = client.get(f"{BASE}/services/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Service statistics retrieved successfully"
        stats = body["data"]
        assert stats["totalServices"] == 2
        assert stats["healthyServices"] == 1
        assert stats["unhealthyServices"] == 1
        assert stats["totalInstances"] == 1
        assert stats["instancesByService"] == {"a": 1, "b": 0}
        assert stats["servicesByStatus"] == {"HEALTHY": 1, "UNAVAILABLE": 1}
        assert stats["assumedHealthyServices"] == 1
        assert "lastUpdated" in stats

    def test_stats_route_not_shadowed_by_service_name(self, client, fake_client):
        fake_client.services = {}

        response = client.get(f"{BASE}/services/stats")

        assert response.status_code == 200
        assert response.json()["data"]["totalServices"] == 0

    def test_stats_registry_down(self, client, fake_client):
        fake_client.error = ConnectionError("down")

        response = client.get(f"{BASE}/services/stats")

        assert response.status_code == 503
        assert response.json()["message"] == "Failed to calculate service statistics"


class TestRegister:
    def _payload(self, **overrides):
        payload = {"serviceName": "user-service", "host": "10.0.0.1", "port": 8080}
        payload.update(overrides)
        return payload

    @pytest.mark.parametrize("port", [1, 65535])
    def test_boundary_ports_accepted(self, client, port):
        response = client.post(f"{BASE}/register", json=self._payload(port=port))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Service registered successfully"
        assert body["data"] == "Service 'user-service' registered successfully"

    def test_port_zero_rejected(self, client):
        response = client.post(f"{BASE}/register", json=self._payload(port=0))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_FAILED"
        assert "port" in body["data"]

    def test_port_above_range_rejected(self, client):
        response = client.post(f"{BASE}/register", json=self._payload(port=65536))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "SERVICE_REGISTRATION_FAILED"
        assert body["message"] == "Failed to register service: Port must be between 1 and 65535"

    def test_invalid_service_name_rejected(self, client):
        response = client.post(f"{BASE}/register", json=self._payload(serviceName="bad name!"))

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_FAILED"

    def test_missing_host_rejected(self, client):
        payload = self._payload()
        del payload["host"]

        response = client.post(f"{BASE}/register", json=payload)

        assert response.status_code == 400
        assert "host" in response.json()["data"]

    def test_register_does_not_call_registry(self, client, fake_client):
        client.post(f"{BASE}/register", json=self._payload())
        assert fake_client.calls == []


def test_empty_registry_lists_nothing(test_settings):
    from fastapi.testclient import TestClient

    from devquality.consul_service.main import create_application

    app = create_application(settings=test_settings, discovery_client=FakeDiscoveryClient())
    with TestClient(app) as client:
        response = client.get(f"{BASE}/services")

    assert response.json()["data"] == []
    assert response.json()["message"] == "Successfully retrieved 0 services"
