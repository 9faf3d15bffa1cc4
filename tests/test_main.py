"""Tests for application assembly, lifespan and middleware."""

import pytest
from fastapi.testclient import TestClient

from devquality.consul_service.discovery import DiscoveryService
from devquality.consul_service.main import create_application
from devquality.consul_service.resilience import ResiliencePolicy
from devquality.consul_service.responses import ApiResponse
from devquality.consul_service.runtime import RuntimeInfo
from devquality.consul_service.settings import Settings
from tests.fakes import FakeDiscoveryClient

pytestmark = pytest.mark.integration


class TestCreateApplication:
    def test_state_is_wired(self, app, fake_client):
        assert isinstance(app.state.settings, Settings)
        assert isinstance(app.state.runtime, RuntimeInfo)
        assert isinstance(app.state.policy, ResiliencePolicy)
        assert isinstance(app.state.discovery_service, DiscoveryService)
        assert app.state.discovery_service.client is fake_client
        assert app.state.discovery_service.policy is app.state.policy

    def test_openapi_metadata(self, client):
        schema = client.get("/openapi.json").json()

        info = schema["info"]
        assert info["title"] == "Consul Discovery Service API"
        assert info["version"] == "1.0.0"
        assert info["contact"]["name"] == "DevQuality Team"
        assert info["contact"]["email"] == "support@devquality.org"
        assert info["license"]["name"] == "MIT License"
        assert schema["servers"][0]["url"] == "http://localhost:8081"
        assert "/api/v1/consul/services" in schema["paths"]
        assert "/api/v1/config/refresh" in schema["paths"]

    def test_api_info(self, client):
        body = client.get("/api").json()

        assert body["base_path"] == "/api/v1"
        assert body["endpoints"]["consul"] == "/api/v1/consul"

    def test_metrics_can_be_disabled(self):
        settings = Settings(observability=Settings.ObservabilitySettings(enable_metrics=False))
        app = create_application(settings=settings, discovery_client=FakeDiscoveryClient())

        with TestClient(app) as client:
            response = client.get("/metrics")

        assert response.status_code == 404


class TestLifespan:
    def test_client_closed_on_shutdown(self, app, fake_client):
        with TestClient(app):
            assert fake_client.closed is False

        assert fake_client.closed is True

    def test_invalid_configuration_aborts_startup(self):
        app = create_application(
            settings=Settings(app_name=" "), discovery_client=FakeDiscoveryClient()
        )

        with pytest.raises(RuntimeError, match="Invalid configuration"):
            with TestClient(app):
                pass

    def test_uptime_uses_captured_start_time(self, app, client):
        start = app.state.runtime.start_time

        client.get("/api/v1/health")
        client.get("/api/v1/info")

        assert app.state.runtime.start_time == start


class TestRequestContext:
    def test_generates_correlation_id(self, client):
        response = client.get("/api/v1/consul/services")

        assert response.headers["X-Correlation-ID"]
        assert float(response.headers["X-Response-Time-Ms"]) >= 0

    def test_echoes_supplied_correlation_id(self, client):
        response = client.get(
            "/api/v1/consul/services", headers={"X-Correlation-ID": "req-123"}
        )

        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_error_responses_carry_correlation_id(self, client):
        response = client.get("/api/v1/consul/services/ghost")

        assert response.status_code == 404
        assert response.headers["X-Correlation-ID"]

    def test_correlation_ids_can_be_disabled(self):
        settings = Settings(
            observability=Settings.ObservabilitySettings(enable_correlation_ids=False)
        )
        app = create_application(settings=settings, discovery_client=FakeDiscoveryClient())

        with TestClient(app) as client:
            response = client.get(
                "/api/v1/consul/services", headers={"X-Correlation-ID": "req-123"}
            )

        assert response.status_code == 200
        assert "X-Correlation-ID" not in response.headers
        assert float(response.headers["X-Response-Time-Ms"]) >= 0


class TestApiResponse:
    def test_ok_envelope(self):
        response = ApiResponse.ok(["a"], "done", path="/x")

        assert response.success is True
        assert response.error is None
        assert response.path == "/x"
        assert response.timestamp is not None

    def test_failure_requires_error(self):
        with pytest.raises(ValueError):
            ApiResponse(success=False, message="broken")

    def test_fail_envelope(self):
        response = ApiResponse.fail("broken", "SOMETHING_FAILED", path="/y")

        assert response.success is False
        assert response.error == "SOMETHING_FAILED"
        assert response.data is None
