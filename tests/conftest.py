"""
Global pytest configuration and fixtures for the Consul Discovery Service tests.
"""

import os

import pytest
from fastapi.testclient import TestClient

# Keep test runs independent of a developer's .env and console-friendly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("OBSERVABILITY__LOG_FORMAT", "text")

from devquality.consul_service.main import create_application  # noqa: E402
from devquality.consul_service.resilience import ResiliencePolicy  # noqa: E402
from devquality.consul_service.settings import Settings, reset_settings  # noqa: E402
from tests.fakes import FakeDiscoveryClient, make_instance  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_global_settings():
    """Drop the cached settings singleton between tests."""
    yield
    reset_settings()


@pytest.fixture
def fake_client() -> FakeDiscoveryClient:
    return FakeDiscoveryClient(
        {
            "user-service": [
                make_instance("user-service", 1, status="UP"),
                make_instance("user-service", 2, status="DOWN", host="10.0.0.2"),
            ],
            "order-service": [make_instance("order-service", 1, status="DOWN")],
        }
    )


@pytest.fixture
def fast_policy() -> ResiliencePolicy:
    """Policy with no backoff so retries run instantly."""
    return ResiliencePolicy(
        name="test-policy",
        max_attempts=3,
        wait_multiplier=0,
        wait_min=0,
        wait_max=0,
        failure_threshold=5,
        recovery_timeout=30,
        half_open_max_requests=1,
        time_limit=1.0,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        profiles=["test"],
        resilience=Settings.ResilienceSettings(wait_multiplier=0, wait_min=0, wait_max=0),
    )


@pytest.fixture
def app(test_settings: Settings, fake_client: FakeDiscoveryClient):
    return create_application(settings=test_settings, discovery_client=fake_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
