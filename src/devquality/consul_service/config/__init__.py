"""Health, info and configuration endpoints."""

from devquality.consul_service.config.router import get_app_settings, health_router, router

__all__ = ["get_app_settings", "health_router", "router"]
