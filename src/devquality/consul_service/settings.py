"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
For nested settings, use double underscore: CONSUL__HOST=consul.internal
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("consul-service", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    app_description: str = Field("Consul Discovery Service", description="Application description")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    profiles: list[str] = Field(default_factory=list, description="Active configuration profiles")
    debug: bool = Field(False, description="Debug mode")
    testing: bool = Field(False, description="Testing mode")

    # Server configuration
    host: str = Field(
        "0.0.0.0", description="Server host"
    )  # nosec B104 - Production deployments use proxy
    port: int = Field(8081, description="Server port")
    root_path: str = Field("/", description="Context path the service is mounted under")
    reload: bool = Field(False, description="Auto-reload on changes")

    # ============================================================
    # Contact (published in OpenAPI and /config/info)
    # ============================================================

    class ContactSettings(BaseModel):
        """Maintainer contact details."""

        name: str = Field("DevQuality Team", description="Contact name")
        email: str = Field("support@devquality.org", description="Contact email")
        url: str = Field("https://devquality.org", description="Contact URL")

    contact: ContactSettings = ContactSettings()  # type: ignore[call-arg]

    # ============================================================
    # CORS Configuration
    # ============================================================

    class CORSSettings(BaseModel):
        """CORS configuration."""

        enabled: bool = Field(True, description="Enable CORS")
        origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed origins")
        methods: list[str] = Field(default_factory=lambda: ["*"], description="Allowed methods")
        headers: list[str] = Field(default_factory=lambda: ["*"], description="Allowed headers")
        credentials: bool = Field(True, description="Allow credentials")
        max_age: int = Field(3600, description="Max age for preflight")

    cors: CORSSettings = CORSSettings()  # type: ignore[call-arg]

    # ============================================================
    # Consul
    # ============================================================

    class ConsulSettings(BaseModel):
        """Consul agent connection and discovery configuration."""

        host: str = Field("localhost", description="Consul agent host")
        port: int = Field(8500, description="Consul agent HTTP port")
        scheme: str = Field("http", description="Consul agent scheme")
        token: str | None = Field(None, description="ACL token")
        datacenter: str | None = Field(None, description="Datacenter to query")
        verify: bool = Field(True, description="Verify TLS certificates")

        discovery_enabled: bool = Field(True, description="Enable service discovery")
        config_enabled: bool = Field(True, description="Enable Consul-backed configuration")
        query_passing: bool = Field(
            False, description="Only return instances whose health checks are passing"
        )

        @property
        def address(self) -> str:
            """Agent base URL."""
            return f"{self.scheme}://{self.host}:{self.port}"

    consul: ConsulSettings = ConsulSettings()  # type: ignore[call-arg]

    # ============================================================
    # Resilience (retry / circuit breaker / time limiter)
    # ============================================================

    class ResilienceSettings(BaseModel):
        """Thresholds for the policy wrapped around registry calls."""

        name: str = Field("consul-service", description="Policy name used in logs and metrics")

        # Retry
        max_attempts: int = Field(3, ge=1, description="Total attempts per call")
        wait_multiplier: float = Field(0.5, description="Exponential backoff multiplier")
        wait_min: float = Field(0.5, description="Minimum wait between attempts (seconds)")
        wait_max: float = Field(5.0, description="Maximum wait between attempts (seconds)")

        # Circuit breaker
        failure_threshold: int = Field(5, ge=1, description="Failures before opening")
        recovery_timeout: float = Field(30.0, description="Seconds before trying half-open")
        half_open_max_requests: int = Field(3, ge=1, description="Trial calls in half-open")

        # Time limiter
        time_limit: float = Field(5.0, gt=0, description="Timeout for async calls (seconds)")

        # Fallback
        fallback_enabled: bool = Field(True, description="Serve fallbacks while the circuit is open")
        fallback_services: list[str] = Field(
            default_factory=lambda: ["consul", "config-server"],
            description="Service names returned by the async listing fallback",
        )

    resilience: ResilienceSettings = ResilienceSettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Observability configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or text)")
        enable_correlation_ids: bool = Field(True, description="Enable correlation IDs")
        correlation_id_header: str = Field("X-Correlation-ID", description="Correlation ID header")
        enable_metrics: bool = Field(True, description="Expose Prometheus metrics at /metrics")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    # ============================================================
    # Management endpoints
    # ============================================================

    class ManagementSettings(BaseModel):
        """Management endpoint exposure."""

        endpoints_exposure: str = Field("*", description="Exposed management endpoints")
        health_show_details: str = Field("always", description="Health detail level")
        disk_warning_percent: float = Field(90.0, description="Disk usage warning threshold")
        memory_warning_percent: float = Field(85.0, description="Memory usage warning threshold")

    management: ManagementSettings = ManagementSettings()  # type: ignore[call-arg]

    # ============================================================
    # Validation & Helpers
    # ============================================================

    @field_validator("environment", mode="before")
    def validate_environment(cls, v: Any) -> Any:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def active_profiles(self) -> list[str]:
        """Active profiles, or ``["default"]`` when none are set."""
        return list(self.profiles) if self.profiles else ["default"]

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing or self.environment == Environment.TEST

    def flatten(self) -> dict[str, Any]:
        """Return every setting keyed by its dotted path (``consul.host``)."""
        flat: dict[str, Any] = {}

        def _walk(prefix: str, value: Any) -> None:
            if isinstance(value, dict):
                for key, item in value.items():
                    _walk(f"{prefix}.{key}" if prefix else key, item)
            else:
                flat[prefix] = value

        _walk("", self.model_dump(mode="json"))
        return flat


def validate_configuration(settings: Settings) -> list[str]:
    """Check settings before startup.

    Returns a list of warnings. Raises ``ValueError`` when the configuration
    cannot be used at all.
    """
    warnings: list[str] = []

    if not settings.consul.host or not settings.consul.host.strip():
        warnings.append("Consul host not configured")
    if not settings.consul.port:
        warnings.append("Consul port not configured")
    if not settings.profiles:
        warnings.append("No active profiles set, using default profile")
    if not settings.app_name or not settings.app_name.strip():
        raise ValueError("app_name must be configured")

    return warnings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (configuration refresh and tests)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
