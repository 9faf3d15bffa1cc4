"""Consul service exceptions.

Every error carries the HTTP status and error code it is reported with.
"""

from http import HTTPStatus


class ConsulServiceError(Exception):
    """Base exception for the discovery service."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class ConsulConnectionError(ConsulServiceError):
    """Raised when the Consul agent cannot be reached or answers with an error."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    error_code = "CONSUL_CONNECTION_FAILED"


class CircuitOpenError(ConsulServiceError):
    """Raised when the circuit breaker rejects a registry call."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    error_code = "CIRCUIT_OPEN"


class ServiceNotFoundError(ConsulServiceError):
    """Raised when a service has no registered instances."""

    status_code = HTTPStatus.NOT_FOUND
    error_code = "SERVICE_NOT_FOUND"

    def __init__(self, service_name: str) -> None:
        super().__init__(f"Service '{service_name}' not found in Consul registry")
        self.service_name = service_name


class InvalidArgumentError(ConsulServiceError, ValueError):
    """Raised for blank or malformed arguments."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "ILLEGAL_ARGUMENT"


class ServiceRegistrationError(ConsulServiceError):
    """Raised when a registration request is rejected."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "SERVICE_REGISTRATION_FAILED"


class PropertyNotFoundError(ConsulServiceError):
    """Raised when a configuration property does not exist."""

    status_code = HTTPStatus.NOT_FOUND
    error_code = "PROPERTY_NOT_FOUND"

    def __init__(self, key: str) -> None:
        super().__init__(f"Property '{key}' not found")
        self.key = key
