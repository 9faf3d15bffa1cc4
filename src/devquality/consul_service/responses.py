"""
Uniform response envelope returned by every API handler.
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success/error wrapper: ``{success, message, data, error, timestamp, path}``."""

    success: bool
    message: str
    data: T | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    path: str | None = None

    @model_validator(mode="after")
    def _failure_has_error(self) -> "ApiResponse[T]":
        if not self.success and not self.error:
            raise ValueError("error must be set when success is false")
        return self

    @classmethod
    def ok(cls, data: Any, message: str, path: str | None = None) -> "ApiResponse[Any]":
        """Build a success envelope."""
        return cls(success=True, message=message, data=data, path=path)

    @classmethod
    def fail(
        cls,
        message: str,
        error: str,
        path: str | None = None,
        data: Any = None,
    ) -> "ApiResponse[Any]":
        """Build an error envelope."""
        return cls(success=False, message=message, error=error, data=data, path=path)
