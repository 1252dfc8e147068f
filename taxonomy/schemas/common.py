"""Common schemas for service and API responses."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ServiceResponse(BaseModel, Generic[T]):
    """Outcome of a taxonomy service command.

    Validation failures come back with ``ok=False``, a 422 status and the
    list of field errors instead of raising.
    """

    ok: bool = Field(description="Whether the command succeeded")
    message: str = Field(description="Human readable outcome")
    data: T | None = Field(default=None, description="Command result data")
    errors: list[str] | None = Field(default=None, description="Validation errors")
    status: int = Field(default=200, description="HTTP-equivalent status code")

    model_config = {"extra": "forbid"}


class Page(BaseModel, Generic[T]):
    """One page of a listing."""

    items: list[T] = Field(default_factory=list)
    total: int = Field(description="Number of rows across all pages")
    page: int = Field(ge=1, description="1-based page number")
    page_size: int = Field(ge=1, description="Rows per page")
    last_page: int = Field(ge=1, description="Number of the last page")


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    message: str = Field(description="Error message")
    error_type: str = Field(description="Error type/class name")
    detail: dict[str, Any] | None = Field(default=None, description="Additional error details")

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status (healthy, degraded)")
    version: str = Field(description="Service version")
    environment: str = Field(description="Environment name")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual health checks")

    model_config = {"extra": "forbid"}
