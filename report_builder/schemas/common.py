"""Common schemas for standard API responses."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ListMeta(BaseModel):
    """Metadata for collection responses."""

    model_config = ConfigDict(json_schema_extra={"example": {"total": 3}})

    total: int = Field(..., description="Number of items returned", ge=0)


class StandardResponse(BaseModel, Generic[T]):
    """Standard response wrapper for single resources."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"data": {}, "meta": None, "error": None}}
    )

    data: T = Field(..., description="Response data")
    meta: dict | None = Field(None, description="Optional metadata")
    error: None = Field(None, description="Error object (null on success)")


class StandardListResponse(BaseModel, Generic[T]):
    """Standard response wrapper for collections."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"data": [], "meta": {"total": 0}, "error": None}
        }
    )

    data: list[T] = Field(..., description="List of items")
    meta: ListMeta = Field(..., description="Collection metadata")
    error: None = Field(None, description="Error object (null on success)")


class ErrorDetail(BaseModel):
    """Error detail schema following API contract."""

    code: str = Field(..., description="Error code (e.g., 'REPORTING_EXECUTION_FAILED')")
    message: str = Field(..., description="Human-readable error message")
    details: dict | None = Field(None, description="Additional error details")

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "REPORTING_INVALID_CONFIGURATION",
                "message": "Invalid report configuration - sourceId: required",
                "details": {"errors": [{"field": "sourceId", "reason": "required"}]},
            }
        }
    }


class ErrorResponse(BaseModel):
    """Error response schema following API contract."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "REPORTING_EXECUTION_FAILED",
                    "message": "Query failed: connection refused",
                    "details": None,
                },
                "data": None,
            }
        }
    )

    error: ErrorDetail = Field(..., description="Error information")
    data: None = Field(None, description="Data object (null on error)")
