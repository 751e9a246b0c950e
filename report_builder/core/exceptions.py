"""Custom exceptions for API error handling."""

from typing import Any

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Custom exception for API errors with standard format.

    Every error leaves the service as ``{"error": {...}, "data": null}``.

    Example:
        raise APIException(
            code="REPORTING_SOURCE_NOT_FOUND",
            message="Source not found",
            status_code=status.HTTP_404_NOT_FOUND
        )
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API exception.

        Args:
            code: Error code (e.g., 'REPORTING_INVALID_CONFIGURATION').
            message: Human-readable error message.
            status_code: HTTP status code (default: 400).
            details: Optional additional error details.
        """
        super().__init__(
            status_code=status_code,
            detail={"error": {"code": code, "message": message, "details": details}},
        )
        self.code = code
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


# Helper functions for common error codes
def raise_not_found(
    resource: str, resource_id: str | None = None, code: str | None = None
) -> None:
    """Raise 404 Not Found exception.

    Args:
        resource: Resource type (e.g., 'Saved report', 'Source').
        resource_id: Optional resource ID.
        code: Error code (default: derived from the resource type).

    Raises:
        APIException: 404 Not Found error.
    """
    message = f"{resource} not found"
    if resource_id:
        message += f" (ID: {resource_id})"
    raise APIException(
        code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
        message=message,
        status_code=status.HTTP_404_NOT_FOUND,
    )


def raise_internal_server_error(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Raise 500 Internal Server Error exception.

    Args:
        code: Error code.
        message: Error message.
        details: Optional error details.

    Raises:
        APIException: 500 Internal Server Error.
    """
    raise APIException(
        code=code,
        message=message,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details=details,
    )
