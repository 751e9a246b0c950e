"""Exceptions raised by the report builder."""

from typing import Any

from fastapi import status

from report_builder.core.exceptions import APIException


class ReportingError(APIException):
    """Base class for report builder errors."""


class ConfigurationError(ReportingError):
    """The report configuration is invalid; raised before any datastore I/O.

    Args:
        errors: Every problem found, each a dict with ``field``, ``reason`` and,
            for filter problems, the filter ``index``.
    """

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        self.errors = errors
        super().__init__(
            code="REPORTING_INVALID_CONFIGURATION",
            message=_summarize(errors),
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"errors": errors},
        )

    @classmethod
    def single(cls, field: str, reason: str, index: int | None = None) -> "ConfigurationError":
        error: dict[str, Any] = {"field": field, "reason": reason}
        if index is not None:
            error["index"] = index
        return cls([error])


class ExecutionError(ReportingError):
    """The datastore fetch failed; wraps the underlying cause."""

    code = "REPORTING_EXECUTION_FAILED"

    def __init__(self, reason: str, source_id: str | None = None) -> None:
        self.reason = reason
        super().__init__(
            code=self.code,
            message=f"Query failed: {reason}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"source_id": source_id, "reason": reason},
        )


class ExecutionTimeoutError(ExecutionError):
    """The optional caller-level execution timeout elapsed."""

    code = "REPORTING_EXECUTION_TIMEOUT"


def _summarize(errors: list[dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = error["field"]
        if "index" in error:
            location = f"filters[{error['index']}].{error['field']}"
        parts.append(f"{location}: {error['reason']}")
    return "Invalid report configuration - " + "; ".join(parts)
