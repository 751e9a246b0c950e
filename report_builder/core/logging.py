"""Structured logging configuration for report builder events."""

import logging
import sys
from typing import Any

from report_builder.core.config import get_settings

settings = get_settings()

# Logger for the whole application; module loggers propagate to it
app_logger = logging.getLogger("report_builder")
app_logger.setLevel(settings.LOG_LEVEL.upper())

# Logger for report builder usage events
report_logger = logging.getLogger("report_builder.reports")

# Create console handler with structured format
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(settings.LOG_LEVEL.upper())

formatter = logging.Formatter(
    settings.LOG_FORMAT,
    datefmt="%Y-%m-%d %H:%M:%S",
)
console_handler.setFormatter(formatter)

# Add handler only once, module reloads must not duplicate output
if not app_logger.handlers:
    app_logger.addHandler(console_handler)


def log_report_executed(
    organization_id: int,
    source_id: str,
    row_count: int,
    duration_ms: int,
    grouped: bool = False,
) -> None:
    """
    Log a successful report execution.

    Args:
        organization_id: Organization the report ran for.
        source_id: Catalog source identifier.
        row_count: Rows in the result.
        duration_ms: Wall-clock duration of the execution.
        grouped: Whether the rows were aggregated by a group-by column.
    """
    report_logger.info(
        f"Report executed - organization_id={organization_id}, source={source_id}, "
        f"rows={row_count}, grouped={grouped}, duration_ms={duration_ms}"
    )


def log_report_failed(
    organization_id: int,
    source_id: str,
    reason: str,
    duration_ms: int | None = None,
) -> None:
    """
    Log a report execution that failed at the datastore boundary.

    Args:
        organization_id: Organization the report ran for.
        source_id: Catalog source identifier.
        reason: Underlying error message.
        duration_ms: Time spent before the failure (optional).
    """
    report_logger.warning(
        f"Report failed - organization_id={organization_id}, source={source_id}, reason={reason}"
        + (f", duration_ms={duration_ms}" if duration_ms is not None else "")
    )


def log_saved_report_change(
    action: str,
    organization_id: int,
    report_id: Any,
    user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log creation or deletion of a saved report.

    Args:
        action: Action performed ('save', 'delete').
        organization_id: Owning organization.
        report_id: Saved report ID.
        user_id: User who performed the action (optional).
        details: Additional details (optional).
    """
    message = (
        f"Saved report {action} - organization_id={organization_id}, report_id={report_id}"
    )
    if user_id:
        message += f", user_id={user_id}"
    if details:
        message += f", details={details}"

    report_logger.info(message)
