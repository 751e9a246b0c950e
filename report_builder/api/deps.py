"""API dependencies: caller identity and the reporting service."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from report_builder.core.db.deps import get_db
from report_builder.core.reporting.service import ReportingService


@dataclass(frozen=True)
class ReportContext:
    """Who is calling: set by the upstream authentication layer."""

    organization_id: int
    user_id: str | None


def get_report_context(
    x_organization_id: Annotated[int, Header(description="Caller organization", ge=1)],
    x_user_id: Annotated[str | None, Header(description="Caller user ID")] = None,
) -> ReportContext:
    """Build the caller context from the identity headers."""
    return ReportContext(organization_id=x_organization_id, user_id=x_user_id)


def get_reporting_service(
    db: Annotated[Session, Depends(get_db)],
) -> ReportingService:
    """Dependency to get ReportingService."""
    return ReportingService(db)


__all__ = [
    "ReportContext",
    "get_db",
    "get_report_context",
    "get_reporting_service",
]
