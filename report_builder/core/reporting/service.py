"""Reporting service: execution, saved reports and usage tracking."""

import logging
import time
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from report_builder.core.config import Settings, get_settings
from report_builder.core.logging import log_saved_report_change
from report_builder.core.reporting.catalog import (
    SourceDefinition,
    get_source,
    list_sources,
)
from report_builder.core.reporting.data_source import BaseDataSource, SqlAlchemyDataSource
from report_builder.core.reporting.engine import ReportingEngine
from report_builder.core.reporting.exceptions import ExecutionError
from report_builder.models.reporting import ReportExecution, SavedReport
from report_builder.repositories.reporting_repository import ReportingRepository
from report_builder.schemas.reporting import ReportConfig, ReportResult

logger = logging.getLogger(__name__)


class ReportingService:
    """Service for running and storing custom reports."""

    def __init__(
        self,
        db: Session,
        data_source: BaseDataSource | None = None,
        settings: Settings | None = None,
    ):
        """Initialize service with database session.

        Args:
            db: Database session for saved reports and the execution log
            data_source: Where report rows come from (defaults to the same session)
            settings: Application settings (defaults to the cached app settings)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.repository = ReportingRepository(db, self.settings.SAVED_REPORTS_MODULE)
        self.engine = ReportingEngine(
            data_source
            or SqlAlchemyDataSource(db, self.settings.REPORT_EXECUTION_TIMEOUT_SECONDS),
            self.settings,
        )

    def get_source(self, source_id: str) -> SourceDefinition | None:
        return get_source(source_id)

    def list_sources(self) -> list[SourceDefinition]:
        return list_sources()

    async def execute(
        self,
        organization_id: int,
        config: ReportConfig,
        user_id: str | None = None,
    ) -> ReportResult:
        """Execute a report and record the execution.

        Configuration errors propagate untouched and are not recorded, since
        nothing ran.

        Args:
            organization_id: Tenant the rows are scoped to
            config: Report configuration
            user_id: User running the report (optional)

        Returns:
            Report result

        Raises:
            ConfigurationError: If the configuration is invalid
            ExecutionError: If the datastore fetch fails
        """
        started = time.perf_counter()
        try:
            result = await self.engine.execute(organization_id, config)
        except ExecutionError as e:
            self._record_execution(
                organization_id, user_id, config, "failed", 0, started, str(e)
            )
            raise

        self._record_execution(
            organization_id, user_id, config, "completed", result.total, started
        )
        return result

    def _record_execution(
        self,
        organization_id: int,
        user_id: str | None,
        config: ReportConfig,
        status: str,
        row_count: int,
        started: float,
        error_message: str | None = None,
    ) -> None:
        """Store one entry of the execution log.

        Best-effort: a failure here is logged and never reaches the caller.
        """
        if not self.settings.LOG_TO_DB:
            return
        try:
            # A failed fetch may have left the session in a failed transaction
            self.db.rollback()
            self.repository.create_execution(
                {
                    "organization_id": organization_id,
                    "user_id": user_id,
                    "source_id": config.source_id,
                    "filters": config.to_json_dict(),
                    "status": status,
                    "row_count": row_count,
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                    "error_message": error_message,
                }
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Could not record execution of '{config.source_id}' "
                f"for organization {organization_id}: {e}"
            )

    def save_report(
        self,
        organization_id: int,
        user_id: str | None,
        name: str,
        config: ReportConfig,
        description: str | None = None,
    ) -> SavedReport | None:
        """Save a report configuration.

        Duplicate names are allowed.

        Args:
            organization_id: Owning organization
            user_id: User saving the report
            name: Report name (non-blank)
            config: Configuration stored verbatim
            description: Report description (optional)

        Returns:
            Saved report, or None if it could not be stored
        """
        name = (name or "").strip()
        if not name:
            logger.info(f"Refused to save a report without a name for organization {organization_id}")
            return None

        try:
            report = self.repository.create_saved_report(
                {
                    "organization_id": organization_id,
                    "user_id": user_id,
                    "name": name,
                    "description": description,
                    "filters": config.to_json_dict(),
                }
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save report '{name}' for organization {organization_id}: {e}")
            return None

        log_saved_report_change(
            "save", organization_id, report.id, user_id, {"name": name, "source": config.source_id}
        )
        return report

    def get_saved_reports(self, organization_id: int) -> list[SavedReport]:
        """Saved reports of an organization, newest first."""
        return self.repository.get_saved_reports(organization_id)

    def get_saved_report(
        self, report_id: UUID, organization_id: int
    ) -> SavedReport | None:
        return self.repository.get_saved_report_by_id(report_id, organization_id)

    def delete_saved_report(self, report_id: UUID, organization_id: int) -> bool:
        """Delete a saved report.

        Returns:
            True if a report was deleted; False if it did not exist or the
            delete failed
        """
        try:
            deleted = self.repository.delete_saved_report(report_id, organization_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete saved report {report_id}: {e}")
            return False

        if deleted:
            log_saved_report_change("delete", organization_id, report_id)
        return deleted

    def get_recent_executions(
        self, organization_id: int, limit: int = 5
    ) -> list[ReportExecution]:
        return self.repository.get_recent_executions(organization_id, limit)
