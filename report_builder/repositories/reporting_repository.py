"""Reporting repository for data access operations."""

from uuid import UUID

from sqlalchemy.orm import Session

from report_builder.models.reporting import ReportExecution, SavedReport


class ReportingRepository:
    """Repository for saved reports and the execution log.

    Every query is scoped by organization; ``module`` separates this builder's
    rows from those of the other report modules sharing the tables.
    """

    def __init__(self, db: Session, module: str):
        """Initialize repository with database session and module tag."""
        self.db = db
        self.module = module

    # SavedReport operations
    def create_saved_report(self, report_data: dict) -> SavedReport:
        """Create a saved report."""
        report = SavedReport(module=self.module, **report_data)
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)
        return report

    def get_saved_report_by_id(
        self, report_id: UUID, organization_id: int
    ) -> SavedReport | None:
        """Get saved report by ID and organization."""
        return (
            self.db.query(SavedReport)
            .filter(
                SavedReport.id == report_id,
                SavedReport.organization_id == organization_id,
                SavedReport.module == self.module,
            )
            .first()
        )

    def get_saved_reports(self, organization_id: int) -> list[SavedReport]:
        """Get saved reports of an organization, newest first."""
        return (
            self.db.query(SavedReport)
            .filter(
                SavedReport.organization_id == organization_id,
                SavedReport.module == self.module,
            )
            .order_by(SavedReport.created_at.desc())
            .all()
        )

    def delete_saved_report(self, report_id: UUID, organization_id: int) -> bool:
        """Delete a saved report; False when there was nothing to delete."""
        report = self.get_saved_report_by_id(report_id, organization_id)
        if not report:
            return False
        self.db.delete(report)
        self.db.commit()
        return True

    # ReportExecution operations
    def create_execution(self, execution_data: dict) -> ReportExecution:
        """Record a report execution."""
        execution = ReportExecution(module=self.module, **execution_data)
        self.db.add(execution)
        self.db.commit()
        return execution

    def get_recent_executions(
        self, organization_id: int, limit: int = 5
    ) -> list[ReportExecution]:
        """Get the latest executions of an organization, newest first."""
        return (
            self.db.query(ReportExecution)
            .filter(
                ReportExecution.organization_id == organization_id,
                ReportExecution.module == self.module,
            )
            .order_by(ReportExecution.created_at.desc())
            .limit(limit)
            .all()
        )
