"""Reporting models for saved report configurations and the execution log."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from report_builder.core.db.session import Base
from report_builder.schemas.reporting import ReportConfig

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class SavedReport(Base):
    """Saved report configuration.

    The ``filters`` column holds the entire ``ReportConfig``; the table is
    shared with the other report modules, told apart by ``module``.
    """

    __tablename__ = "saved_reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    organization_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    module = Column(String(50), nullable=False, default="personalizados", index=True)
    filters = Column(JSONType, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_saved_reports_org_module", "organization_id", "module"),
    )

    @property
    def config(self) -> ReportConfig:
        """Stored configuration parsed as a ``ReportConfig``."""
        return ReportConfig.model_validate(self.filters)

    def __repr__(self) -> str:
        return f"<SavedReport(id={self.id}, name={self.name!r}, organization_id={self.organization_id})>"


class ReportExecution(Base):
    """One report execution, successful or failed."""

    __tablename__ = "report_executions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    organization_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    module = Column(String(50), nullable=False, default="personalizados")
    source_id = Column(String(100), nullable=False)
    filters = Column(JSONType, nullable=True)
    status = Column(String(20), nullable=False)  # completed, failed
    row_count = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_report_executions_org_created", "organization_id", "created_at"),
    )
