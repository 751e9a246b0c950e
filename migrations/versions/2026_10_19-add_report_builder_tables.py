"""Add report builder tables: saved_reports, report_executions

Revision ID: add_report_builder_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "add_report_builder_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Saved configurations; "filters" holds the whole report config
    op.create_table(
        "saved_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("module", sa.String(length=50), nullable=False, server_default="personalizados"),
        sa.Column("filters", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_saved_reports_organization_id", "saved_reports", ["organization_id"], unique=False)
    op.create_index("ix_saved_reports_module", "saved_reports", ["module"], unique=False)
    op.create_index("idx_saved_reports_org_module", "saved_reports", ["organization_id", "module"], unique=False)

    # Execution log
    op.create_table(
        "report_executions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("module", sa.String(length=50), nullable=False, server_default="personalizados"),
        sa.Column("source_id", sa.String(length=100), nullable=False),
        sa.Column("filters", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_report_executions_organization_id", "report_executions", ["organization_id"], unique=False)
    op.create_index(
        "idx_report_executions_org_created",
        "report_executions",
        ["organization_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_report_executions_org_created", table_name="report_executions")
    op.drop_index("ix_report_executions_organization_id", table_name="report_executions")
    op.drop_table("report_executions")

    op.drop_index("idx_saved_reports_org_module", table_name="saved_reports")
    op.drop_index("ix_saved_reports_module", table_name="saved_reports")
    op.drop_index("ix_saved_reports_organization_id", table_name="saved_reports")
    op.drop_table("saved_reports")
