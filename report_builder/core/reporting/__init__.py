"""Ad-hoc report builder: catalog, validation, compilation and execution."""

from report_builder.core.reporting.catalog import ColumnDef, ColumnType, SourceDefinition
from report_builder.core.reporting.data_source import BaseDataSource, SqlAlchemyDataSource
from report_builder.core.reporting.engine import ReportingEngine
from report_builder.core.reporting.exceptions import (
    ConfigurationError,
    ExecutionError,
    ExecutionTimeoutError,
)
from report_builder.core.reporting.service import ReportingService
from report_builder.core.reporting.session import ReportBuilderSession, default_config

__all__ = [
    "BaseDataSource",
    "ColumnDef",
    "ColumnType",
    "ConfigurationError",
    "ExecutionError",
    "ExecutionTimeoutError",
    "ReportBuilderSession",
    "ReportingEngine",
    "ReportingService",
    "SourceDefinition",
    "SqlAlchemyDataSource",
    "default_config",
]
