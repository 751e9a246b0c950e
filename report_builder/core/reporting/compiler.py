"""Query compiler: turns a ReportConfig into a SQLAlchemy select."""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import ColumnElement, Select, and_, not_, select
from sqlalchemy.sql.elements import ColumnClause

from report_builder.core.config import Settings
from report_builder.core.reporting.catalog import TENANT_COLUMN, SourceDefinition
from report_builder.core.reporting.filters import (
    DateSpan,
    NormalizedFilter,
    end_of_day,
    start_of_day,
    validate_report_config,
)
from report_builder.schemas.reporting import FilterOperator, ReportConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledQuery:
    """A report ready to run against the datastore.

    Attributes:
        source: Source the statement reads from
        config: Configuration the statement was compiled from
        organization_id: Tenant every row is scoped to
        statement: Select with tenant scope, date range, filters and limit applied
        output_columns: Columns the report shows when rows are not grouped
        fetch_columns: Columns selected from the datastore (output columns plus
            the group-by and metric columns needed after the fetch)
    """

    source: SourceDefinition
    config: ReportConfig
    organization_id: int
    statement: Select
    output_columns: list[str]
    fetch_columns: list[str]

    @property
    def limit(self) -> int:
        return self.config.limit


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _equals(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    if isinstance(f.value, DateSpan):
        return column.between(f.value.start, f.value.end)
    return column == f.value


def _not_equals(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    return not_(_equals(column, f))


def _contains(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    return column.ilike(f"%{_escape_like(f.value)}%", escape="\\")


def _greater_than(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    if isinstance(f.value, DateSpan):
        return column > f.value.end
    return column > f.value


def _less_than(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    if isinstance(f.value, DateSpan):
        return column < f.value.start
    return column < f.value


def _between(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    low, high = f.value
    if isinstance(low, DateSpan):
        return column.between(low.start, high.end)
    return column.between(low, high)


def _in(column: ColumnClause, f: NormalizedFilter) -> ColumnElement[bool]:
    return column.in_(f.value)


# One predicate builder per operator; tests assert the mapping covers FilterOperator
PREDICATES: dict[FilterOperator, Callable[[ColumnClause, NormalizedFilter], ColumnElement[bool]]] = {
    FilterOperator.EQUALS: _equals,
    FilterOperator.NOT_EQUALS: _not_equals,
    FilterOperator.CONTAINS: _contains,
    FilterOperator.GREATER_THAN: _greater_than,
    FilterOperator.LESS_THAN: _less_than,
    FilterOperator.BETWEEN: _between,
    FilterOperator.IN: _in,
}


class QueryCompiler:
    """Compiles report configurations for one tenant at a time."""

    def __init__(self, settings: Settings | None = None):
        """Initialize compiler.

        Args:
            settings: Settings providing limit bounds (defaults to app settings)
        """
        self.settings = settings

    def compile(self, organization_id: int, config: ReportConfig) -> CompiledQuery:
        """Compile a configuration into a tenant-scoped select.

        The tenant condition is applied first and user filters are only ever
        AND-ed to it, so no configuration can widen the scope.

        Args:
            organization_id: Tenant the query is bound to
            config: Report configuration (not mutated)

        Returns:
            Compiled query

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        validated = validate_report_config(config, self.settings)
        source = validated.source
        table = source.table

        output_columns = list(dict.fromkeys(config.columns or source.column_keys))
        fetch_columns = list(output_columns)
        for extra in (config.group_by, config.metric_column):
            if extra and extra not in fetch_columns:
                fetch_columns.append(extra)

        conditions: list[ColumnElement[bool]] = [
            table.c[TENANT_COLUMN] == organization_id
        ]

        if source.default_date_column:
            date_column = table.c[source.default_date_column]
            conditions.append(date_column >= start_of_day(config.date_from))
            conditions.append(date_column <= end_of_day(config.date_to))

        for normalized in validated.filters:
            conditions.append(
                PREDICATES[normalized.operator](table.c[normalized.column.key], normalized)
            )

        statement = select(*(table.c[key] for key in fetch_columns)).where(and_(*conditions))
        if source.default_date_column:
            statement = statement.order_by(table.c[source.default_date_column].desc())
        statement = statement.limit(config.limit)

        logger.debug(
            f"Compiled report on '{source.id}' for organization {organization_id}: "
            f"{len(validated.filters)} filter(s), limit {config.limit}"
        )
        return CompiledQuery(
            source=source,
            config=config,
            organization_id=organization_id,
            statement=statement,
            output_columns=output_columns,
            fetch_columns=fetch_columns,
        )


def explain(compiled: CompiledQuery) -> dict[str, Any]:
    """Human-readable summary of a compiled query for logs and debugging."""
    return {
        "source": compiled.source.id,
        "table": compiled.source.table_name,
        "organization_id": compiled.organization_id,
        "columns": compiled.fetch_columns,
        "limit": compiled.limit,
        "sql": str(compiled.statement),
    }
