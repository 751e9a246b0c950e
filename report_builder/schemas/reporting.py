"""Reporting schemas for report configurations, results and saved reports."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class FilterOperator(str, Enum):
    """Operators a report filter can use."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    IN = "in"


# Serializer turning any operand into plain JSON data
_JSON_VALUE = TypeAdapter(Any)


class Metric(str, Enum):
    """Aggregations applied per group."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class ReportFilter(BaseModel):
    """A single predicate over a source column.

    ``value`` is a scalar for most operators, a two-item list (or
    ``{"min": ..., "max": ...}``) for ``between`` and a list for ``in``.
    """

    model_config = ConfigDict(populate_by_name=True)

    column: str = Field(..., description="Column key in the selected source")
    operator: FilterOperator = Field(..., description="Filter operator")
    value: Any = Field(None, description="Operand(s) for the operator")

    @field_validator("value")
    @classmethod
    def value_as_json(cls, value: Any) -> Any:
        """Store operands in their JSON form (dates as ISO strings, tuples as lists)."""
        return _JSON_VALUE.dump_python(value, mode="json")


class ReportConfig(BaseModel):
    """Complete, serializable definition of one report.

    Field names are snake_case in Python and camelCase on the wire
    (``sourceId``, ``groupBy``, ``metricColumn``, ``dateFrom``, ``dateTo``).
    The engine never mutates a config.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "sourceId": "sales",
                "columns": ["sale_date", "branch_id", "total"],
                "filters": [{"column": "status", "operator": "equals", "value": "completed"}],
                "groupBy": "branch_id",
                "metric": "sum",
                "metricColumn": "total",
                "dateFrom": "2024-01-01",
                "dateTo": "2024-01-31",
                "limit": 100,
            }
        },
    )

    source_id: str = Field("", description="Catalog source identifier")
    columns: list[str] = Field(default_factory=list, description="Selected column keys")
    filters: list[ReportFilter] = Field(default_factory=list, description="Filters")
    group_by: str | None = Field(None, description="Column to group rows by")
    metric: Metric | None = Field(None, description="Aggregation applied per group")
    metric_column: str | None = Field(None, description="Numeric column the metric reads")
    date_from: date = Field(..., description="Inclusive start date")
    date_to: date = Field(..., description="Inclusive end date")
    limit: int = Field(100, description="Maximum number of rows fetched")

    def to_json_dict(self) -> dict[str, Any]:
        """Wire representation (camelCase keys, ISO dates)."""
        return self.model_dump(mode="json", by_alias=True)


class ReportResult(BaseModel):
    """Outcome of one execution.

    ``total`` is the number of output rows (groups when grouping). ``fetched``
    counts the rows read from the datastore, bounded by the configured limit;
    neither is a count of every matching row in the datastore.
    """

    columns: list[str] = Field(..., description="Output column keys, in order")
    rows: list[dict[str, Any]] = Field(..., description="Result rows")
    total: int = Field(..., description="Rows returned by this execution", ge=0)
    fetched: int = Field(
        0, description="Rows fetched before grouping, bounded by the limit", ge=0
    )

    def reached_limit(self, limit: int) -> bool:
        """True when the fetch filled the limit, so more rows may exist."""
        return self.fetched >= limit


class ColumnResponse(BaseModel):
    """Schema for a source column."""

    key: str
    label: str
    type: str
    options: list[str] | None = None


class SourceResponse(BaseModel):
    """Schema for a catalog source."""

    id: str
    label: str
    table: str
    columns: list[ColumnResponse]
    default_date_column: str | None


class SavedReportCreate(BaseModel):
    """Schema for saving a report configuration."""

    name: str = Field(..., description="Report name", min_length=1, max_length=255)
    description: str | None = Field(None, description="Report description")
    config: ReportConfig = Field(..., description="Configuration to store")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class SavedReportResponse(BaseModel):
    """Schema for saved report response.

    ``filters`` holds the entire stored ``ReportConfig``; the column name is
    shared with the other report modules writing to ``saved_reports``.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: int
    user_id: str | None
    name: str
    description: str | None
    module: str
    filters: ReportConfig
    created_at: datetime


class ReportExecutionResponse(BaseModel):
    """Schema for an entry of the execution log."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: int
    user_id: str | None
    module: str
    source_id: str
    status: str
    row_count: int
    duration_ms: int
    error_message: str | None
    created_at: datetime
