"""Static catalog of report sources available to the report builder."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, Numeric, String, Table
from sqlalchemy.types import TypeEngine

logger = logging.getLogger(__name__)

# Every source table carries the tenant column; it is never exposed as a column
TENANT_COLUMN = "organization_id"

# Source tables live in the hosted datastore; this metadata only describes them
source_metadata = MetaData()


class ColumnType(str, Enum):
    """Semantic type of a source column."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUM = "enum"


_SQL_TYPES: dict[ColumnType, Callable[[], TypeEngine]] = {
    ColumnType.STRING: String,
    ColumnType.NUMBER: lambda: Numeric(asdecimal=False),
    ColumnType.DATE: DateTime,
    ColumnType.BOOLEAN: Boolean,
    ColumnType.ENUM: String,
}


@dataclass(frozen=True)
class ColumnDef:
    """A column exposed by a source."""

    key: str
    label: str
    type: ColumnType
    options: tuple[str, ...] = ()

    @property
    def is_numeric(self) -> bool:
        return self.type == ColumnType.NUMBER

    def to_dict(self) -> dict:
        data = {"key": self.key, "label": self.label, "type": self.type.value}
        if self.options:
            data["options"] = list(self.options)
        return data


@dataclass(frozen=True)
class SourceDefinition:
    """Descriptor of one queryable collection.

    Attributes:
        id: Identifier used in ``ReportConfig.source_id``
        label: Display name
        table_name: Target table or view in the datastore
        columns: Columns available to reports, keys unique within the source
        default_date_column: Column the report date range applies to, if any
    """

    id: str
    label: str
    table_name: str
    columns: tuple[ColumnDef, ...]
    default_date_column: str | None = None
    _index: dict[str, ColumnDef] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, ColumnDef] = {}
        for column in self.columns:
            if column.key in index:
                raise ValueError(
                    f"Duplicate column '{column.key}' in source '{self.id}'"
                )
            if column.key == TENANT_COLUMN:
                raise ValueError(
                    f"Source '{self.id}' cannot expose the tenant column '{TENANT_COLUMN}'"
                )
            index[column.key] = column
        if self.default_date_column and self.default_date_column not in index:
            raise ValueError(
                f"Default date column '{self.default_date_column}' is not a column of '{self.id}'"
            )
        object.__setattr__(self, "_index", index)

    @property
    def column_keys(self) -> list[str]:
        return [column.key for column in self.columns]

    def get_column(self, key: str | None) -> ColumnDef | None:
        if key is None:
            return None
        return self._index.get(key)

    @property
    def table(self) -> Table:
        """SQLAlchemy description of the source table (tenant column included)."""
        return source_metadata.tables[self.table_name]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "table": self.table_name,
            "columns": [column.to_dict() for column in self.columns],
            "default_date_column": self.default_date_column,
        }


_REGISTRY: dict[str, SourceDefinition] = {}


def _describe_table(source: SourceDefinition) -> Table:
    """Describe the source table in ``source_metadata`` (one description per table)."""
    if source.table_name in source_metadata.tables:
        return source_metadata.tables[source.table_name]

    columns = [Column(TENANT_COLUMN, Integer, nullable=False, index=True)]
    for column in source.columns:
        columns.append(Column(column.key, _SQL_TYPES[column.type]()))
    return Table(source.table_name, source_metadata, *columns)


def register_source(source: SourceDefinition) -> SourceDefinition:
    """Register a source in the catalog.

    Sources are registered at import time; registering the same id twice is a
    programming error.

    Args:
        source: Source definition

    Returns:
        The registered source

    Raises:
        ValueError: If a source with the same id is already registered
    """
    if source.id in _REGISTRY:
        raise ValueError(f"Source '{source.id}' is already registered")
    _describe_table(source)
    _REGISTRY[source.id] = source
    logger.debug(f"Registered report source: {source.id} -> {source.table_name}")
    return source


def get_source(source_id: str | None) -> SourceDefinition | None:
    """Look up a source; unknown or empty ids yield None."""
    if not source_id:
        return None
    return _REGISTRY.get(source_id)


def list_sources() -> list[SourceDefinition]:
    """All registered sources in registration order."""
    return list(_REGISTRY.values())


# Built-in sources register themselves on import
from report_builder.core.reporting import sources  # noqa: E402,F401
