"""Validation of report configurations and normalization of filter values.

``validate_report_config`` is the single validation entry point: every check on
a ``ReportConfig`` happens here, before compilation and before any I/O. It
collects every problem instead of stopping at the first one so the operator can
fix the whole configuration in one pass.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

from report_builder.core.config import Settings, get_settings
from report_builder.core.reporting.catalog import (
    ColumnDef,
    ColumnType,
    SourceDefinition,
    get_source,
)
from report_builder.core.reporting.exceptions import ConfigurationError
from report_builder.schemas.reporting import FilterOperator, Metric, ReportConfig, ReportFilter

logger = logging.getLogger(__name__)

# Operators accepted by each column type
OPERATORS_BY_TYPE: dict[ColumnType, frozenset[FilterOperator]] = {
    ColumnType.STRING: frozenset(
        {
            FilterOperator.EQUALS,
            FilterOperator.NOT_EQUALS,
            FilterOperator.CONTAINS,
            FilterOperator.IN,
        }
    ),
    ColumnType.ENUM: frozenset(
        {FilterOperator.EQUALS, FilterOperator.NOT_EQUALS, FilterOperator.IN}
    ),
    ColumnType.NUMBER: frozenset(
        {
            FilterOperator.EQUALS,
            FilterOperator.NOT_EQUALS,
            FilterOperator.GREATER_THAN,
            FilterOperator.LESS_THAN,
            FilterOperator.BETWEEN,
            FilterOperator.IN,
        }
    ),
    ColumnType.DATE: frozenset(
        {
            FilterOperator.EQUALS,
            FilterOperator.NOT_EQUALS,
            FilterOperator.GREATER_THAN,
            FilterOperator.LESS_THAN,
            FilterOperator.BETWEEN,
        }
    ),
    ColumnType.BOOLEAN: frozenset({FilterOperator.EQUALS, FilterOperator.NOT_EQUALS}),
}


class InvalidFilterError(ValueError):
    """A filter problem tied to one of its fields."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(reason)
        self.field = field


_TRUE_STRINGS = {"true", "1", "yes", "si", "sí"}
_FALSE_STRINGS = {"false", "0", "no"}


@dataclass(frozen=True)
class DateSpan:
    """Inclusive instant range covered by a date or datetime operand."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class NormalizedFilter:
    """A validated filter with its operand coerced to the column type.

    ``value`` is a scalar (``DateSpan`` for dates) for single-operand operators,
    a ``(low, high)`` tuple for ``between`` and a tuple for ``in``.
    """

    column: ColumnDef
    operator: FilterOperator
    value: Any


@dataclass(frozen=True)
class ValidatedReport:
    """A configuration that passed validation, bound to its source."""

    source: SourceDefinition
    config: ReportConfig
    filters: tuple[NormalizedFilter, ...]


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def coerce_scalar(column: ColumnDef, raw: Any) -> Any:
    """Coerce one operand to the column type.

    Raises:
        ValueError: If the operand is empty or cannot represent a value of the column type
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValueError("value is required")
    if isinstance(raw, (list, tuple, dict, set)):
        raise ValueError("expected a single value")

    if column.type == ColumnType.NUMBER:
        return _coerce_number(raw)
    if column.type == ColumnType.DATE:
        return _coerce_date(raw)
    if column.type == ColumnType.BOOLEAN:
        return _coerce_boolean(raw)
    if column.type == ColumnType.ENUM:
        value = str(raw)
        if column.options and value not in column.options:
            raise ValueError(
                f"'{value}' is not one of {', '.join(column.options)}"
            )
        return value
    return str(raw)


def _coerce_number(raw: Any) -> int | float:
    if isinstance(raw, bool):
        raise ValueError("expected a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (float, Decimal)):
        number = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"'{raw}' is not a number") from None
    else:
        raise ValueError("expected a number")
    if not math.isfinite(number):
        raise ValueError("expected a finite number")
    return number


def _coerce_date(raw: Any) -> DateSpan:
    if isinstance(raw, datetime):
        moment = _as_naive_utc(raw)
        return DateSpan(moment, moment)
    if isinstance(raw, date):
        return DateSpan(start_of_day(raw), end_of_day(raw))
    if not isinstance(raw, str):
        raise ValueError("expected a date (YYYY-MM-DD)")

    text = raw.strip()
    try:
        day = date.fromisoformat(text)
    except ValueError:
        pass
    else:
        return DateSpan(start_of_day(day), end_of_day(day))
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"'{raw}' is not a valid date") from None
    moment = _as_naive_utc(moment)
    return DateSpan(moment, moment)


def _as_naive_utc(moment: datetime) -> datetime:
    # Datastore sessions run in UTC
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _coerce_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"'{raw}' is not a boolean")


def _ordering_key(value: Any) -> Any:
    return value.start if isinstance(value, DateSpan) else value


def normalize_filter(column: ColumnDef, report_filter: ReportFilter) -> NormalizedFilter:
    """Check operator/value shape for ``column`` and coerce the operand.

    Raises:
        ValueError: With the reason the filter is invalid
    """
    operator = report_filter.operator
    if operator not in OPERATORS_BY_TYPE[column.type]:
        raise InvalidFilterError(
            "operator",
            f"operator '{operator.value}' is not valid for {column.type.value} column '{column.key}'",
        )

    raw = report_filter.value
    if operator == FilterOperator.BETWEEN:
        if isinstance(raw, dict) and "min" in raw and "max" in raw:
            bounds = [raw["min"], raw["max"]]
        elif isinstance(raw, (list, tuple)) and len(raw) == 2:
            bounds = list(raw)
        else:
            raise ValueError("between requires two values")
        low = coerce_scalar(column, bounds[0])
        high = coerce_scalar(column, bounds[1])
        if _ordering_key(low) > _ordering_key(high):
            raise ValueError("lower bound is greater than upper bound")
        return NormalizedFilter(column, operator, (low, high))

    if operator == FilterOperator.IN:
        if not isinstance(raw, (list, tuple)) or not raw:
            raise ValueError("in requires a non-empty list of values")
        return NormalizedFilter(
            column, operator, tuple(coerce_scalar(column, item) for item in raw)
        )

    return NormalizedFilter(column, operator, coerce_scalar(column, raw))


def validate_report_config(
    config: ReportConfig, settings: Settings | None = None
) -> ValidatedReport:
    """Validate a configuration against the source catalog.

    Args:
        config: Report configuration
        settings: Settings providing the limit bounds (defaults to app settings)

    Returns:
        The validated report with normalized filters

    Raises:
        ConfigurationError: Listing every problem found
    """
    settings = settings or get_settings()

    if not config.source_id:
        raise ConfigurationError.single("sourceId", "a source is required")
    source = get_source(config.source_id)
    if source is None:
        raise ConfigurationError.single(
            "sourceId", f"unknown source '{config.source_id}'"
        )

    errors: list[dict[str, Any]] = []

    for key in config.columns:
        if source.get_column(key) is None:
            errors.append(
                {"field": "columns", "reason": f"unknown column '{key}' in source '{source.id}'"}
            )

    normalized: list[NormalizedFilter] = []
    for index, report_filter in enumerate(config.filters):
        column = source.get_column(report_filter.column)
        if column is None:
            errors.append(
                {
                    "index": index,
                    "field": "column",
                    "reason": f"unknown column '{report_filter.column}' in source '{source.id}'",
                }
            )
            continue
        try:
            normalized.append(normalize_filter(column, report_filter))
        except ValueError as e:
            errors.append(
                {"index": index, "field": getattr(e, "field", "value"), "reason": str(e)}
            )

    if config.group_by is not None and source.get_column(config.group_by) is None:
        errors.append(
            {"field": "groupBy", "reason": f"unknown column '{config.group_by}' in source '{source.id}'"}
        )

    errors.extend(_metric_errors(config, source))

    if config.date_from > config.date_to:
        errors.append({"field": "dateFrom", "reason": "dateFrom is after dateTo"})

    if not settings.REPORT_MIN_LIMIT <= config.limit <= settings.REPORT_MAX_LIMIT:
        errors.append(
            {
                "field": "limit",
                "reason": f"limit must be between {settings.REPORT_MIN_LIMIT} and {settings.REPORT_MAX_LIMIT}",
            }
        )

    if errors:
        logger.info(f"Rejected report configuration for source '{source.id}': {errors}")
        raise ConfigurationError(errors)

    return ValidatedReport(source=source, config=config, filters=tuple(normalized))


def _metric_errors(config: ReportConfig, source: SourceDefinition) -> list[dict[str, Any]]:
    errors: list[dict[str, Any]] = []
    metric_column = source.get_column(config.metric_column)

    if config.metric_column is not None and metric_column is None:
        errors.append(
            {
                "field": "metricColumn",
                "reason": f"unknown column '{config.metric_column}' in source '{source.id}'",
            }
        )
        return errors

    if config.metric is None or config.metric == Metric.COUNT:
        return errors

    if metric_column is None:
        errors.append(
            {"field": "metricColumn", "reason": f"metric '{config.metric.value}' requires a column"}
        )
    elif not metric_column.is_numeric:
        errors.append(
            {
                "field": "metricColumn",
                "reason": f"metric '{config.metric.value}' requires a numeric column, '{metric_column.key}' is {metric_column.type.value}",
            }
        )
    return errors
