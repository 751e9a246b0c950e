"""Client-side grouping and aggregation of fetched report rows."""

import math
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from report_builder.schemas.reporting import Metric

def metric_label(metric: Metric, metric_column: str | None) -> str:
    """Output column name for a metric (``count``, ``sum_total``, ...)."""
    if metric == Metric.COUNT or not metric_column:
        return metric.value
    return f"{metric.value}_{metric_column}"


def to_number(value: Any) -> int | float | None:
    """Numeric value of a cell, or None when it cannot take part in an aggregate.

    Booleans, blanks, non-numeric strings and NaN/infinity are excluded rather
    than counted as zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _sum(values: list[int | float]) -> int | float:
    return sum(values)


def _avg(values: list[int | float]) -> float | None:
    return sum(values) / len(values) if values else None


def _min(values: list[int | float]) -> int | float | None:
    return min(values) if values else None


def _max(values: list[int | float]) -> int | float | None:
    return max(values) if values else None


# Reducers over the numeric values of the metric column within a group
REDUCERS: dict[Metric, Callable[[list[int | float]], int | float | None]] = {
    Metric.SUM: _sum,
    Metric.AVG: _avg,
    Metric.MIN: _min,
    Metric.MAX: _max,
}


def _is_missing(value: Any) -> bool:
    """True for group values that carry nothing: None and blank strings."""
    return value is None or (isinstance(value, str) and not value.strip())


def partition(
    rows: Iterable[Mapping[str, Any]], group_by: str, null_key: Any
) -> dict[Any, list[Mapping[str, Any]]]:
    """Split rows by the value of ``group_by`` in first-seen order.

    Rows whose value is missing land in the ``null_key`` bucket, never
    dropped. A real value equal to ``null_key`` shares that bucket, so every
    output label is unique.
    """
    groups: dict[Any, list[Mapping[str, Any]]] = {}
    for row in rows:
        key = row.get(group_by)
        if _is_missing(key):
            key = null_key
        groups.setdefault(key, []).append(row)
    return groups


def aggregate_rows(
    rows: list[Mapping[str, Any]],
    group_by: str,
    metric: Metric | None,
    metric_column: str | None,
    null_label: str = "sin valor",
) -> tuple[list[str], list[dict[str, Any]]]:
    """Group rows and reduce every group with ``metric``.

    A missing metric counts rows. One output row per distinct group value with
    columns ``[group_by, metric_label]``.

    Args:
        rows: Fetched rows
        group_by: Column to group by
        metric: Aggregation (None counts rows)
        metric_column: Numeric column read by sum/avg/min/max
        null_label: Label of the bucket holding rows without a group value (None or
            blank); rows whose value is this label join the same bucket

    Returns:
        Tuple of (columns, aggregated rows)
    """
    metric = metric or Metric.COUNT
    label = metric_label(metric, metric_column)

    output: list[dict[str, Any]] = []
    for key, members in partition(rows, group_by, null_label).items():
        if metric == Metric.COUNT:
            value: Any = len(members)
        else:
            numbers = [
                number
                for number in (to_number(member.get(metric_column)) for member in members)
                if number is not None
            ]
            value = REDUCERS[metric](numbers)
        output.append({group_by: key, label: value})

    return [group_by, label], output
