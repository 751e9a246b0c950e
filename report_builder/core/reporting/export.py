"""CSV export of report results and JSON export/import of configurations."""

import csv
import io
import json
from typing import Any

from pydantic import ValidationError

from report_builder.core.reporting.exceptions import ConfigurationError
from report_builder.schemas.reporting import ReportConfig, ReportResult

CSV_BOM = "\ufeff"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def export_csv(result: ReportResult) -> str:
    """Render a result as CSV text.

    Header row is ``result.columns``; missing values become empty cells.
    Lines are joined by ``\\n`` with no trailing newline, and cells holding a
    comma, quote or line break are quoted.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(result.columns)
    for row in result.rows:
        writer.writerow([_cell(row.get(column)) for column in result.columns])
    return buffer.getvalue().removesuffix("\n")


def export_csv_bytes(result: ReportResult) -> bytes:
    """CSV file contents: UTF-8 with a BOM so spreadsheets detect the encoding."""
    return (CSV_BOM + export_csv(result)).encode("utf-8")


def csv_filename(config: ReportConfig) -> str:
    return f"reporte-personalizado-{config.source_id}-{config.date_from.isoformat()}.csv"


def export_config_json(config: ReportConfig) -> str:
    """Serialize the whole configuration as 2-space indented JSON."""
    return json.dumps(config.to_json_dict(), indent=2, ensure_ascii=False)


def config_filename(config: ReportConfig) -> str:
    return f"reporte-config-{config.source_id or 'nuevo'}.json"


def import_config_json(text: str | bytes) -> ReportConfig:
    """Parse an exported configuration.

    The result replaces the active configuration wholesale; nothing is merged.

    Raises:
        ConfigurationError: If the text is not a JSON object, has no ``sourceId``
            or does not describe a configuration
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError.single("file", f"not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError.single("file", "expected a JSON object")
    if not data.get("sourceId"):
        raise ConfigurationError.single("sourceId", "the file has no sourceId")

    try:
        return ReportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            [
                {
                    "field": ".".join(str(part) for part in error["loc"]),
                    "reason": error["msg"],
                }
                for error in e.errors()
            ]
        ) from e
