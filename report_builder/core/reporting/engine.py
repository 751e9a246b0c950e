"""Reporting engine for executing report configurations."""

import asyncio
import logging
import time
from typing import Any

from report_builder.core.config import Settings, get_settings
from report_builder.core.logging import log_report_executed, log_report_failed
from report_builder.core.reporting.aggregation import aggregate_rows
from report_builder.core.reporting.compiler import CompiledQuery, QueryCompiler
from report_builder.core.reporting.data_source import BaseDataSource
from report_builder.core.reporting.exceptions import (
    ExecutionError,
    ExecutionTimeoutError,
)
from report_builder.schemas.reporting import ReportConfig, ReportResult

logger = logging.getLogger(__name__)


class ReportingEngine:
    """Engine for executing reports.

    Stateless per call: everything an execution needs comes from the
    configuration or is fetched fresh from the data source.
    """

    def __init__(self, data_source: BaseDataSource, settings: Settings | None = None):
        """Initialize reporting engine.

        Args:
            data_source: Where compiled queries are fetched from
            settings: Application settings (defaults to the cached app settings)
        """
        self.data_source = data_source
        self.settings = settings or get_settings()
        self.compiler = QueryCompiler(self.settings)

    async def execute(self, organization_id: int, config: ReportConfig) -> ReportResult:
        """Execute a report for one organization.

        The configuration is validated and compiled before any I/O. The fetch
        is a single request with no retry.

        Args:
            organization_id: Tenant the rows are scoped to
            config: Report configuration (not mutated)

        Returns:
            Report result; ``fetched`` counts rows read before grouping

        Raises:
            ConfigurationError: If the configuration is invalid
            ExecutionError: If the fetch fails or returns something unusable
        """
        compiled = self.compiler.compile(organization_id, config)

        started = time.perf_counter()
        try:
            rows = await self._fetch(compiled)
        except ExecutionError as e:
            log_report_failed(
                organization_id, compiled.source.id, e.reason, _elapsed_ms(started)
            )
            raise

        fetched = len(rows)
        if config.group_by:
            columns, rows = aggregate_rows(
                rows,
                config.group_by,
                config.metric,
                config.metric_column,
                null_label=self.settings.REPORT_NULL_GROUP_LABEL,
            )
        else:
            columns = compiled.output_columns
            rows = [{key: row.get(key) for key in columns} for row in rows]

        log_report_executed(
            organization_id,
            compiled.source.id,
            len(rows),
            _elapsed_ms(started),
            grouped=bool(config.group_by),
        )
        return ReportResult(columns=columns, rows=rows, total=len(rows), fetched=fetched)

    async def _fetch(self, compiled: CompiledQuery) -> list[dict[str, Any]]:
        timeout = self.settings.REPORT_EXECUTION_TIMEOUT_SECONDS
        source_id = compiled.source.id
        try:
            if timeout:
                rows = await asyncio.wait_for(self.data_source.fetch(compiled), timeout)
            else:
                rows = await self.data_source.fetch(compiled)
        except TimeoutError as e:
            raise ExecutionTimeoutError(
                f"no response after {timeout:g}s", source_id=source_id
            ) from e
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(str(e) or type(e).__name__, source_id=source_id) from e

        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ExecutionError("malformed response from datastore", source_id=source_id)

        # The datastore may ignore the limit; never hand back more than asked for
        return rows[: compiled.limit]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
