"""Report builder session: the state behind one operator's builder page."""

import logging
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from report_builder.core.config import Settings, get_settings
from report_builder.core.reporting.exceptions import ConfigurationError, ExecutionError
from report_builder.core.reporting.export import (
    export_config_json,
    export_csv_bytes,
    import_config_json,
)
from report_builder.core.reporting.service import ReportingService
from report_builder.models.reporting import SavedReport
from report_builder.schemas.reporting import Metric, ReportConfig, ReportFilter, ReportResult

logger = logging.getLogger(__name__)


def default_config(settings: Settings | None = None, today: date | None = None) -> ReportConfig:
    """Blank configuration: no source, last N days ending today, default limit."""
    settings = settings or get_settings()
    today = today or date.today()
    return ReportConfig(
        source_id="",
        date_from=today - timedelta(days=settings.REPORT_DEFAULT_RANGE_DAYS),
        date_to=today,
        limit=settings.REPORT_DEFAULT_LIMIT,
    )


def clamp_limit(value: Any, settings: Settings | None = None) -> int:
    """Clamp a limit into the allowed bounds; unreadable input gives the default."""
    settings = settings or get_settings()
    try:
        limit = int(value)
    except (TypeError, ValueError, OverflowError):
        return settings.REPORT_DEFAULT_LIMIT
    return max(settings.REPORT_MIN_LIMIT, min(settings.REPORT_MAX_LIMIT, limit))


class ReportBuilderSession:
    """Holds the configuration being edited and the outcome of the last run.

    Only the most recently started execution may publish its outcome; an
    older run that finishes later is discarded.
    """

    def __init__(
        self,
        service: ReportingService,
        organization_id: int,
        user_id: str | None = None,
        settings: Settings | None = None,
    ):
        self.service = service
        self.organization_id = organization_id
        self.user_id = user_id
        self.settings = settings or service.settings
        self.config = default_config(self.settings)
        self.result: ReportResult | None = None
        self._result_limit = self.config.limit
        self.error: str | None = None
        self.saved_reports: list[SavedReport] = []
        self._sequence = 0

    def _update(self, **changes: Any) -> None:
        self.config = self.config.model_copy(update=changes)

    def select_source(self, source_id: str) -> None:
        """Switch source: all of its columns selected, everything else reset."""
        source = self.service.get_source(source_id)
        if source is None:
            raise ConfigurationError.single("sourceId", f"unknown source '{source_id}'")
        self._update(
            source_id=source.id,
            columns=source.column_keys,
            filters=[],
            group_by=None,
            metric=None,
            metric_column=None,
        )
        self.result = None
        self.error = None

    def set_columns(self, columns: list[str]) -> None:
        self._update(columns=list(columns))

    def set_filters(self, filters: list[ReportFilter]) -> None:
        self._update(filters=list(filters))

    def set_date_range(self, date_from: date, date_to: date) -> None:
        self._update(date_from=date_from, date_to=date_to)

    def set_group_by(self, column: str | None) -> None:
        self._update(group_by=column or None)

    def set_metric(self, metric: Metric | str | None, metric_column: str | None = None) -> None:
        self._update(
            metric=Metric(metric) if metric else None,
            metric_column=metric_column or None,
        )

    def set_limit(self, value: Any) -> None:
        self._update(limit=clamp_limit(value, self.settings))

    @property
    def total_is_partial(self) -> bool:
        """True when the last run filled its row limit, so more rows may exist.

        Grouping does not hide it: the check uses the rows fetched, not the
        number of groups.
        """
        return self.result is not None and self.result.reached_limit(self._result_limit)

    async def execute(self) -> ReportResult | None:
        """Run the current configuration.

        Returns:
            The result, or None when a newer execution started meanwhile or
            the run failed (the failure message is kept in ``error``)

        Raises:
            ConfigurationError: If no source is selected or the configuration
                is invalid
        """
        if not self.config.source_id:
            raise ConfigurationError.single("sourceId", "select a source first")

        config = self.config
        if not config.columns:
            source = self.service.get_source(config.source_id)
            if source is not None:
                config = config.model_copy(update={"columns": source.column_keys})

        self._sequence += 1
        sequence = self._sequence

        try:
            result = await self.service.execute(self.organization_id, config, self.user_id)
        except ExecutionError as e:
            if sequence != self._sequence:
                logger.debug(f"Discarded failure of stale execution #{sequence}")
                return None
            self.result = None
            self.error = e.message
            return None

        if sequence != self._sequence:
            logger.debug(
                f"Discarded result of stale execution #{sequence} (latest is #{self._sequence})"
            )
            return None
        self.result = result
        self._result_limit = config.limit
        self.error = None
        return result

    def save(self, name: str, description: str | None = None) -> SavedReport | None:
        report = self.service.save_report(
            self.organization_id, self.user_id, name, self.config, description
        )
        if report is not None:
            self.refresh_saved()
        return report

    def load_saved(self, saved_report: SavedReport) -> None:
        """Replace the configuration with a saved one."""
        self.config = saved_report.config
        self.result = None
        self.error = None

    def delete_saved(self, report_id: UUID) -> bool:
        deleted = self.service.delete_saved_report(report_id, self.organization_id)
        self.refresh_saved()
        return deleted

    def refresh_saved(self) -> list[SavedReport]:
        self.saved_reports = self.service.get_saved_reports(self.organization_id)
        return self.saved_reports

    def export_csv(self) -> bytes | None:
        """CSV of the current result, or None when nothing has run yet."""
        if self.result is None:
            return None
        return export_csv_bytes(self.result)

    def export_json(self) -> str:
        return export_config_json(self.config)

    def import_json(self, text: str | bytes) -> None:
        """Replace the configuration with an exported one; nothing is merged."""
        self.config = import_config_json(text)
        self.result = None
        self.error = None
