"""Unit tests for ReportBuilderSession."""

import asyncio
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from report_builder.core.config import Settings
from report_builder.core.reporting.data_source import BaseDataSource
from report_builder.core.reporting.exceptions import ConfigurationError
from report_builder.core.reporting.service import ReportingService
from report_builder.core.reporting.session import (
    ReportBuilderSession,
    clamp_limit,
    default_config,
)
from report_builder.core.reporting.sources.sales import SALES
from report_builder.schemas.reporting import Metric, ReportFilter

SETTINGS = Settings(LOG_TO_DB=False)


class GatedDataSource(BaseDataSource):
    """Each fetch waits until the test opens its gate."""

    def __init__(self):
        self.gates: list[asyncio.Event] = []
        self.fail = False

    async def fetch(self, query):
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        if self.fail:
            raise RuntimeError("backend rejected the query")
        return [{"id": f"run-{query.limit}"}]


async def _wait_for_gates(data_source: GatedDataSource, count: int) -> None:
    while len(data_source.gates) < count:
        await asyncio.sleep(0)


@pytest.fixture
def data_source():
    return GatedDataSource()


@pytest.fixture
def session(data_source):
    service = ReportingService(MagicMock(), data_source=data_source, settings=SETTINGS)
    return ReportBuilderSession(service, organization_id=1, user_id="user-1")


def test_default_config():
    config = default_config(SETTINGS, today=date(2024, 3, 31))

    assert config.source_id == ""
    assert config.date_to == date(2024, 3, 31)
    assert config.date_from == date(2024, 3, 31) - timedelta(days=30)
    assert config.limit == 100
    assert config.filters == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [(50, 50), ("250", 250), (0, 1), (-3, 1), (5000, 1000), ("abc", 100), (None, 100), (12.9, 12)],
)
def test_clamp_limit(value, expected):
    assert clamp_limit(value, SETTINGS) == expected


def test_select_source_resets_configuration(session):
    session.select_source("sales")
    session.set_filters([ReportFilter(column="status", operator="equals", value="completed")])
    session.set_group_by("branch_id")
    session.set_metric("sum", "total")
    session.error = "old failure"

    session.select_source("payments")

    assert session.config.source_id == "payments"
    assert session.config.columns == [column.key for column in session.service.get_source("payments").columns]
    assert session.config.filters == []
    assert session.config.group_by is None
    assert session.config.metric is None
    assert session.error is None
    assert session.result is None


def test_select_unknown_source(session):
    with pytest.raises(ConfigurationError):
        session.select_source("payroll")


def test_setters(session):
    session.select_source("sales")
    session.set_columns(["id"])
    session.set_date_range(date(2024, 1, 1), date(2024, 1, 31))
    session.set_metric("avg", "total")
    session.set_group_by("")
    session.set_limit("9999")

    assert session.config.columns == ["id"]
    assert session.config.date_from == date(2024, 1, 1)
    assert session.config.metric == Metric.AVG
    assert session.config.metric_column == "total"
    assert session.config.group_by is None
    assert session.config.limit == 1000


@pytest.mark.asyncio
async def test_execute_without_source_does_no_io(session, data_source):
    with pytest.raises(ConfigurationError):
        await session.execute()
    assert data_source.gates == []


@pytest.mark.asyncio
async def test_execute_uses_all_columns_when_none_selected(session, data_source):
    session.select_source("sales")
    session.set_columns([])

    task = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)
    data_source.gates[0].set()
    result = await task

    assert result.columns == SALES.column_keys
    assert session.config.columns == []


@pytest.mark.asyncio
async def test_latest_execution_wins(session, data_source):
    """An older run finishing last must not overwrite the newer result."""
    session.select_source("sales")
    session.set_columns(["id"])

    session.set_limit(10)
    first = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)

    session.set_limit(20)
    second = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 2)

    data_source.gates[1].set()
    newer = await second
    data_source.gates[0].set()
    older = await first

    assert older is None
    assert newer.rows == [{"id": "run-20"}]
    assert session.result is newer


@pytest.mark.asyncio
async def test_stale_failure_is_discarded(session, data_source):
    session.select_source("sales")

    first = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)
    second = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 2)

    data_source.gates[1].set()
    await second
    data_source.fail = True
    data_source.gates[0].set()

    assert await first is None
    assert session.error is None
    assert session.result is not None


@pytest.mark.asyncio
async def test_failure_is_kept_for_the_operator(session, data_source):
    session.select_source("sales")
    data_source.fail = True

    task = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)
    data_source.gates[0].set()

    assert await task is None
    assert session.error == "Query failed: backend rejected the query"
    assert session.result is None


@pytest.mark.asyncio
async def test_total_is_partial(session, data_source):
    session.select_source("sales")
    session.set_columns(["id"])
    session.set_limit(1)
    assert session.total_is_partial is False

    task = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)
    data_source.gates[0].set()
    await task

    assert session.total_is_partial is True


class BranchRows(BaseDataSource):
    async def fetch(self, query):
        return [{"branch_id": 1}, {"branch_id": 1}, {"branch_id": 2}][: query.limit]


@pytest.mark.asyncio
async def test_grouped_result_filling_the_limit_is_partial():
    service = ReportingService(MagicMock(), data_source=BranchRows(), settings=SETTINGS)
    session = ReportBuilderSession(service, organization_id=1)
    session.select_source("sales")
    session.set_columns(["branch_id"])
    session.set_group_by("branch_id")
    session.set_limit(3)

    result = await session.execute()

    assert result.total == 2
    assert result.fetched == 3
    assert session.total_is_partial is True


@pytest.mark.asyncio
async def test_grouped_result_below_the_limit_is_complete():
    service = ReportingService(MagicMock(), data_source=BranchRows(), settings=SETTINGS)
    session = ReportBuilderSession(service, organization_id=1)
    session.select_source("sales")
    session.set_group_by("branch_id")
    session.set_limit(10)

    await session.execute()
    assert session.total_is_partial is False

    # Only a new run changes the indicator
    session.set_limit(2)
    assert session.total_is_partial is False


@pytest.mark.asyncio
async def test_export_csv_after_execute(session, data_source):
    session.select_source("sales")
    session.set_columns(["id"])
    assert session.export_csv() is None

    task = asyncio.create_task(session.execute())
    await _wait_for_gates(data_source, 1)
    data_source.gates[0].set()
    await task

    assert session.export_csv() == "\ufeffid\nrun-100".encode("utf-8")


def test_json_export_import_replaces_config(session):
    session.select_source("sales")
    session.set_group_by("status")
    exported = session.export_json()

    session.select_source("payments")
    session.import_json(exported)

    assert session.config.source_id == "sales"
    assert session.config.group_by == "status"


def test_import_without_source_keeps_config(session):
    session.select_source("sales")

    with pytest.raises(ConfigurationError):
        session.import_json('{"dateFrom": "2024-01-01", "dateTo": "2024-01-31"}')

    assert session.config.source_id == "sales"


def test_saved_report_round_trip(db_session):
    service = ReportingService(db_session, settings=SETTINGS)
    session = ReportBuilderSession(service, organization_id=1, user_id="user-1")
    session.select_source("sales")
    session.set_group_by("branch_id")

    saved = session.save("Ventas por sucursal")
    assert saved is not None
    assert [report.name for report in session.saved_reports] == ["Ventas por sucursal"]

    session.select_source("payments")
    session.load_saved(saved)
    assert session.config.source_id == "sales"
    assert session.config.group_by == "branch_id"

    assert session.delete_saved(saved.id) is True
    assert session.saved_reports == []
