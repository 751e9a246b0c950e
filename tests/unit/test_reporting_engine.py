"""Unit tests for ReportingEngine and the data sources."""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from report_builder.core.config import Settings
from report_builder.core.reporting.compiler import CompiledQuery
from report_builder.core.reporting.data_source import (
    BaseDataSource,
    SqlAlchemyDataSource,
    normalize_value,
)
from report_builder.core.reporting.engine import ReportingEngine
from report_builder.core.reporting.exceptions import (
    ConfigurationError,
    ExecutionError,
    ExecutionTimeoutError,
)
from report_builder.core.reporting.sources.sales import SALES
from tests.helpers import JANUARY_SALE_IDS, BlockingSqlDataSource, make_config


class StaticDataSource(BaseDataSource):
    """Returns canned rows and remembers the queries it saw."""

    def __init__(self, rows):
        self.rows = rows
        self.queries: list[CompiledQuery] = []

    async def fetch(self, query):
        self.queries.append(query)
        return self.rows


class SlowDataSource(BaseDataSource):
    async def fetch(self, query):
        await asyncio.sleep(5)
        return []


def test_base_data_source_is_abstract():
    """Test that BaseDataSource cannot be instantiated directly."""
    with pytest.raises(TypeError):
        BaseDataSource()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("10.50"), 10.5),
        (datetime(2024, 1, 5, 10, 0), "2024-01-05T10:00:00"),
        (date(2024, 1, 5), "2024-01-05"),
        (UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
        ("text", "text"),
        (None, None),
    ],
)
def test_normalize_value(value, expected):
    assert normalize_value(value) == expected


@pytest.mark.asyncio
async def test_invalid_config_never_reaches_the_datastore():
    """A bad filter fails before any fetch."""
    data_source = AsyncMock(spec=BaseDataSource)
    engine = ReportingEngine(data_source)

    with pytest.raises(ConfigurationError):
        await engine.execute(
            1, make_config(filters=[{"column": "nonexistent", "operator": "equals", "value": 1}])
        )
    with pytest.raises(ConfigurationError):
        await engine.execute(
            1, make_config(filters=[{"column": "total", "operator": "contains", "value": "1"}])
        )
    with pytest.raises(ConfigurationError):
        await engine.execute(1, make_config(group_by="branch_id", metric="sum", metric_column=None))

    assert data_source.fetch.await_count == 0


@pytest.mark.asyncio
async def test_rows_limited_to_selected_columns():
    data_source = StaticDataSource([{"id": "s-1", "total": 10, "status": "completed"}])
    engine = ReportingEngine(data_source)

    result = await engine.execute(1, make_config(columns=["total", "id"]))

    assert result.columns == ["total", "id"]
    assert result.rows == [{"total": 10, "id": "s-1"}]
    assert result.total == 1
    assert data_source.queries[0].organization_id == 1


@pytest.mark.asyncio
async def test_default_columns_are_all_source_columns():
    engine = ReportingEngine(StaticDataSource([]))

    result = await engine.execute(1, make_config())

    assert result.columns == SALES.column_keys
    assert result.rows == []
    assert result.total == 0


@pytest.mark.asyncio
async def test_grouped_execution():
    rows = [
        {"branch_id": 1, "total": 100},
        {"branch_id": 1, "total": 250.5},
        {"branch_id": 1, "total": 49.5},
        {"branch_id": 2, "total": 300},
        {"branch_id": 2, "total": 75},
    ]
    engine = ReportingEngine(StaticDataSource(rows))

    result = await engine.execute(
        1, make_config(group_by="branch_id", metric="sum", metric_column="total")
    )

    assert result.columns == ["branch_id", "sum_total"]
    assert result.total == 2
    assert {row["branch_id"]: row["sum_total"] for row in result.rows} == {1: 400.0, 2: 375}


@pytest.mark.asyncio
async def test_group_by_without_metric_counts():
    engine = ReportingEngine(StaticDataSource([{"status": "paid"}, {"status": "paid"}, {"status": None}]))

    result = await engine.execute(1, make_config(group_by="status"))

    assert result.columns == ["status", "count"]
    assert result.rows == [{"status": "paid", "count": 2}, {"status": "sin valor", "count": 1}]


@pytest.mark.asyncio
async def test_metric_without_group_by_is_ignored():
    engine = ReportingEngine(StaticDataSource([{"id": "s-1", "total": 5}]))

    result = await engine.execute(1, make_config(columns=["id"], metric="sum", metric_column="total"))

    assert result.columns == ["id"]
    assert result.rows == [{"id": "s-1"}]


@pytest.mark.asyncio
async def test_rows_beyond_limit_are_dropped():
    engine = ReportingEngine(StaticDataSource([{"id": str(i)} for i in range(10)]))

    result = await engine.execute(1, make_config(columns=["id"], limit=3))

    assert result.total == 3
    assert len(result.rows) == 3


@pytest.mark.asyncio
async def test_fetch_failure_wrapped_in_execution_error():
    data_source = AsyncMock(spec=BaseDataSource)
    data_source.fetch.side_effect = ConnectionError("connection refused")
    engine = ReportingEngine(data_source)

    with pytest.raises(ExecutionError) as exc_info:
        await engine.execute(1, make_config())

    assert exc_info.value.message == "Query failed: connection refused"
    assert exc_info.value.status_code == 502
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert data_source.fetch.await_count == 1


@pytest.mark.asyncio
async def test_malformed_response_is_an_execution_error():
    data_source = AsyncMock(spec=BaseDataSource)
    data_source.fetch.return_value = {"rows": []}
    engine = ReportingEngine(data_source)

    with pytest.raises(ExecutionError, match="malformed"):
        await engine.execute(1, make_config())


@pytest.mark.asyncio
async def test_optional_timeout():
    engine = ReportingEngine(SlowDataSource(), Settings(REPORT_EXECUTION_TIMEOUT_SECONDS=0.05))

    with pytest.raises(ExecutionTimeoutError) as exc_info:
        await engine.execute(1, make_config())

    assert exc_info.value.code == "REPORTING_EXECUTION_TIMEOUT"


@pytest.mark.asyncio
async def test_timeout_waits_for_the_worker_to_release_the_session():
    data_source = BlockingSqlDataSource(MagicMock(), seconds=0.3)
    engine = ReportingEngine(data_source, Settings(REPORT_EXECUTION_TIMEOUT_SECONDS=0.05))

    with pytest.raises(ExecutionTimeoutError):
        await engine.execute(1, make_config())

    assert data_source.released.is_set()
    assert not data_source.busy.is_set()


def test_statement_timeout_only_set_on_postgresql():
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "sqlite"
    query = MagicMock()

    SqlAlchemyDataSource(db, statement_timeout=2)._fetch_sync(query)
    assert db.execute.call_count == 1

    db.reset_mock()
    db.get_bind.return_value.dialect.name = "postgresql"
    SqlAlchemyDataSource(db, statement_timeout=2)._fetch_sync(query)

    assert db.execute.call_count == 2
    assert str(db.execute.call_args_list[0].args[0]) == "SET LOCAL statement_timeout = 2000"
    assert db.execute.call_args_list[1].args[0] is query.statement


@pytest.mark.asyncio
async def test_engine_does_not_mutate_config():
    config = make_config(columns=[], group_by="branch_id")
    before = config.model_dump()

    await ReportingEngine(StaticDataSource([])).execute(1, config)

    assert config.model_dump() == before


class TestSqlAlchemyDataSource:
    """Engine over the SQLite test database."""

    @pytest.mark.asyncio
    async def test_simple_report_stays_in_date_range(self, db_session, sales_data):
        engine = ReportingEngine(SqlAlchemyDataSource(db_session))

        result = await engine.execute(1, make_config())

        assert result.columns == SALES.column_keys
        assert {row["id"] for row in result.rows} == JANUARY_SALE_IDS
        for row in result.rows:
            sold_at = datetime.fromisoformat(row["sale_date"])
            assert datetime(2024, 1, 1) <= sold_at <= datetime(2024, 1, 31, 23, 59, 59)

    @pytest.mark.asyncio
    async def test_rows_are_newest_first(self, db_session, sales_data):
        engine = ReportingEngine(SqlAlchemyDataSource(db_session))

        result = await engine.execute(1, make_config(columns=["id", "sale_date"]))

        dates = [row["sale_date"] for row in result.rows]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_grouped_sum_over_database(self, db_session, sales_data):
        engine = ReportingEngine(SqlAlchemyDataSource(db_session))

        result = await engine.execute(
            1, make_config(group_by="branch_id", metric="sum", metric_column="total")
        )

        assert len(result.rows) == 2
        sums = {int(row["branch_id"]): row["sum_total"] for row in result.rows}
        assert sums == {1: pytest.approx(400.0), 2: pytest.approx(375.0)}

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, db_session, sales_data):
        engine = ReportingEngine(SqlAlchemyDataSource(db_session))

        result = await engine.execute(2, make_config(columns=["id"]))

        assert {row["id"] for row in result.rows} == {"t-1", "t-2"}
