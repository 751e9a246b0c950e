"""Helper functions for tests."""

import threading
import time
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from report_builder.core.reporting.catalog import source_metadata
from report_builder.core.reporting.data_source import SqlAlchemyDataSource
from report_builder.schemas.reporting import ReportConfig

JANUARY_2024 = {"date_from": date(2024, 1, 1), "date_to": date(2024, 1, 31)}

# Organization 1: branch 1 has three sales in January, branch 2 has two
SALES_ROWS: list[dict[str, Any]] = [
    {"organization_id": 1, "id": "s-1", "sale_date": datetime(2024, 1, 5, 10, 0), "branch_id": 1, "total": 100, "status": "completed", "notes": "mostrador"},
    {"organization_id": 1, "id": "s-2", "sale_date": datetime(2024, 1, 10, 12, 30), "branch_id": 1, "total": 250.5, "status": "completed", "notes": "Pedido web"},
    {"organization_id": 1, "id": "s-3", "sale_date": datetime(2024, 1, 31, 23, 0), "branch_id": 1, "total": 49.5, "status": "cancelled"},
    {"organization_id": 1, "id": "s-4", "sale_date": datetime(2024, 1, 15, 9, 0), "branch_id": 2, "total": 300, "status": "completed", "notes": "pedido telefónico"},
    {"organization_id": 1, "id": "s-5", "sale_date": datetime(2024, 1, 20, 18, 0), "branch_id": 2, "total": 75, "status": "refunded"},
    # Outside the January range
    {"organization_id": 1, "id": "s-0", "sale_date": datetime(2023, 12, 31, 23, 59, 59), "branch_id": 2, "total": 999, "status": "completed"},
    {"organization_id": 1, "id": "s-6", "sale_date": datetime(2024, 2, 1, 0, 0), "branch_id": 1, "total": 999, "status": "completed"},
    # Organization 2
    {"organization_id": 2, "id": "t-1", "sale_date": datetime(2024, 1, 12, 8, 0), "branch_id": 1, "total": 5000, "status": "completed"},
    {"organization_id": 2, "id": "t-2", "sale_date": datetime(2024, 1, 13, 8, 0), "branch_id": 3, "total": 7000, "status": "completed"},
]

JANUARY_SALE_IDS = {"s-1", "s-2", "s-3", "s-4", "s-5"}


def insert_rows(db: Session, table_name: str, rows: list[dict[str, Any]]) -> None:
    """Insert rows into a catalog source table and commit."""
    table = source_metadata.tables[table_name]
    db.execute(table.insert(), [{column.name: row.get(column.name) for column in table.columns} for row in rows])
    db.commit()


def make_config(**overrides: Any) -> ReportConfig:
    """Sales report over January 2024, with overrides."""
    data: dict[str, Any] = {"source_id": "sales", **JANUARY_2024, "limit": 100}
    data.update(overrides)
    return ReportConfig(**data)


class BlockingSqlDataSource(SqlAlchemyDataSource):
    """Keeps the session busy in its worker thread past the caller's timeout."""

    def __init__(self, db: Session, seconds: float):
        super().__init__(db)
        self.seconds = seconds
        self.busy = threading.Event()
        self.released = threading.Event()

    def _fetch_sync(self, query: Any) -> list[dict[str, Any]]:
        self.busy.set()
        time.sleep(self.seconds)
        self.busy.clear()
        self.released.set()
        return []
