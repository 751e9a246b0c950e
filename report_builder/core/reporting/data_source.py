"""Data sources the reporting engine fetches rows from."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.orm import Session

from report_builder.core.reporting.compiler import CompiledQuery, explain

logger = logging.getLogger(__name__)


class BaseDataSource(ABC):
    """Abstract base class for data sources."""

    @abstractmethod
    async def fetch(self, query: CompiledQuery) -> list[dict[str, Any]]:
        """Fetch the rows selected by a compiled query.

        Args:
            query: Tenant-scoped compiled query

        Returns:
            Rows as plain dicts keyed by column key, JSON-serializable values
        """
        pass


def normalize_value(value: Any) -> Any:
    """Make a datastore value JSON-friendly."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


class SqlAlchemyDataSource(BaseDataSource):
    """Runs compiled queries on a SQLAlchemy session."""

    def __init__(self, db: Session, statement_timeout: float | None = None):
        """Initialize data source.

        Args:
            db: Database session
            statement_timeout: Seconds after which PostgreSQL aborts the
                statement (optional; other dialects ignore it)
        """
        self.db = db
        self.statement_timeout = statement_timeout

    async def fetch(self, query: CompiledQuery) -> list[dict[str, Any]]:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Fetching report rows: {explain(query)}")
        # Run the blocking session call off the event loop so callers can time it out
        worker = asyncio.ensure_future(asyncio.to_thread(self._fetch_sync, query))
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The thread cannot be interrupted and the session is not thread-safe:
            # nobody may touch it again until the statement has returned
            await asyncio.wait({worker})
            if worker.exception() is not None:
                logger.debug(f"Abandoned report fetch failed: {worker.exception()}")
            raise

    def _fetch_sync(self, query: CompiledQuery) -> list[dict[str, Any]]:
        if self.statement_timeout and self.db.get_bind().dialect.name == "postgresql":
            milliseconds = max(1, int(self.statement_timeout * 1000))
            self.db.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))
        result = self.db.execute(query.statement)
        return [
            {key: normalize_value(value) for key, value in row.items()}
            for row in result.mappings()
        ]
