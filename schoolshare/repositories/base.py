"""
Base class for typed repositories.

Repositories receive the request's AsyncSession by constructor and only flush;
the commit/rollback boundary belongs to ``get_db``.
"""
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.exceptions import StoreError
from schoolshare.utils.logger import log_error
from schoolshare.utils.prometheus_metrics import db_errors_total


class BaseRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _store_error(self, exc: SQLAlchemyError) -> StoreError:
        db_errors_total.inc()
        log_error(
            "Query failed",
            event="db",
            repository=type(self).__name__,
            error_type=type(exc).__name__,
            error_message=str(exc)[:200],
        )
        return StoreError()

    async def _execute(self, statement: Any, params: Any = None):
        try:
            return await self.session.execute(statement, params)
        except SQLAlchemyError as e:
            raise self._store_error(e) from e

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise self._store_error(e) from e

    async def flush(self) -> None:
        """Push pending attribute changes to the database."""
        await self._flush()

    async def _add(self, instance: Any) -> Any:
        self.session.add(instance)
        await self._flush()
        return instance
