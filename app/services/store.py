"""Shared timeout and error handling for the repositories."""

import asyncio
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import StoreError

logger = logging.getLogger(__name__)


class BoundedStore:
    """Runs session operations under ``DB_OPERATION_TIMEOUT_SECONDS``.

    Timeouts and driver errors are rolled back and re-raised as StoreError.
    IntegrityError passes through untouched so callers can treat a
    uniqueness violation as a domain outcome.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _bounded(self, awaitable, what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=settings.DB_OPERATION_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as exc:
            logger.error("Store timed out during %s", what)
            await self._safe_rollback()
            raise StoreError(f"timed out during {what}") from exc
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Store failed during %s", what)
            await self._safe_rollback()
            raise StoreError(f"{what} failed") from exc

    async def _safe_rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after store failure also failed", exc_info=True)

    async def _execute(self, statement, what: str):
        return await self._bounded(self.db.execute(statement), what)

    async def _commit(self, what: str) -> None:
        await self._bounded(self.db.commit(), what)

    async def _refresh(self, instance, what: str) -> None:
        await self._bounded(self.db.refresh(instance), what)
