from typing import Callable

from loguru import logger
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.domain.errors import TransientStoreError
from parkshare.infrastructure.persistence.sqlalchemy_repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemySlotRepository,
    SQLAlchemyBookingRepository,
    SQLAlchemyEarningRepository,
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """Unit of Work over a single ``AsyncSession``.

    A fresh session is opened on every ``async with`` so one instance must not
    be shared between concurrent callers; build one per operation instead.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory
        self.session = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self.session_factory()
        self.users = SQLAlchemyUserRepository(self.session)
        self.slots = SQLAlchemySlotRepository(self.session)
        self.bookings = SQLAlchemyBookingRepository(self.session)
        self.earnings = SQLAlchemyEarningRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            await self.rollback()
        finally:
            await self.session.close()

        if isinstance(exc_val, OperationalError):
            logger.error(f"Store failure, transaction rolled back: {exc_val}")
            raise TransientStoreError() from exc_val

    async def commit(self):
        try:
            await self.session.commit()
        except OperationalError as e:
            logger.error(f"Error committing transaction: {e}")
            await self.session.rollback()
            raise TransientStoreError() from e
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction: {e}")
            await self.session.rollback()
            raise

    async def rollback(self):
        await self.session.rollback()


def unit_of_work_factory(session_factory: Callable[[], AsyncSession]) -> Callable[[], SQLAlchemyUnitOfWork]:
    def _factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)
    return _factory
