from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import UnitOfWork
from .repositories import (
    SqlAlchemyCapacityRepository,
    SqlAlchemyCustomerRepository,
    SqlAlchemyPromoCodeRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyReservationRequestRepository,
    SqlAlchemyRestaurantRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Repositories bound to one AsyncSession; ``atomic`` commits or rolls back as a unit."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.restaurants = SqlAlchemyRestaurantRepository(session)
        self.capacity = SqlAlchemyCapacityRepository(session)
        self.reservations = SqlAlchemyReservationRepository(session)
        self.requests = SqlAlchemyReservationRequestRepository(session)
        self.customers = SqlAlchemyCustomerRepository(session)
        self.promo_codes = SqlAlchemyPromoCodeRepository(session)

    async def atomic(self, work: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        # Reads issued before atomic() may have autobegun a transaction; it is
        # folded into this unit and ends with it.
        try:
            result = await work(self)
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            logger.info("unit of work rolled back")
            raise
        return result
