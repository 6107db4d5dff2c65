from __future__ import annotations

from datetime import date

from ..domain.errors import ErrorCode, NotFoundError
from ..domain.repositories import UnitOfWork
from ..domain.services import closed_reason
from ..models import DayOfWeek, RestaurantOperatingHours
from ..schemas import CalendarDecision
from ..utils.time import weekday_name
from .outcome import returns_result


class CalendarGate:
    """Answers whether a restaurant takes bookings on a calendar date."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    @returns_result("check whether the restaurant is bookable")
    async def is_bookable(self, restaurant_id: int, day: date) -> CalendarDecision:
        decision, _ = await self.decide(restaurant_id, day)
        return decision

    async def decide(self, restaurant_id: int, day: date) -> tuple[CalendarDecision, RestaurantOperatingHours | None]:
        """Unwrapped decision plus the weekday hours it was based on, for other components."""
        restaurant = await self.uow.restaurants.get(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found", code=ErrorCode.RESTAURANT_NOT_FOUND)

        hours = await self.uow.restaurants.operating_hours(restaurant_id, DayOfWeek(weekday_name(day)))
        closures = await self.uow.restaurants.closures_covering(restaurant_id, day)
        reason = closed_reason(hours, closures, day)
        return CalendarDecision(open=reason is None, reason=reason), hours
