from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from ..domain.errors import CapacityError, DomainError, ErrorCode, NotFoundError
from ..domain.repositories import UnitOfWork
from ..domain.services import CapacitySnapshot, check_capacity
from ..models import DayOfWeek, MealType, RestaurantCapacity, RestaurantMealService
from ..schemas import CapacityCheck, CapacityPopulation, SeatReservation
from ..utils.time import iter_days, utc_now_naive, weekday_name
from .outcome import returns_result

logger = logging.getLogger(__name__)


class CapacityAdmission:
    """Guarded seat bookkeeping on capacity records.

    ``reserve_seats`` only moves booked_seats with a conditional increment that
    never passes total_seats. It is independent of
    ``QuotaAllocator.set_booked_seats``, which stays an unguarded assignment.
    """

    def __init__(self, uow: UnitOfWork, *, clock: Callable[[], date] = lambda: utc_now_naive().date()) -> None:
        self.uow = uow
        self.clock = clock

    @returns_result("check restaurant capacity")
    async def check_capacity(self, restaurant_id: int, day: date, meal_type: MealType, party_size: int) -> CapacityCheck:
        closures = await self.uow.restaurants.closures_covering(restaurant_id, day)
        if closures:
            closure = closures[0]
            raise DomainError(
                closure.description or f"Restaurant is closed on {day.isoformat()} due to {closure.closure_type}",
                code=ErrorCode.RESTAURANT_CLOSED,
            )

        service, capacity = await self._enabled_capacity(restaurant_id, day, meal_type)
        available = capacity.total_seats - capacity.booked_seats
        return CapacityCheck(
            has_capacity=available >= party_size,
            available_seats=available,
            total_seats=capacity.total_seats,
            booked_seats=capacity.booked_seats,
            meal_service_id=service.id,
        )

    @returns_result("reserve seats")
    async def reserve_seats(self, restaurant_id: int, day: date, meal_type: MealType, party_size: int) -> SeatReservation:
        async def work(uow: UnitOfWork) -> SeatReservation:
            service, capacity = await self._enabled_capacity(restaurant_id, day, meal_type, uow=uow)
            check_capacity(
                CapacitySnapshot(total_seats=capacity.total_seats, booked_seats=capacity.booked_seats),
                party_size=party_size,
            )
            # The snapshot may be stale; the guarded increment is what decides.
            if not await uow.capacity.add_booked_seats_within_total(capacity.id, party_size):
                raise CapacityError("capacity exceeded", details={"capacity_id": capacity.id})
            updated = await uow.capacity.find(restaurant_id, service.id, day)
            if updated is None:
                raise NotFoundError("Capacity record not found", code=ErrorCode.CAPACITY_RECORD_NOT_FOUND)
            return SeatReservation(
                capacity_id=updated.id,
                total_seats=updated.total_seats,
                booked_seats=updated.booked_seats,
                available_seats=updated.total_seats - updated.booked_seats,
            )

        return await self.uow.atomic(work)

    @returns_result("populate restaurant capacity")
    async def populate_capacity(
        self,
        days_ahead: int,
        default_total_seats: int,
        start: Optional[date] = None,
    ) -> list[CapacityPopulation]:
        """
        Ensure capacity records exist for the next ``days_ahead`` days.

        Only weekdays the restaurant is open are touched. A meal service with a
        schedule is bookable on its listed weekdays; without one, on every day.
        Records on bookable days are created or re-enabled; records on other
        days are disabled unless they already hold bookings.
        """
        first_day = start or self.clock()

        async def work(uow: UnitOfWork) -> list[CapacityPopulation]:
            results: list[CapacityPopulation] = []
            for restaurant_id in await uow.restaurants.list_ids():
                added = await self._populate_restaurant(uow, restaurant_id, first_day, days_ahead, default_total_seats)
                if added > 0:
                    results.append(CapacityPopulation(restaurant_id=restaurant_id, records_added=added))
            return results

        results = await self.uow.atomic(work)
        logger.info("capacity population finished: %s restaurant(s) received records", len(results))
        return results

    async def _populate_restaurant(
        self,
        uow: UnitOfWork,
        restaurant_id: int,
        first_day: date,
        days_ahead: int,
        default_total_seats: int,
    ) -> int:
        restaurant = await uow.restaurants.get(restaurant_id)
        if restaurant is None:
            return 0
        total_seats = restaurant.capacity or default_total_seats
        open_days = {h.day_of_week for h in await uow.restaurants.list_operating_hours(restaurant_id) if h.is_open}
        services = await uow.restaurants.active_meal_services(restaurant_id)

        added = 0
        for day in iter_days(first_day, days_ahead):
            weekday = DayOfWeek(weekday_name(day))
            if weekday not in open_days:
                continue
            for service in services:
                bookable = _serves_on(service, weekday)
                existing = await uow.capacity.find(restaurant_id, service.id, day, enabled_only=False)
                if existing is None:
                    if bookable:
                        await uow.capacity.create(
                            restaurant_id=restaurant_id,
                            service_id=service.id,
                            day=day,
                            total_seats=total_seats,
                        )
                        added += 1
                elif bookable and not existing.is_enabled:
                    await uow.capacity.set_enabled(existing.id, True)
                elif not bookable and existing.is_enabled and existing.booked_seats == 0:
                    await uow.capacity.set_enabled(existing.id, False)
        return added

    async def _enabled_capacity(
        self,
        restaurant_id: int,
        day: date,
        meal_type: MealType,
        *,
        uow: Optional[UnitOfWork] = None,
    ) -> tuple[RestaurantMealService, RestaurantCapacity]:
        uow = uow or self.uow
        service = await uow.restaurants.active_meal_service(restaurant_id, meal_type)
        if service is None:
            raise NotFoundError(
                f"No meal service available for {meal_type.value} at restaurant {restaurant_id}",
                code=ErrorCode.MEAL_SERVICE_NOT_FOUND,
            )
        capacity = await uow.capacity.find(restaurant_id, service.id, day)
        if capacity is None:
            raise NotFoundError(
                f"This buffet is not available on the selected date on {day.isoformat()}",
                code=ErrorCode.CAPACITY_RECORD_NOT_FOUND,
            )
        return service, capacity


def _serves_on(service: RestaurantMealService, weekday: DayOfWeek) -> bool:
    if service.schedule is None:
        return True
    return weekday.value in service.schedule.available_days
