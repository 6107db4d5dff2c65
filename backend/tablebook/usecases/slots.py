from __future__ import annotations

import logging
from datetime import date, timedelta

from ..domain.errors import ErrorCode, NotFoundError
from ..domain.repositories import UnitOfWork
from ..domain.services import INSUFFICIENT_CAPACITY_REASON, slot_seats, time_points
from ..models import MealType
from ..schemas import (
    LastCapacityDate,
    MealTypeAvailability,
    RestaurantAvailability,
    SlotsResponse,
    TimeSlot,
)
from .calendar import CalendarGate
from .outcome import returns_result

logger = logging.getLogger(__name__)

DEFAULT_SLOT_INTERVAL_MINUTES = 30


class SlotGenerator:
    """Bookable time points for one meal service on one day.

    Slots are recomputed on every call. Seats per slot come from the capacity
    record for the date (enabled or not); without one, the weekday's online
    quota stands in, and without that the day yields no slots.
    """

    def __init__(self, uow: UnitOfWork, *, interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES) -> None:
        self.uow = uow
        self.calendar = CalendarGate(uow)
        self.step = timedelta(minutes=interval_minutes)

    @returns_result("generate time slots")
    async def generate_slots(
        self,
        restaurant_id: int,
        day: date,
        meal_type: MealType,
        party_size: int,
    ) -> SlotsResponse:
        slots = await self._slots(restaurant_id, day, meal_type, party_size)
        return SlotsResponse(restaurant_id=restaurant_id, service_date=day, meal_type=meal_type, slots=slots)

    @returns_result("check slot availability")
    async def check_slot_availability(
        self,
        restaurant_id: int,
        day: date,
        slot_time: str,
        meal_type: MealType,
        party_size: int,
    ) -> bool:
        slots = await self._slots(restaurant_id, day, meal_type, party_size)
        return next((s.available for s in slots if s.time == slot_time), False)

    @returns_result("get meal availability")
    async def meal_availability(self, restaurant_id: int, day: date) -> RestaurantAvailability:
        decision, hours = await self.calendar.decide(restaurant_id, day)
        availability = RestaurantAvailability(restaurant_id=restaurant_id, service_date=day, meal_types=[])
        if not decision.open or hours is None:
            return availability

        for service in await self.uow.restaurants.active_meal_services(restaurant_id):
            capacity = await self.uow.capacity.find(restaurant_id, service.id, day, enabled_only=False)
            if capacity is not None:
                total, booked = capacity.total_seats, capacity.booked_seats
                seats = total - booked
                is_available = service.is_available and seats > 0
            else:
                total, booked = hours.online_quota or 0, 0
                seats = total
                is_available = service.is_available
            availability.meal_types.append(
                MealTypeAvailability(
                    meal_type=service.meal_type,
                    total_seats=total,
                    booked_seats=booked,
                    available_seats=seats,
                    is_available=is_available,
                    service_start_time=service.service_start_time,
                    service_end_time=service.service_end_time,
                    meal_service_id=service.id,
                )
            )
        return availability

    @returns_result("get last capacity date")
    async def last_capacity_date(self, restaurant_id: int, meal_type: MealType) -> LastCapacityDate:
        service = await self.uow.restaurants.active_meal_service(restaurant_id, meal_type)
        if service is None:
            raise NotFoundError("Meal service not found", code=ErrorCode.MEAL_SERVICE_NOT_FOUND)
        last = await self.uow.capacity.latest_enabled_date(restaurant_id, service.id)
        return LastCapacityDate(last_date=last)

    async def _slots(self, restaurant_id: int, day: date, meal_type: MealType, party_size: int) -> list[TimeSlot]:
        decision, hours = await self.calendar.decide(restaurant_id, day)
        if not decision.open or hours is None:
            logger.debug("restaurant %s not bookable on %s: %s", restaurant_id, day, decision.reason)
            return []

        service = await self.uow.restaurants.active_meal_service(restaurant_id, meal_type)
        if service is None:
            return []

        capacity = await self.uow.capacity.find(restaurant_id, service.id, day, enabled_only=False)
        seats = slot_seats(capacity, hours.online_quota)
        if seats is None:
            return []

        available = seats >= party_size
        return [
            TimeSlot(
                time=point.strftime("%H:%M"),
                available=available,
                available_seats=seats,
                reason=None if available else INSUFFICIENT_CAPACITY_REASON,
            )
            for point in time_points(day, service.service_start_time, service.service_end_time, self.step)
        ]
