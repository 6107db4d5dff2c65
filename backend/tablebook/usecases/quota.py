from __future__ import annotations

import logging
from datetime import date

from ..domain.errors import ErrorCode, NotFoundError
from ..domain.repositories import UnitOfWork
from ..domain.services import channel_remaining, manual_quota, seats_left
from ..models import CreatorType, MealType, RestaurantCapacity
from ..schemas import CapacityRecordView, QuotaAvailability, QuotaCount, RestaurantQuotaInfo
from .outcome import returns_result

logger = logging.getLogger(__name__)


class QuotaAllocator:
    """
    Splits a restaurant's seat pool into online (customer) and manual (staff)
    quotas and reports what is left per channel for a date and meal.

    The total left is read from the capacity record, independently of the
    channel split, so the two views can disagree when booked_seats drifts from
    the reservation aggregates.
    """

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    @returns_result("get restaurant quota info")
    async def restaurant_quota_info(self, restaurant_id: int) -> RestaurantQuotaInfo:
        return await self._quota_info(restaurant_id)

    @returns_result("count bookings by source")
    async def count_bookings_by_source(self, restaurant_id: int, day: date, meal_type: MealType) -> QuotaCount:
        return await self._count_bookings(restaurant_id, day, meal_type)

    @returns_result("get capacity record")
    async def capacity_record(self, restaurant_id: int, day: date, meal_type: MealType) -> CapacityRecordView:
        capacity = await self._enabled_capacity(restaurant_id, day, meal_type)
        return CapacityRecordView(
            id=capacity.id,
            total_seats=capacity.total_seats,
            booked_seats=capacity.booked_seats,
            service_id=capacity.service_id,
        )

    @returns_result("get quota availability")
    async def quota_availability(self, restaurant_id: int, day: date, meal_type: MealType) -> QuotaAvailability:
        quota_info = await self._quota_info(restaurant_id)
        bookings = await self._count_bookings(restaurant_id, day, meal_type)
        capacity = await self._enabled_capacity(restaurant_id, day, meal_type)
        return QuotaAvailability(
            total_available=seats_left(capacity),
            online_available=channel_remaining(quota_info.online_quota, bookings.online_bookings),
            manual_available=channel_remaining(quota_info.manual_quota, bookings.manual_bookings),
            current_bookings=bookings,
            quota_info=quota_info,
        )

    @returns_result("update capacity booked seats")
    async def set_booked_seats(self, capacity_id: int, booked_seats: int) -> bool:
        """Absolute, unguarded assignment. Bounds are the caller's business."""

        async def work(uow: UnitOfWork) -> bool:
            if not await uow.capacity.set_booked_seats(capacity_id, booked_seats):
                raise NotFoundError(f"Capacity record {capacity_id} not found")
            return True

        updated = await self.uow.atomic(work)
        logger.info("capacity %s booked_seats set to %s", capacity_id, booked_seats)
        return updated

    async def _quota_info(self, restaurant_id: int) -> RestaurantQuotaInfo:
        restaurant = await self.uow.restaurants.get(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found", code=ErrorCode.RESTAURANT_NOT_FOUND)
        return RestaurantQuotaInfo(
            restaurant_id=restaurant.id,
            total_capacity=restaurant.capacity,
            online_quota=restaurant.online_quota,
            manual_quota=manual_quota(restaurant.capacity, restaurant.online_quota),
        )

    async def _count_bookings(self, restaurant_id: int, day: date, meal_type: MealType) -> QuotaCount:
        online = await self.uow.reservations.sum_party_size(restaurant_id, day, meal_type, CreatorType.CUSTOMER)
        manual = await self.uow.reservations.sum_party_size(restaurant_id, day, meal_type, CreatorType.MERCHANT)
        return QuotaCount(online_bookings=online, manual_bookings=manual, total_bookings=online + manual)

    async def _enabled_capacity(self, restaurant_id: int, day: date, meal_type: MealType) -> RestaurantCapacity:
        service = await self.uow.restaurants.active_meal_service(restaurant_id, meal_type)
        if service is None:
            raise NotFoundError("Meal service not found", code=ErrorCode.MEAL_SERVICE_NOT_FOUND)
        capacity = await self.uow.capacity.find(restaurant_id, service.id, day)
        if capacity is None:
            raise NotFoundError("Capacity record not found", code=ErrorCode.CAPACITY_RECORD_NOT_FOUND)
        return capacity
