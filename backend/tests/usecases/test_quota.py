from datetime import date

import pytest

from tablebook.domain.errors import ErrorCode
from tablebook.models import CreatorType, MealType, ReservationStatus
from tablebook.usecases.quota import QuotaAllocator

SERVICE_DAY = date(2025, 7, 14)


@pytest.fixture
def booked_restaurant(seed):
    restaurant = seed.restaurant(capacity=100, online_quota=60)
    service = seed.meal_service(restaurant, MealType.LUNCH)
    capacity = seed.capacity(service, SERVICE_DAY, total_seats=100, booked_seats=65)
    customer = seed.customer()
    # 55 online covers, 10 manual covers
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=30, children=5)
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=20)
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=8, children=2, created_by=CreatorType.MERCHANT)
    # Not counted: inactive statuses, other meals, other days
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=9, status=ReservationStatus.CANCELLED)
    seed.reservation(
        restaurant, customer, day=SERVICE_DAY, adults=9, created_by=CreatorType.MERCHANT, status=ReservationStatus.REJECTED
    )
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=9, meal_type=MealType.DINNER)
    seed.reservation(restaurant, customer, day=date(2025, 7, 15), adults=9)
    return restaurant, capacity


@pytest.mark.asyncio
async def test_quota_availability_splits_channels(uow, booked_restaurant) -> None:
    restaurant, _ = booked_restaurant

    result = await QuotaAllocator(uow).quota_availability(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert result.success
    data = result.data
    assert data.quota_info.total_capacity == 100
    assert data.quota_info.online_quota == 60
    assert data.quota_info.manual_quota == 40
    assert data.current_bookings.online_bookings == 55
    assert data.current_bookings.manual_bookings == 10
    assert data.current_bookings.total_bookings == 65
    assert data.online_available == 5
    assert data.manual_available == 30
    assert data.total_available == 35


@pytest.mark.asyncio
async def test_total_available_comes_from_capacity_record_not_channels(uow, booked_restaurant) -> None:
    restaurant, capacity = booked_restaurant
    capacity.booked_seats = 20  # stale relative to the reservation aggregates

    result = await QuotaAllocator(uow).quota_availability(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert result.data.total_available == 80
    assert result.data.online_available + result.data.manual_available == 35


@pytest.mark.asyncio
async def test_channel_overbooking_clamps_to_zero(uow, seed) -> None:
    restaurant = seed.restaurant(capacity=10, online_quota=4)
    service = seed.meal_service(restaurant, MealType.LUNCH)
    seed.capacity(service, SERVICE_DAY, total_seats=10, booked_seats=12)
    customer = seed.customer()
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=6)
    seed.reservation(restaurant, customer, day=SERVICE_DAY, adults=6, created_by=CreatorType.MERCHANT)

    result = await QuotaAllocator(uow).quota_availability(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert result.data.online_available == 0
    assert result.data.manual_available == 0
    assert result.data.total_available == -2


@pytest.mark.asyncio
async def test_quota_availability_unknown_restaurant(uow) -> None:
    result = await QuotaAllocator(uow).quota_availability(1, SERVICE_DAY, MealType.LUNCH)

    assert not result.success
    assert result.error.code == ErrorCode.RESTAURANT_NOT_FOUND


@pytest.mark.asyncio
async def test_quota_availability_requires_enabled_capacity_record(uow, seed) -> None:
    restaurant = seed.restaurant()
    service = seed.meal_service(restaurant, MealType.LUNCH)
    seed.capacity(service, SERVICE_DAY, is_enabled=False)

    result = await QuotaAllocator(uow).quota_availability(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert not result.success
    assert result.error.code == ErrorCode.CAPACITY_RECORD_NOT_FOUND


@pytest.mark.asyncio
async def test_capacity_record_view(uow, booked_restaurant) -> None:
    restaurant, capacity = booked_restaurant

    result = await QuotaAllocator(uow).capacity_record(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert result.success
    assert result.data.id == capacity.id
    assert result.data.booked_seats == 65
    assert result.data.service_id == capacity.service_id


@pytest.mark.asyncio
async def test_restaurant_quota_info(uow, seed) -> None:
    restaurant = seed.restaurant(capacity=80, online_quota=50)

    result = await QuotaAllocator(uow).restaurant_quota_info(restaurant.id)

    assert result.data.manual_quota == 30


@pytest.mark.asyncio
async def test_count_bookings_by_source(uow, booked_restaurant) -> None:
    restaurant, _ = booked_restaurant

    result = await QuotaAllocator(uow).count_bookings_by_source(restaurant.id, SERVICE_DAY, MealType.LUNCH)

    assert (result.data.online_bookings, result.data.manual_bookings) == (55, 10)


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [0, 42, 250, -3])
async def test_set_booked_seats_is_an_unguarded_assignment(uow, booked_restaurant, value: int) -> None:
    _, capacity = booked_restaurant

    result = await QuotaAllocator(uow).set_booked_seats(capacity.id, value)

    assert result.success
    assert capacity.booked_seats == value
    assert uow.commits == 1


@pytest.mark.asyncio
async def test_set_booked_seats_unknown_capacity(uow) -> None:
    result = await QuotaAllocator(uow).set_booked_seats(12345, 3)

    assert not result.success
    assert result.error.code == ErrorCode.RECORD_NOT_FOUND
    assert uow.rollbacks == 1
