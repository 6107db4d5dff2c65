from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Awaitable, Callable, Protocol, TypeVar

from ..models import (
    CreatorType,
    Customer,
    DayOfWeek,
    MealType,
    PromoCode,
    PromoCodeCustomerMapping,
    PromoCodeRestaurantMapping,
    PromoCodeUsage,
    Reservation,
    ReservationFinancialData,
    ReservationRequest,
    Restaurant,
    RestaurantCapacity,
    RestaurantMealService,
    RestaurantOperatingHours,
    RestaurantSpecialClosure,
)

T = TypeVar("T")


class RestaurantRepository(Protocol):
    async def get(self, restaurant_id: int) -> Restaurant | None: ...

    async def list_ids(self) -> list[int]: ...

    async def operating_hours(self, restaurant_id: int, day: DayOfWeek) -> RestaurantOperatingHours | None: ...

    async def list_operating_hours(self, restaurant_id: int) -> list[RestaurantOperatingHours]: ...

    async def closures_covering(self, restaurant_id: int, day: date) -> list[RestaurantSpecialClosure]: ...

    async def active_meal_service(self, restaurant_id: int, meal_type: MealType) -> RestaurantMealService | None: ...

    async def active_meal_services(self, restaurant_id: int) -> list[RestaurantMealService]:
        """Available meal services with their weekday schedule loaded."""
        ...


class CapacityRepository(Protocol):
    async def find(
        self,
        restaurant_id: int,
        service_id: int,
        day: date,
        *,
        enabled_only: bool = True,
    ) -> RestaurantCapacity | None: ...

    async def latest_enabled_date(self, restaurant_id: int, service_id: int) -> date | None: ...

    async def create(self, *, restaurant_id: int, service_id: int, day: date, total_seats: int) -> RestaurantCapacity: ...

    async def set_enabled(self, capacity_id: int, enabled: bool) -> None: ...

    async def set_booked_seats(self, capacity_id: int, booked_seats: int) -> bool:
        """Absolute assignment. Returns False when no such record exists."""
        ...

    async def add_booked_seats_within_total(self, capacity_id: int, seats: int) -> bool:
        """Conditional increment; False when the record is missing or would overflow."""
        ...


class ReservationRepository(Protocol):
    async def sum_party_size(
        self,
        restaurant_id: int,
        day: date,
        meal_type: MealType,
        created_by: CreatorType,
    ) -> int: ...

    async def count_active_for_customer(self, customer_id: int) -> int: ...

    async def get_by_request(self, request_id: int) -> Reservation | None: ...

    async def create(self, reservation: Reservation) -> Reservation: ...

    async def create_financial_data(self, financial: ReservationFinancialData) -> ReservationFinancialData: ...

    async def apply_discount(self, reservation_id: int, promo_code_id: int, discount_amount: Decimal) -> bool: ...


class ReservationRequestRepository(Protocol):
    async def get_with_customer_for_update(self, request_id: int) -> ReservationRequest | None: ...

    async def create(self, request: ReservationRequest) -> ReservationRequest: ...

    async def mark_completed(self, request: ReservationRequest, completed_at: datetime) -> ReservationRequest: ...


class CustomerRepository(Protocol):
    async def upsert_by_phone(
        self,
        *,
        first_name: str,
        last_name: str,
        phone: str,
        email: str | None,
    ) -> Customer: ...

    async def get_by_phone(self, phone: str) -> Customer | None: ...


class PromoCodeRepository(Protocol):
    async def get_by_code(self, code: str) -> PromoCode | None: ...

    async def restaurant_mappings(
        self, promo_code_id: int, restaurant_id: int | None = None
    ) -> list[PromoCodeRestaurantMapping]: ...

    async def customer_mappings(
        self, promo_code_id: int, customer_id: int | None = None
    ) -> list[PromoCodeCustomerMapping]: ...

    async def usage_by_customer(self, promo_code_id: int, customer_id: int) -> list[PromoCodeUsage]: ...

    async def add_usage(self, usage: PromoCodeUsage) -> PromoCodeUsage: ...

    async def increment_counters(self, promo_code_id: int, party_size: int) -> bool: ...


class UnitOfWork(Protocol):
    """Storage port handed to every component.

    Reads go straight through the repositories. Multi-write operations run inside
    ``atomic``: either every write in ``work`` is applied or none is.
    """

    restaurants: RestaurantRepository
    capacity: CapacityRepository
    reservations: ReservationRepository
    requests: ReservationRequestRepository
    customers: CustomerRepository
    promo_codes: PromoCodeRepository

    async def atomic(self, work: Callable[["UnitOfWork"], Awaitable[T]]) -> T: ...
