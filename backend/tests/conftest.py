from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

import pytest
from sqlalchemy import inspect

from tablebook.domain.services import closure_covers
from tablebook.models import (
    INACTIVE_RESERVATION_STATUSES,
    CampaignType,
    CreatorType,
    Customer,
    DayOfWeek,
    DiscountType,
    MealServiceSchedule,
    MealType,
    PromoCode,
    PromoCodeCustomerMapping,
    PromoCodeRestaurantMapping,
    PromoCodeUsage,
    Reservation,
    ReservationFinancialData,
    ReservationRequest,
    ReservationRequestStatus,
    ReservationStatus,
    Restaurant,
    RestaurantCapacity,
    RestaurantMealService,
    RestaurantOperatingHours,
    RestaurantSpecialClosure,
)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# In-memory storage port
# ---------------------------------------------------------------------------


@dataclass
class FakeStore:
    restaurants: list[Restaurant] = field(default_factory=list)
    hours: list[RestaurantOperatingHours] = field(default_factory=list)
    closures: list[RestaurantSpecialClosure] = field(default_factory=list)
    services: list[RestaurantMealService] = field(default_factory=list)
    capacities: list[RestaurantCapacity] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    requests: list[ReservationRequest] = field(default_factory=list)
    reservations: list[Reservation] = field(default_factory=list)
    financials: list[ReservationFinancialData] = field(default_factory=list)
    promo_codes: list[PromoCode] = field(default_factory=list)
    restaurant_mappings: list[PromoCodeRestaurantMapping] = field(default_factory=list)
    customer_mappings: list[PromoCodeCustomerMapping] = field(default_factory=list)
    usages: list[PromoCodeUsage] = field(default_factory=list)
    _next_id: int = 1

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def collections(self) -> dict[str, list[Any]]:
        return {name: value for name, value in vars(self).items() if isinstance(value, list)}

    def snapshot(self) -> tuple[dict[str, list[Any]], list[tuple[Any, dict[str, Any]]], int]:
        lists = {name: list(items) for name, items in self.collections().items()}
        rows = [
            (obj, {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs})
            for items in lists.values()
            for obj in items
        ]
        return lists, rows, self._next_id

    def restore(self, snap: tuple[dict[str, list[Any]], list[tuple[Any, dict[str, Any]]], int]) -> None:
        lists, rows, next_id = snap
        for name, items in lists.items():
            getattr(self, name)[:] = items
        for obj, values in rows:
            for key, value in values.items():
                setattr(obj, key, value)
        self._next_id = next_id


class FakeRestaurantRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get(self, restaurant_id: int) -> Restaurant | None:
        return next((r for r in self.store.restaurants if r.id == restaurant_id), None)

    async def list_ids(self) -> list[int]:
        return sorted(r.id for r in self.store.restaurants)

    async def operating_hours(self, restaurant_id: int, day: DayOfWeek) -> RestaurantOperatingHours | None:
        return next(
            (h for h in self.store.hours if h.restaurant_id == restaurant_id and h.day_of_week == day),
            None,
        )

    async def list_operating_hours(self, restaurant_id: int) -> list[RestaurantOperatingHours]:
        return [h for h in self.store.hours if h.restaurant_id == restaurant_id]

    async def closures_covering(self, restaurant_id: int, day: date) -> list[RestaurantSpecialClosure]:
        return [c for c in self.store.closures if c.restaurant_id == restaurant_id and closure_covers(c, day)]

    async def active_meal_service(self, restaurant_id: int, meal_type: MealType) -> RestaurantMealService | None:
        services = await self.active_meal_services(restaurant_id)
        return next((s for s in services if s.meal_type == meal_type), None)

    async def active_meal_services(self, restaurant_id: int) -> list[RestaurantMealService]:
        return sorted(
            (s for s in self.store.services if s.restaurant_id == restaurant_id and s.is_available),
            key=lambda s: s.id,
        )


class FakeCapacityRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def _by_id(self, capacity_id: int) -> RestaurantCapacity | None:
        return next((c for c in self.store.capacities if c.id == capacity_id), None)

    async def find(
        self,
        restaurant_id: int,
        service_id: int,
        day: date,
        *,
        enabled_only: bool = True,
    ) -> RestaurantCapacity | None:
        for c in self.store.capacities:
            if c.restaurant_id == restaurant_id and c.service_id == service_id and c.service_date == day:
                if enabled_only and not c.is_enabled:
                    continue
                return c
        return None

    async def latest_enabled_date(self, restaurant_id: int, service_id: int) -> date | None:
        days = [
            c.service_date
            for c in self.store.capacities
            if c.restaurant_id == restaurant_id and c.service_id == service_id and c.is_enabled
        ]
        return max(days, default=None)

    async def create(self, *, restaurant_id: int, service_id: int, day: date, total_seats: int) -> RestaurantCapacity:
        capacity = RestaurantCapacity(
            id=self.store.next_id(),
            restaurant_id=restaurant_id,
            service_id=service_id,
            service_date=day,
            total_seats=total_seats,
            booked_seats=0,
            is_enabled=True,
        )
        self.store.capacities.append(capacity)
        return capacity

    async def set_enabled(self, capacity_id: int, enabled: bool) -> None:
        capacity = self._by_id(capacity_id)
        if capacity is not None:
            capacity.is_enabled = enabled

    async def set_booked_seats(self, capacity_id: int, booked_seats: int) -> bool:
        capacity = self._by_id(capacity_id)
        if capacity is None:
            return False
        capacity.booked_seats = booked_seats
        return True

    async def add_booked_seats_within_total(self, capacity_id: int, seats: int) -> bool:
        capacity = self._by_id(capacity_id)
        if capacity is None or capacity.booked_seats + seats > capacity.total_seats:
            return False
        capacity.booked_seats += seats
        return True


class FakeReservationRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def _active(self) -> list[Reservation]:
        return [r for r in self.store.reservations if r.status not in INACTIVE_RESERVATION_STATUSES]

    async def sum_party_size(
        self,
        restaurant_id: int,
        day: date,
        meal_type: MealType,
        created_by: CreatorType,
    ) -> int:
        return sum(
            r.adult_count + r.child_count
            for r in self._active()
            if r.restaurant_id == restaurant_id
            and r.reservation_date == day
            and r.meal_type == meal_type
            and r.created_by == created_by
        )

    async def count_active_for_customer(self, customer_id: int) -> int:
        return sum(1 for r in self._active() if r.customer_id == customer_id)

    async def get_by_request(self, request_id: int) -> Reservation | None:
        return next((r for r in self.store.reservations if r.request_id == request_id), None)

    async def create(self, reservation: Reservation) -> Reservation:
        if any(r.request_id == reservation.request_id for r in self.store.reservations):
            raise RuntimeError("duplicate request_id")
        reservation.id = self.store.next_id()
        self.store.reservations.append(reservation)
        return reservation

    async def create_financial_data(self, financial: ReservationFinancialData) -> ReservationFinancialData:
        financial.id = self.store.next_id()
        self.store.financials.append(financial)
        return financial

    async def apply_discount(self, reservation_id: int, promo_code_id: int, discount_amount: Decimal) -> bool:
        reservation = next((r for r in self.store.reservations if r.id == reservation_id), None)
        if reservation is None:
            return False
        reservation.promo_code_id = promo_code_id
        reservation.discount_amount = discount_amount
        reservation.remaining_payment_amount = reservation.remaining_payment_amount - discount_amount
        return True


class FakeReservationRequestRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_with_customer_for_update(self, request_id: int) -> ReservationRequest | None:
        request = next((r for r in self.store.requests if r.id == request_id), None)
        if request is not None:
            request.customer = next(c for c in self.store.customers if c.id == request.customer_id)
        return request

    async def create(self, request: ReservationRequest) -> ReservationRequest:
        request.id = self.store.next_id()
        self.store.requests.append(request)
        return request

    async def mark_completed(self, request: ReservationRequest, completed_at: datetime) -> ReservationRequest:
        request.status = ReservationRequestStatus.COMPLETED
        request.processing_completed_at = completed_at
        return request


class FakeCustomerRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def upsert_by_phone(
        self,
        *,
        first_name: str,
        last_name: str,
        phone: str,
        email: str | None,
    ) -> Customer:
        customer = await self.get_by_phone(phone)
        if customer is None:
            customer = Customer(id=self.store.next_id(), phone=phone)
            self.store.customers.append(customer)
        customer.first_name = first_name
        customer.last_name = last_name
        customer.email = email or None
        return customer

    async def get_by_phone(self, phone: str) -> Customer | None:
        return next((c for c in self.store.customers if c.phone == phone), None)


class FakePromoCodeRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_code(self, code: str) -> PromoCode | None:
        return next((p for p in self.store.promo_codes if p.code == code), None)

    async def restaurant_mappings(
        self, promo_code_id: int, restaurant_id: Optional[int] = None
    ) -> list[PromoCodeRestaurantMapping]:
        return [
            m
            for m in self.store.restaurant_mappings
            if m.promo_code_id == promo_code_id
            and m.is_active
            and (restaurant_id is None or m.restaurant_id == restaurant_id)
        ]

    async def customer_mappings(
        self, promo_code_id: int, customer_id: Optional[int] = None
    ) -> list[PromoCodeCustomerMapping]:
        return [
            m
            for m in self.store.customer_mappings
            if m.promo_code_id == promo_code_id
            and m.is_active
            and (customer_id is None or m.customer_id == customer_id)
        ]

    async def usage_by_customer(self, promo_code_id: int, customer_id: int) -> list[PromoCodeUsage]:
        records = [u for u in self.store.usages if u.promo_code_id == promo_code_id and u.customer_id == customer_id]
        return sorted(records, key=lambda u: (u.applied_at, u.id), reverse=True)

    async def add_usage(self, usage: PromoCodeUsage) -> PromoCodeUsage:
        usage.id = self.store.next_id()
        self.store.usages.append(usage)
        return usage

    async def increment_counters(self, promo_code_id: int, party_size: int) -> bool:
        promo = next((p for p in self.store.promo_codes if p.id == promo_code_id), None)
        if promo is None:
            return False
        promo.times_used += 1
        promo.party_size_used += party_size
        return True


class FakeUnitOfWork:
    """All-or-nothing ``atomic`` over the in-memory store."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.restaurants = FakeRestaurantRepository(store)
        self.capacity = FakeCapacityRepository(store)
        self.reservations = FakeReservationRepository(store)
        self.requests = FakeReservationRequestRepository(store)
        self.customers = FakeCustomerRepository(store)
        self.promo_codes = FakePromoCodeRepository(store)
        self.commits = 0
        self.rollbacks = 0

    async def atomic(self, work: Callable[[Any], Awaitable[T]]) -> T:
        snap = self.store.snapshot()
        try:
            result = await work(self)
        except BaseException:
            self.store.restore(snap)
            self.rollbacks += 1
            raise
        self.commits += 1
        return result


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


class Seeder:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def restaurant(self, *, capacity: int = 100, online_quota: int = 60, name: str = "Harbor Buffet") -> Restaurant:
        restaurant = Restaurant(
            id=self.store.next_id(),
            name=name,
            capacity=capacity,
            online_quota=online_quota,
            advance_payment_percentage=Decimal("0"),
        )
        self.store.restaurants.append(restaurant)
        return restaurant

    def hours(
        self,
        restaurant: Restaurant,
        day: DayOfWeek,
        *,
        is_open: bool = True,
        online_quota: Optional[int] = None,
        opening: time = time(10, 0),
        closing: time = time(22, 0),
    ) -> RestaurantOperatingHours:
        hours = RestaurantOperatingHours(
            restaurant_id=restaurant.id,
            day_of_week=day,
            is_open=is_open,
            online_quota=online_quota,
            opening_time=opening,
            closing_time=closing,
        )
        self.store.hours.append(hours)
        return hours

    def week(self, restaurant: Restaurant, *, closed: tuple[DayOfWeek, ...] = (), online_quota: Optional[int] = None) -> None:
        for day in DayOfWeek:
            self.hours(restaurant, day, is_open=day not in closed, online_quota=online_quota)

    def closure(
        self,
        restaurant: Restaurant,
        start: datetime,
        end: datetime,
        *,
        description: Optional[str] = "Private event",
        closure_type: str = "PRIVATE_EVENT",
    ) -> RestaurantSpecialClosure:
        closure = RestaurantSpecialClosure(
            id=self.store.next_id(),
            restaurant_id=restaurant.id,
            closure_start=start,
            closure_end=end,
            closure_type=closure_type,
            description=description,
        )
        self.store.closures.append(closure)
        return closure

    def meal_service(
        self,
        restaurant: Restaurant,
        meal_type: MealType = MealType.LUNCH,
        *,
        start: time = time(11, 0),
        end: time = time(14, 0),
        is_available: bool = True,
        available_days: Optional[list[str]] = None,
    ) -> RestaurantMealService:
        service = RestaurantMealService(
            id=self.store.next_id(),
            restaurant_id=restaurant.id,
            meal_type=meal_type,
            is_available=is_available,
            service_start_time=start,
            service_end_time=end,
        )
        if available_days is not None:
            service.schedule = MealServiceSchedule(service_id=service.id, available_days=available_days)
        self.store.services.append(service)
        return service

    def capacity(
        self,
        service: RestaurantMealService,
        day: date,
        *,
        total_seats: int = 100,
        booked_seats: int = 0,
        is_enabled: bool = True,
    ) -> RestaurantCapacity:
        capacity = RestaurantCapacity(
            id=self.store.next_id(),
            restaurant_id=service.restaurant_id,
            service_id=service.id,
            service_date=day,
            total_seats=total_seats,
            booked_seats=booked_seats,
            is_enabled=is_enabled,
        )
        self.store.capacities.append(capacity)
        return capacity

    def customer(self, *, phone: str = "+94770000001", email: Optional[str] = None) -> Customer:
        customer = Customer(id=self.store.next_id(), first_name="Nimal", last_name="Perera", phone=phone, email=email)
        self.store.customers.append(customer)
        return customer

    def request(
        self,
        restaurant: Restaurant,
        customer: Customer,
        *,
        day: date = date(2025, 7, 14),
        meal_type: MealType = MealType.LUNCH,
        adults: int = 2,
        children: int = 0,
        total: Decimal = Decimal("11500.00"),
        service_charge: Decimal = Decimal("1000.00"),
        tax: Decimal = Decimal("500.00"),
        discount: Optional[Decimal] = None,
        promo_code_id: Optional[int] = None,
        request_id: Optional[int] = None,
    ) -> ReservationRequest:
        request = ReservationRequest(
            id=request_id if request_id is not None else self.store.next_id(),
            restaurant_id=restaurant.id,
            customer_id=customer.id,
            request_name=f"{customer.first_name} {customer.last_name}",
            contact_phone=customer.phone,
            requested_date=day,
            requested_time=time(12, 30),
            adult_count=adults,
            child_count=children,
            meal_type=meal_type,
            status=ReservationRequestStatus.PENDING,
            estimated_total_amount=total,
            estimated_service_charge=service_charge,
            estimated_tax_amount=tax,
            estimated_discount_amount=discount,
            promo_code_id=promo_code_id,
            created_by=CreatorType.MERCHANT,
            requires_advance_payment=False,
        )
        self.store.requests.append(request)
        return request

    def reservation(
        self,
        restaurant: Restaurant,
        customer: Customer,
        *,
        day: date,
        meal_type: MealType = MealType.LUNCH,
        adults: int = 2,
        children: int = 0,
        created_by: CreatorType = CreatorType.CUSTOMER,
        status: ReservationStatus = ReservationStatus.CONFIRMED,
        total: Decimal = Decimal("10000.00"),
        request_id: Optional[int] = None,
    ) -> Reservation:
        reservation = Reservation(
            id=self.store.next_id(),
            reservation_number=f"L{day.month:02d}{day.day:02d}-{self.store._next_id:04d}",
            restaurant_id=restaurant.id,
            customer_id=customer.id,
            request_id=request_id,
            reservation_name="Guest",
            contact_phone=customer.phone,
            reservation_date=day,
            reservation_time=time(12, 0),
            adult_count=adults,
            child_count=children,
            meal_type=meal_type,
            total_amount=total,
            service_charge=Decimal("0"),
            tax_amount=Decimal("0"),
            advance_payment_amount=Decimal("0"),
            remaining_payment_amount=total,
            status=status,
            created_by=created_by,
        )
        self.store.reservations.append(reservation)
        return reservation

    def promo_code(
        self,
        *,
        code: str = "SAVE20",
        valid_from: datetime = datetime(2025, 1, 1),
        valid_until: datetime = datetime(2025, 12, 31, 23, 59, 59),
        campaign_type: CampaignType = CampaignType.PLATFORM,
        is_active: bool = True,
        is_deleted: bool = False,
    ) -> PromoCode:
        promo = PromoCode(
            id=self.store.next_id(),
            code=code,
            description="20% off buffet",
            discount_type=DiscountType.PERCENTAGE_OFF,
            discount_value=Decimal("20"),
            minimum_order_value=Decimal("0"),
            maximum_discount_amount=Decimal("5000"),
            usage_limit_per_user=2,
            usage_limit_total=100,
            times_used=0,
            party_size_limit=200,
            party_size_limit_per_user=10,
            party_size_used=0,
            buffet_types=["LUNCH", "DINNER"],
            first_order_only=False,
            campaign_type=campaign_type,
            is_active=is_active,
            is_deleted=is_deleted,
            valid_from=valid_from,
            valid_until=valid_until,
        )
        self.store.promo_codes.append(promo)
        return promo

    def restaurant_mapping(self, promo: PromoCode, restaurant: Restaurant, *, is_active: bool = True) -> None:
        self.store.restaurant_mappings.append(
            PromoCodeRestaurantMapping(
                id=self.store.next_id(), promo_code_id=promo.id, restaurant_id=restaurant.id, is_active=is_active
            )
        )

    def customer_mapping(self, promo: PromoCode, customer: Customer, *, is_active: bool = True) -> None:
        self.store.customer_mappings.append(
            PromoCodeCustomerMapping(
                id=self.store.next_id(), promo_code_id=promo.id, customer_id=customer.id, is_active=is_active
            )
        )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def uow(store: FakeStore) -> FakeUnitOfWork:
    return FakeUnitOfWork(store)


@pytest.fixture
def seed(store: FakeStore) -> Seeder:
    return Seeder(store)
