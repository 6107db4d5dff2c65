from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..domain.repositories import (
    CapacityRepository,
    CustomerRepository,
    PromoCodeRepository,
    ReservationRepository,
    ReservationRequestRepository,
    RestaurantRepository,
)
from ..models import (
    INACTIVE_RESERVATION_STATUSES,
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
    ReservationRequestStatus,
    Restaurant,
    RestaurantCapacity,
    RestaurantMealService,
    RestaurantOperatingHours,
    RestaurantSpecialClosure,
)
from ..utils.time import utc_now_naive
from .errors import translate_errors


class SqlAlchemyRestaurantRepository(RestaurantRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def get(self, restaurant_id: int) -> Restaurant | None:
        return await self.session.get(Restaurant, restaurant_id)

    @translate_errors
    async def list_ids(self) -> list[int]:
        rows = await self.session.scalars(select(Restaurant.id).order_by(Restaurant.id))
        return list(rows)

    @translate_errors
    async def operating_hours(self, restaurant_id: int, day: DayOfWeek) -> RestaurantOperatingHours | None:
        stmt = select(RestaurantOperatingHours).where(
            RestaurantOperatingHours.restaurant_id == restaurant_id,
            RestaurantOperatingHours.day_of_week == day,
        )
        return await self.session.scalar(stmt)

    @translate_errors
    async def list_operating_hours(self, restaurant_id: int) -> list[RestaurantOperatingHours]:
        stmt = select(RestaurantOperatingHours).where(RestaurantOperatingHours.restaurant_id == restaurant_id)
        return list(await self.session.scalars(stmt))

    @translate_errors
    async def closures_covering(self, restaurant_id: int, day: date) -> list[RestaurantSpecialClosure]:
        # Same inclusive calendar-date test as domain.services.closure_covers.
        day_start = datetime.combine(day, time.min)
        next_day_start = day_start + timedelta(days=1)
        stmt = (
            select(RestaurantSpecialClosure)
            .where(
                RestaurantSpecialClosure.restaurant_id == restaurant_id,
                RestaurantSpecialClosure.closure_start < next_day_start,
                RestaurantSpecialClosure.closure_end >= day_start,
            )
            .order_by(RestaurantSpecialClosure.closure_start)
        )
        return list(await self.session.scalars(stmt))

    @translate_errors
    async def active_meal_service(self, restaurant_id: int, meal_type: MealType) -> RestaurantMealService | None:
        stmt = (
            select(RestaurantMealService)
            .where(
                RestaurantMealService.restaurant_id == restaurant_id,
                RestaurantMealService.meal_type == meal_type,
                RestaurantMealService.is_available.is_(True),
            )
            .order_by(RestaurantMealService.id)
            .limit(1)
        )
        return await self.session.scalar(stmt)

    @translate_errors
    async def active_meal_services(self, restaurant_id: int) -> list[RestaurantMealService]:
        stmt = (
            select(RestaurantMealService)
            .options(selectinload(RestaurantMealService.schedule))
            .where(
                RestaurantMealService.restaurant_id == restaurant_id,
                RestaurantMealService.is_available.is_(True),
            )
            .order_by(RestaurantMealService.id)
        )
        return list(await self.session.scalars(stmt))


class SqlAlchemyCapacityRepository(CapacityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def find(
        self,
        restaurant_id: int,
        service_id: int,
        day: date,
        *,
        enabled_only: bool = True,
    ) -> RestaurantCapacity | None:
        stmt = select(RestaurantCapacity).where(
            RestaurantCapacity.restaurant_id == restaurant_id,
            RestaurantCapacity.service_id == service_id,
            RestaurantCapacity.service_date == day,
        )
        if enabled_only:
            stmt = stmt.where(RestaurantCapacity.is_enabled.is_(True))
        # Seat counts move through bulk UPDATEs; always reload the row.
        return await self.session.scalar(stmt.limit(1).execution_options(populate_existing=True))

    @translate_errors
    async def latest_enabled_date(self, restaurant_id: int, service_id: int) -> date | None:
        stmt = select(func.max(RestaurantCapacity.service_date)).where(
            RestaurantCapacity.restaurant_id == restaurant_id,
            RestaurantCapacity.service_id == service_id,
            RestaurantCapacity.is_enabled.is_(True),
        )
        return await self.session.scalar(stmt)

    @translate_errors
    async def create(self, *, restaurant_id: int, service_id: int, day: date, total_seats: int) -> RestaurantCapacity:
        capacity = RestaurantCapacity(
            restaurant_id=restaurant_id,
            service_id=service_id,
            service_date=day,
            total_seats=total_seats,
            booked_seats=0,
            is_enabled=True,
        )
        self.session.add(capacity)
        await self.session.flush()
        return capacity

    @translate_errors
    async def set_enabled(self, capacity_id: int, enabled: bool) -> None:
        await self.session.execute(
            update(RestaurantCapacity)
            .where(RestaurantCapacity.id == capacity_id)
            .values(is_enabled=enabled)
            .execution_options(synchronize_session="evaluate")
        )

    @translate_errors
    async def set_booked_seats(self, capacity_id: int, booked_seats: int) -> bool:
        result = await self.session.execute(
            update(RestaurantCapacity)
            .where(RestaurantCapacity.id == capacity_id)
            .values(booked_seats=booked_seats)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount > 0

    @translate_errors
    async def add_booked_seats_within_total(self, capacity_id: int, seats: int) -> bool:
        # Single guarded statement: concurrent callers cannot both pass the check.
        stmt = (
            update(RestaurantCapacity)
            .where(
                RestaurantCapacity.id == capacity_id,
                RestaurantCapacity.booked_seats + seats <= RestaurantCapacity.total_seats,
            )
            .values(booked_seats=RestaurantCapacity.booked_seats + seats)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def sum_party_size(
        self,
        restaurant_id: int,
        day: date,
        meal_type: MealType,
        created_by: CreatorType,
    ) -> int:
        stmt = select(func.coalesce(func.sum(Reservation.adult_count + Reservation.child_count), 0)).where(
            Reservation.restaurant_id == restaurant_id,
            Reservation.reservation_date == day,
            Reservation.meal_type == meal_type,
            Reservation.created_by == created_by,
            Reservation.status.not_in(INACTIVE_RESERVATION_STATUSES),
        )
        return int(await self.session.scalar(stmt) or 0)

    @translate_errors
    async def count_active_for_customer(self, customer_id: int) -> int:
        stmt = select(func.count(Reservation.id)).where(
            Reservation.customer_id == customer_id,
            Reservation.status.not_in(INACTIVE_RESERVATION_STATUSES),
        )
        return int(await self.session.scalar(stmt) or 0)

    @translate_errors
    async def get_by_request(self, request_id: int) -> Reservation | None:
        # Locking read: sees rows committed after this transaction's snapshot.
        stmt = select(Reservation).where(Reservation.request_id == request_id).with_for_update()
        return await self.session.scalar(stmt)

    @translate_errors
    async def create(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    @translate_errors
    async def create_financial_data(self, financial: ReservationFinancialData) -> ReservationFinancialData:
        self.session.add(financial)
        await self.session.flush()
        return financial

    @translate_errors
    async def apply_discount(self, reservation_id: int, promo_code_id: int, discount_amount: Decimal) -> bool:
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id)
            .values(
                promo_code_id=promo_code_id,
                discount_amount=discount_amount,
                remaining_payment_amount=Reservation.remaining_payment_amount - discount_amount,
                updated_at=utc_now_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0


class SqlAlchemyReservationRequestRepository(ReservationRequestRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def get_with_customer_for_update(self, request_id: int) -> ReservationRequest | None:
        stmt = (
            select(ReservationRequest)
            .options(selectinload(ReservationRequest.customer))
            .where(ReservationRequest.id == request_id)
            .with_for_update()
        )
        return await self.session.scalar(stmt)

    @translate_errors
    async def create(self, request: ReservationRequest) -> ReservationRequest:
        self.session.add(request)
        await self.session.flush()
        return request

    @translate_errors
    async def mark_completed(self, request: ReservationRequest, completed_at: datetime) -> ReservationRequest:
        request.status = ReservationRequestStatus.COMPLETED
        request.processing_completed_at = completed_at
        request.updated_at = completed_at
        self.session.add(request)
        await self.session.flush()
        return request


class SqlAlchemyCustomerRepository(CustomerRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def upsert_by_phone(
        self,
        *,
        first_name: str,
        last_name: str,
        phone: str,
        email: str | None,
    ) -> Customer:
        now = utc_now_naive()
        values = {
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "email": email or None,
            "created_at": now,
            "updated_at": now,
        }
        changes = {"first_name": first_name, "last_name": last_name, "email": email or None, "updated_at": now}

        dialect = self.session.get_bind().dialect.name
        if dialect == "mysql":
            stmt = mysql_insert(Customer).values(**values).on_duplicate_key_update(**changes)
        elif dialect == "postgresql":
            stmt = postgresql_insert(Customer).values(**values).on_conflict_do_update(
                index_elements=[Customer.phone], set_=changes
            )
        elif dialect == "sqlite":
            stmt = sqlite_insert(Customer).values(**values).on_conflict_do_update(
                index_elements=[Customer.phone], set_=changes
            )
        else:
            raise NotImplementedError(f"customer upsert is not supported on {dialect}")
        await self.session.execute(stmt)

        customer = await self.session.scalar(
            select(Customer).where(Customer.phone == phone).execution_options(populate_existing=True)
        )
        if customer is None:
            raise RuntimeError("upserted customer not readable")
        return customer

    @translate_errors
    async def get_by_phone(self, phone: str) -> Customer | None:
        return await self.session.scalar(select(Customer).where(Customer.phone == phone))


class SqlAlchemyPromoCodeRepository(PromoCodeRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_errors
    async def get_by_code(self, code: str) -> PromoCode | None:
        return await self.session.scalar(select(PromoCode).where(PromoCode.code == code))

    @translate_errors
    async def restaurant_mappings(
        self, promo_code_id: int, restaurant_id: Optional[int] = None
    ) -> list[PromoCodeRestaurantMapping]:
        stmt = select(PromoCodeRestaurantMapping).where(
            PromoCodeRestaurantMapping.promo_code_id == promo_code_id,
            PromoCodeRestaurantMapping.is_active.is_(True),
        )
        if restaurant_id is not None:
            stmt = stmt.where(PromoCodeRestaurantMapping.restaurant_id == restaurant_id)
        return list(await self.session.scalars(stmt.order_by(PromoCodeRestaurantMapping.id)))

    @translate_errors
    async def customer_mappings(
        self, promo_code_id: int, customer_id: Optional[int] = None
    ) -> list[PromoCodeCustomerMapping]:
        stmt = select(PromoCodeCustomerMapping).where(
            PromoCodeCustomerMapping.promo_code_id == promo_code_id,
            PromoCodeCustomerMapping.is_active.is_(True),
        )
        if customer_id is not None:
            stmt = stmt.where(PromoCodeCustomerMapping.customer_id == customer_id)
        return list(await self.session.scalars(stmt.order_by(PromoCodeCustomerMapping.id)))

    @translate_errors
    async def usage_by_customer(self, promo_code_id: int, customer_id: int) -> list[PromoCodeUsage]:
        stmt = (
            select(PromoCodeUsage)
            .where(PromoCodeUsage.promo_code_id == promo_code_id, PromoCodeUsage.customer_id == customer_id)
            .order_by(PromoCodeUsage.applied_at.desc(), PromoCodeUsage.id.desc())
        )
        return list(await self.session.scalars(stmt))

    @translate_errors
    async def add_usage(self, usage: PromoCodeUsage) -> PromoCodeUsage:
        self.session.add(usage)
        await self.session.flush()
        return usage

    @translate_errors
    async def increment_counters(self, promo_code_id: int, party_size: int) -> bool:
        stmt = (
            update(PromoCode)
            .where(PromoCode.id == promo_code_id)
            .values(
                times_used=PromoCode.times_used + 1,
                party_size_used=PromoCode.party_size_used + party_size,
                updated_at=utc_now_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
