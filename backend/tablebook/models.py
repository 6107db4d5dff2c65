from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, Numeric, String, Text, Time

from .utils.time import utc_now_naive

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
ID = BigInteger().with_variant(Integer, "sqlite")
Money = Numeric(10, 2)
Percentage = Numeric(5, 2)


class Base(DeclarativeBase):
    pass


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
        length=32,
    )


class MealType(StrEnum):
    BREAKFAST = "BREAKFAST"
    BRUNCH = "BRUNCH"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    SPECIAL = "SPECIAL"


class DayOfWeek(StrEnum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class ReservationRequestStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    SLOTS_NOT_AVAILABLE = "SLOTS_NOT_AVAILABLE"
    TIMEOUT = "TIMEOUT"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    MEAL_SERVICE_NOT_AVAILABLE = "MEAL_SERVICE_NOT_AVAILABLE"
    ERROR = "ERROR"


class ReservationStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    NO_SHOW = "NO_SHOW"


# Reservations in these states no longer hold seats or count as orders.
INACTIVE_RESERVATION_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.REJECTED)


class CreatorType(StrEnum):
    CUSTOMER = "CUSTOMER"
    MERCHANT = "MERCHANT"
    SYSTEM = "SYSTEM"
    OTHER = "OTHER"


class DiscountType(StrEnum):
    PERCENTAGE_OFF = "PERCENTAGE_OFF"
    FIXED_AMOUNT_OFF = "FIXED_AMOUNT_OFF"


class CampaignType(StrEnum):
    PLATFORM = "PLATFORM"
    MERCHANT = "MERCHANT"


class Restaurant(Base):
    __tablename__ = "restaurants"
    __table_args__ = (CheckConstraint("online_quota <= capacity", name="chk_restaurants_quota"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    online_quota: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    advance_payment_percentage: Mapped[Decimal] = mapped_column(Percentage, nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)

    operating_hours: Mapped[list["RestaurantOperatingHours"]] = relationship(back_populates="restaurant")
    special_closures: Mapped[list["RestaurantSpecialClosure"]] = relationship(back_populates="restaurant")
    meal_services: Mapped[list["RestaurantMealService"]] = relationship(back_populates="restaurant")


class RestaurantOperatingHours(Base):
    __tablename__ = "restaurant_operating_hours"

    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), primary_key=True)
    day_of_week: Mapped[DayOfWeek] = mapped_column(_str_enum(DayOfWeek), primary_key=True)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    online_quota: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    opening_time: Mapped[time] = mapped_column(Time, nullable=False)
    closing_time: Mapped[time] = mapped_column(Time, nullable=False)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="operating_hours")


class RestaurantSpecialClosure(Base):
    __tablename__ = "restaurant_special_closures"
    __table_args__ = (
        CheckConstraint("closure_start <= closure_end", name="chk_closures_range"),
        Index("idx_closures_restaurant", "restaurant_id"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    closure_start: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    closure_end: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    closure_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="special_closures")


class RestaurantMealService(Base):
    __tablename__ = "restaurant_meal_services"
    __table_args__ = (Index("idx_meal_services_restaurant", "restaurant_id", "meal_type"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    meal_type: Mapped[MealType] = mapped_column(_str_enum(MealType), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    adult_gross_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    child_gross_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    adult_net_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    child_net_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    is_child_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    service_charge_percentage: Mapped[Decimal] = mapped_column(Percentage, nullable=False, default=Decimal("0"))
    tax_percentage: Mapped[Decimal] = mapped_column(Percentage, nullable=False, default=Decimal("0"))
    service_start_time: Mapped[time] = mapped_column(Time, nullable=False)
    service_end_time: Mapped[time] = mapped_column(Time, nullable=False)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="meal_services")
    schedule: Mapped[Optional["MealServiceSchedule"]] = relationship(back_populates="meal_service", uselist=False)


class MealServiceSchedule(Base):
    __tablename__ = "meal_service_schedules"

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("restaurant_meal_services.id"), nullable=False, unique=True)
    available_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    meal_service: Mapped["RestaurantMealService"] = relationship(back_populates="schedule")


class RestaurantCapacity(Base):
    __tablename__ = "restaurant_capacity"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "service_id", "date", name="uq_capacity_service_date"),
        Index("idx_capacity_restaurant_date", "restaurant_id", "date"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    service_id: Mapped[int] = mapped_column(ForeignKey("restaurant_meal_services.id"), nullable=False)
    service_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # No range constraint: booked_seats may legally go negative or past total_seats.
    booked_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("phone", name="uq_customers_phone"),
        UniqueConstraint("email", name="uq_customers_email"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)


class StaffUser(Base):
    __tablename__ = "staff_users"
    __table_args__ = (UniqueConstraint("email", name="uq_staff_users_email"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    restaurant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("restaurants.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)


class ReservationRequest(Base):
    __tablename__ = "reservation_requests"
    __table_args__ = (
        CheckConstraint("adult_count >= 0 AND child_count >= 0", name="chk_requests_party"),
        Index("idx_requests_restaurant_date", "restaurant_id", "requested_date"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    request_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    requested_date: Mapped[date] = mapped_column(Date, nullable=False)
    requested_time: Mapped[time] = mapped_column(Time, nullable=False)
    adult_count: Mapped[int] = mapped_column(Integer, nullable=False)
    child_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meal_type: Mapped[MealType] = mapped_column(_str_enum(MealType), nullable=False)
    status: Mapped[ReservationRequestStatus] = mapped_column(
        _str_enum(ReservationRequestStatus),
        nullable=False,
        default=ReservationRequestStatus.PENDING,
    )
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dietary_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    occasion: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    estimated_total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    estimated_service_charge: Mapped[Decimal] = mapped_column(Money, nullable=False)
    estimated_tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    estimated_discount_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    promo_code_id: Mapped[Optional[int]] = mapped_column(ForeignKey("promo_codes.id"), nullable=True)
    eligible_promo_party_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_by: Mapped[CreatorType] = mapped_column(_str_enum(CreatorType), nullable=False)
    requires_advance_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processing_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)

    customer: Mapped["Customer"] = relationship()


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("request_id", name="uq_reservations_request"),
        UniqueConstraint("reservation_number", name="uq_reservations_number"),
        Index("idx_reservations_restaurant_date", "restaurant_id", "reservation_date", "meal_type"),
        Index("idx_reservations_customer", "customer_id"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    reservation_number: Mapped[str] = mapped_column(String(20), nullable=False)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    request_id: Mapped[Optional[int]] = mapped_column(ForeignKey("reservation_requests.id"), nullable=True)
    reservation_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reservation_time: Mapped[time] = mapped_column(Time, nullable=False)
    adult_count: Mapped[int] = mapped_column(Integer, nullable=False)
    child_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meal_type: Mapped[MealType] = mapped_column(_str_enum(MealType), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    service_charge: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    advance_payment_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    remaining_payment_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        _str_enum(ReservationStatus),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    created_by: Mapped[CreatorType] = mapped_column(_str_enum(CreatorType), nullable=False)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dietary_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    occasion: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    promo_code_id: Mapped[Optional[int]] = mapped_column(ForeignKey("promo_codes.id"), nullable=True)
    discount_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)

    financial_data: Mapped[Optional["ReservationFinancialData"]] = relationship(
        back_populates="reservation", uselist=False
    )


class ReservationFinancialData(Base):
    __tablename__ = "reservation_financial_data"
    __table_args__ = (UniqueConstraint("reservation_id", name="uq_financial_reservation"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id"), nullable=False)
    net_buffet_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    service_charge: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_before_discount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_after_discount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    advance_payment: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)

    reservation: Mapped["Reservation"] = relationship(back_populates="financial_data")


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        UniqueConstraint("code", name="uq_promo_codes_code"),
        CheckConstraint("valid_from <= valid_until", name="chk_promo_codes_window"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    # Stored upper-cased; lookups normalize before comparing.
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    discount_type: Mapped[DiscountType] = mapped_column(_str_enum(DiscountType), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    minimum_order_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    maximum_discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    usage_limit_per_user: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    usage_limit_total: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    party_size_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    party_size_limit_per_user: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    party_size_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    buffet_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    first_order_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    campaign_type: Mapped[CampaignType] = mapped_column(
        _str_enum(CampaignType), nullable=False, default=CampaignType.PLATFORM
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)


class PromoCodeRestaurantMapping(Base):
    __tablename__ = "promo_code_restaurant_mappings"
    __table_args__ = (UniqueConstraint("promo_code_id", "restaurant_id", name="uq_promo_restaurant"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    promo_code_id: Mapped[int] = mapped_column(ForeignKey("promo_codes.id"), nullable=False)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PromoCodeCustomerMapping(Base):
    __tablename__ = "promo_code_customer_mappings"
    __table_args__ = (UniqueConstraint("promo_code_id", "customer_id", name="uq_promo_customer"),)

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    promo_code_id: Mapped[int] = mapped_column(ForeignKey("promo_codes.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PromoCodeUsage(Base):
    """Append-only ledger: one row per promo code applied to a reservation."""

    __tablename__ = "promo_code_usages"
    __table_args__ = (
        UniqueConstraint("promo_code_id", "reservation_id", name="uq_promo_usage_reservation"),
        Index("idx_promo_usage_customer", "promo_code_id", "customer_id"),
    )

    id: Mapped[int] = mapped_column(ID, primary_key=True, autoincrement=True)
    promo_code_id: Mapped[int] = mapped_column(ForeignKey("promo_codes.id"), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id"), nullable=False)
    original_request_id: Mapped[int] = mapped_column(ForeignKey("reservation_requests.id"), nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    applied_by: Mapped[str] = mapped_column(String(255), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now_naive)
