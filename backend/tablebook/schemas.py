from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .domain.errors import ErrorCode
from .models import (
    CampaignType,
    CreatorType,
    Customer,
    DiscountType,
    MealType,
    PromoCode,
    PromoCodeCustomerMapping,
    PromoCodeRestaurantMapping,
    PromoCodeUsage,
    ReservationRequest,
    ReservationRequestStatus,
)

T = TypeVar("T")


class QueryError(BaseModel):
    code: ErrorCode
    message: str
    # Original cause, kept for diagnostics; never serialized.
    details: Any = Field(default=None, exclude=True)


class QueryResult(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[QueryError] = None

    @classmethod
    def ok(cls, data: T) -> "QueryResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: ErrorCode, message: str, details: Any = None) -> "QueryResult[T]":
        return cls(success=False, error=QueryError(code=code, message=message, details=details))


# Calendar and slots


class CalendarDecision(BaseModel):
    open: bool
    reason: Optional[str] = None


class TimeSlot(BaseModel):
    time: str
    available: bool
    available_seats: int
    reason: Optional[str] = None


class SlotsResponse(BaseModel):
    restaurant_id: int
    service_date: date
    meal_type: MealType
    slots: list[TimeSlot]


class MealTypeAvailability(BaseModel):
    meal_type: MealType
    total_seats: int
    booked_seats: int
    available_seats: int
    is_available: bool
    service_start_time: time
    service_end_time: time
    meal_service_id: int


class RestaurantAvailability(BaseModel):
    restaurant_id: int
    service_date: date
    meal_types: list[MealTypeAvailability]


class LastCapacityDate(BaseModel):
    last_date: Optional[date]


# Quota


class RestaurantQuotaInfo(BaseModel):
    restaurant_id: int
    total_capacity: int
    online_quota: int
    manual_quota: int


class QuotaCount(BaseModel):
    online_bookings: int
    manual_bookings: int
    total_bookings: int


class CapacityRecordView(BaseModel):
    id: int
    total_seats: int
    booked_seats: int
    service_id: int


class QuotaAvailability(BaseModel):
    total_available: int
    online_available: int
    manual_available: int
    current_bookings: QuotaCount
    quota_info: RestaurantQuotaInfo


class CapacityCheck(BaseModel):
    has_capacity: bool
    available_seats: int
    total_seats: int
    booked_seats: int
    meal_service_id: int


class CapacityPopulation(BaseModel):
    restaurant_id: int
    records_added: int


class SeatReservation(BaseModel):
    capacity_id: int
    total_seats: int
    booked_seats: int
    available_seats: int


class BookedSeatsUpdate(BaseModel):
    # Absolute value; deliberately unbounded.
    booked_seats: int


# Promotions


class PromoCodeUsageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    promo_code_id: int
    customer_id: int
    reservation_id: int
    original_request_id: int
    original_amount: Decimal
    discount_amount: Decimal
    party_size: int
    applied_by: str
    applied_at: datetime

    @classmethod
    def from_db(cls, *, usage: PromoCodeUsage) -> "PromoCodeUsageRecord":
        return cls.model_validate(usage)


class PromoCodeRestaurantMappingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    promo_code_id: int
    restaurant_id: int
    is_active: bool

    @classmethod
    def from_db(cls, *, mapping: PromoCodeRestaurantMapping) -> "PromoCodeRestaurantMappingRecord":
        return cls.model_validate(mapping)


class PromoCodeCustomerMappingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    promo_code_id: int
    customer_id: int
    is_active: bool

    @classmethod
    def from_db(cls, *, mapping: PromoCodeCustomerMapping) -> "PromoCodeCustomerMappingRecord":
        return cls.model_validate(mapping)


class PromoCodeValidationData(BaseModel):
    id: int
    code: str
    description: str
    discount_type: DiscountType
    discount_value: Decimal
    minimum_order_value: Decimal
    maximum_discount_amount: Decimal
    usage_limit_per_user: int
    usage_limit_total: int
    times_used: int
    party_size_limit: int
    party_size_limit_per_user: int
    party_size_used: int
    buffet_types: list[str]
    first_order_only: bool
    campaign_type: CampaignType
    is_active: bool
    is_deleted: bool
    valid_from: datetime
    valid_until: datetime
    customer_reservation_count: int
    is_restaurant_eligible: bool
    is_customer_eligible: bool
    usage_records: list[PromoCodeUsageRecord]
    restaurant_mappings: list[PromoCodeRestaurantMappingRecord]
    customer_mappings: list[PromoCodeCustomerMappingRecord]

    @classmethod
    def from_db(
        cls,
        *,
        promo: PromoCode,
        customer_reservation_count: int,
        is_restaurant_eligible: bool,
        is_customer_eligible: bool,
        usage_records: list[PromoCodeUsage],
        restaurant_mappings: list[PromoCodeRestaurantMapping],
        customer_mappings: list[PromoCodeCustomerMapping],
    ) -> "PromoCodeValidationData":
        return cls(
            id=promo.id,
            code=promo.code,
            description=promo.description,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            minimum_order_value=promo.minimum_order_value,
            maximum_discount_amount=promo.maximum_discount_amount,
            usage_limit_per_user=promo.usage_limit_per_user,
            usage_limit_total=promo.usage_limit_total,
            times_used=promo.times_used,
            party_size_limit=promo.party_size_limit,
            party_size_limit_per_user=promo.party_size_limit_per_user,
            party_size_used=promo.party_size_used,
            buffet_types=list(promo.buffet_types or []),
            first_order_only=promo.first_order_only,
            campaign_type=promo.campaign_type,
            is_active=promo.is_active,
            is_deleted=promo.is_deleted,
            valid_from=promo.valid_from,
            valid_until=promo.valid_until,
            customer_reservation_count=customer_reservation_count,
            is_restaurant_eligible=is_restaurant_eligible,
            is_customer_eligible=is_customer_eligible,
            usage_records=[PromoCodeUsageRecord.from_db(usage=u) for u in usage_records],
            restaurant_mappings=[PromoCodeRestaurantMappingRecord.from_db(mapping=m) for m in restaurant_mappings],
            customer_mappings=[PromoCodeCustomerMappingRecord.from_db(mapping=m) for m in customer_mappings],
        )


class PromoCodeUsageCreate(BaseModel):
    promo_code_id: int
    customer_id: int
    reservation_id: int
    request_id: int
    original_amount: Decimal = Field(ge=0)
    discount_amount: Decimal = Field(ge=0)
    party_size: int = Field(ge=1)
    applied_by: str


# Requests and confirmation


class CustomerUpsert(BaseModel):
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    phone: str
    email: Optional[str]

    @classmethod
    def from_db(cls, *, customer: Customer) -> "CustomerRead":
        return cls.model_validate(customer)


class ReservationRequestCreate(BaseModel):
    restaurant_id: int
    customer_id: int
    request_name: str
    contact_phone: str
    requested_date: date
    requested_time: time
    adult_count: int = Field(ge=0)
    child_count: int = Field(default=0, ge=0)
    meal_type: MealType
    estimated_total_amount: Decimal = Field(ge=0)
    estimated_service_charge: Decimal = Field(ge=0)
    estimated_tax_amount: Decimal = Field(ge=0)
    created_by: CreatorType
    special_requests: Optional[str] = None
    dietary_requirements: Optional[str] = None
    occasion: Optional[str] = None
    requires_advance_payment: bool = False
    promo_code_id: Optional[int] = None
    estimated_discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    eligible_promo_party_size: Optional[int] = Field(default=None, ge=1)


class ReservationRequestRead(BaseModel):
    id: int
    restaurant_id: int
    customer_id: int
    requested_date: date
    requested_time: time
    adult_count: int
    child_count: int
    meal_type: MealType
    status: ReservationRequestStatus
    estimated_total_amount: Decimal
    created_by: CreatorType

    @field_serializer("requested_time")
    def _ser_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @classmethod
    def from_db(cls, *, request: ReservationRequest) -> "ReservationRequestRead":
        return cls(
            id=request.id,
            restaurant_id=request.restaurant_id,
            customer_id=request.customer_id,
            requested_date=request.requested_date,
            requested_time=request.requested_time,
            adult_count=request.adult_count,
            child_count=request.child_count,
            meal_type=request.meal_type,
            status=request.status,
            estimated_total_amount=request.estimated_total_amount,
            created_by=request.created_by,
        )


class ReservationConfirmation(BaseModel):
    id: int
    reservation_number: str
    status: str
