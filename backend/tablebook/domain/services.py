from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterator, Optional, Sequence

from ..models import (
    CampaignType,
    MealType,
    PromoCode,
    PromoCodeRestaurantMapping,
    RestaurantCapacity,
    RestaurantOperatingHours,
    RestaurantSpecialClosure,
)
from ..utils.time import anchor, weekday_name
from .errors import CapacityError

INSUFFICIENT_CAPACITY_REASON = "Insufficient capacity for the requested party size"


# Calendar


def closure_covers(closure: RestaurantSpecialClosure, day: date) -> bool:
    """Closures are compared by calendar date, both ends inclusive."""
    return closure.closure_start.date() <= day <= closure.closure_end.date()


def closed_reason(
    hours: Optional[RestaurantOperatingHours],
    closures: Sequence[RestaurantSpecialClosure],
    day: date,
) -> Optional[str]:
    """
    Pure calendar decision: None when the day is bookable, otherwise a reason.
    A covering special closure wins over an open weekly schedule.
    """
    if hours is None or not hours.is_open:
        return f"closed on {weekday_name(day).lower()}s"
    for closure in closures:
        if closure_covers(closure, day):
            return closure.description or f"special closure ({closure.closure_type})"
    return None


# Slots


def time_points(day: date, opens: time, closes: time, step: timedelta) -> Iterator[datetime]:
    """Yield slot start times from ``opens`` while strictly before ``closes``."""
    if step <= timedelta(0):
        raise ValueError("step must be positive")
    current = anchor(day, opens)
    end = anchor(day, closes)
    while current < end:
        yield current
        current += step


def slot_seats(capacity: Optional[RestaurantCapacity], fallback_online_quota: Optional[int]) -> Optional[int]:
    if capacity is not None:
        return capacity.total_seats - capacity.booked_seats
    return fallback_online_quota


# Quota


def manual_quota(total_capacity: int, online_quota: int) -> int:
    return total_capacity - online_quota


def channel_remaining(quota: int, booked: int) -> int:
    return max(0, quota - booked)


def seats_left(capacity: RestaurantCapacity) -> int:
    # Raw subtraction: may be negative when booked_seats overshoots.
    return capacity.total_seats - capacity.booked_seats


@dataclass(frozen=True)
class CapacitySnapshot:
    total_seats: int
    booked_seats: int


def check_capacity(snapshot: CapacitySnapshot, *, party_size: int) -> int:
    """
    Pure admission check for a party against a capacity record.
    Returns seats left after seating the party. Raises CapacityError otherwise.
    """
    if party_size <= 0:
        raise CapacityError("party_size must be positive")
    remaining = snapshot.total_seats - snapshot.booked_seats
    if party_size > remaining:
        raise CapacityError(
            "capacity exceeded",
            details={"available_seats": remaining, "party_size": party_size},
        )
    return remaining - party_size


# Promotions


def normalize_code(code: str) -> str:
    return code.upper()


def is_promo_live(promo: PromoCode, now: datetime) -> bool:
    """Active, not deleted, and ``valid_from <= now <= valid_until``."""
    if not promo.is_active or promo.is_deleted:
        return False
    return promo.valid_from <= now <= promo.valid_until


def is_restaurant_eligible(
    campaign_type: CampaignType,
    restaurant_mappings: Sequence[PromoCodeRestaurantMapping],
) -> bool:
    if campaign_type == CampaignType.PLATFORM:
        return True
    return any(m.is_active for m in restaurant_mappings)


def is_customer_eligible(customer_id: Optional[int]) -> bool:
    # Anonymous lookups pass. Customer mappings are loaded for callers but do
    # not restrict an identified customer yet either.
    return True


# Confirmation


def reservation_number(meal_type: MealType, day: date, request_id: int) -> str:
    """e.g. LUNCH on 14 July for request 37 -> ``L0714-0037``."""
    suffix = str(request_id).zfill(4)[-4:]
    return f"{meal_type.value[0].upper()}{day.month:02d}{day.day:02d}-{suffix}"


@dataclass(frozen=True)
class FinancialBreakdown:
    net_buffet_price: Decimal
    tax_amount: Decimal
    service_charge: Decimal
    total_before_discount: Decimal
    discount: Decimal
    total_after_discount: Decimal
    advance_payment: Decimal
    balance_due: Decimal


def financial_breakdown(
    *,
    total: Decimal,
    service_charge: Decimal,
    tax: Decimal,
    discount: Optional[Decimal],
) -> FinancialBreakdown:
    """Breakdown for a confirmation taken without advance payment: the full total stays due."""
    discount = discount or Decimal("0")
    return FinancialBreakdown(
        net_buffet_price=total - service_charge - tax,
        tax_amount=tax,
        service_charge=service_charge,
        total_before_discount=total + discount,
        discount=discount,
        total_after_discount=total,
        advance_payment=Decimal("0"),
        balance_due=total,
    )
