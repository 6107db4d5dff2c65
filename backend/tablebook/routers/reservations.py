from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import get_settings
from ..deps import get_current_staff_id, get_uow
from ..domain.repositories import UnitOfWork
from ..models import MealType
from ..schemas import (
    BookedSeatsUpdate,
    CapacityPopulation,
    CustomerRead,
    CustomerUpsert,
    PromoCodeUsageCreate,
    PromoCodeUsageRecord,
    ReservationConfirmation,
    ReservationRequestCreate,
    ReservationRequestRead,
    SeatReservation,
)
from ..usecases.capacity import CapacityAdmission
from ..usecases.confirmation import ConfirmationCoordinator
from ..usecases.promotions import PromotionValidator
from ..usecases.quota import QuotaAllocator
from ..usecases.requests import RequestIntake
from ..utils.audit_log import emit_audit_log
from .errors import unwrap

router = APIRouter(prefix="", tags=["reservations"])


def _audit(**kwargs: object) -> None:
    try:
        emit_audit_log(**kwargs)  # type: ignore[arg-type]
    except RuntimeError as exc:
        # The write has already committed; surface the audit gap as a server error.
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc


@router.post("/customers", response_model=CustomerRead)
async def upsert_customer(
    payload: CustomerUpsert,
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> CustomerRead:
    return unwrap(await RequestIntake(uow).upsert_customer(payload))


@router.post("/reservation-requests", response_model=ReservationRequestRead, status_code=status.HTTP_201_CREATED)
async def create_reservation_request(
    payload: ReservationRequestCreate,
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> ReservationRequestRead:
    return unwrap(await RequestIntake(uow).create_reservation_request(payload))


@router.post("/reservation-requests/{request_id}/confirm", response_model=ReservationConfirmation)
async def confirm_reservation(
    request_id: int,
    record_promo_usage: bool = Query(default=False),
    uow: UnitOfWork = Depends(get_uow),
    staff_id: int = Depends(get_current_staff_id),
) -> ReservationConfirmation:
    confirmation = unwrap(await ConfirmationCoordinator(uow).confirm(request_id, record_promo_usage=record_promo_usage))
    _audit(
        action="reservation.confirmed",
        initiator="staff",
        actor_id=staff_id,
        reservation_id=confirmation.id,
        request_id=request_id,
        status_to=confirmation.status,
        extra={"reservation_number": confirmation.reservation_number},
    )
    return confirmation


@router.put("/capacity/{capacity_id}/booked-seats", response_model=BookedSeatsUpdate)
async def set_booked_seats(
    capacity_id: int,
    payload: BookedSeatsUpdate,
    uow: UnitOfWork = Depends(get_uow),
    staff_id: int = Depends(get_current_staff_id),
) -> BookedSeatsUpdate:
    unwrap(await QuotaAllocator(uow).set_booked_seats(capacity_id, payload.booked_seats))
    _audit(
        action="capacity.booked_seats_set",
        initiator="staff",
        actor_id=staff_id,
        capacity_id=capacity_id,
        extra={"booked_seats": payload.booked_seats},
    )
    return payload


@router.post("/restaurants/{restaurant_id}/capacity/reserve", response_model=SeatReservation)
async def reserve_seats(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    meal_type: MealType = Query(...),
    party_size: int = Query(..., ge=1),
    uow: UnitOfWork = Depends(get_uow),
    staff_id: int = Depends(get_current_staff_id),
) -> SeatReservation:
    reserved = unwrap(await CapacityAdmission(uow).reserve_seats(restaurant_id, day, meal_type, party_size))
    _audit(
        action="capacity.seats_reserved",
        initiator="staff",
        actor_id=staff_id,
        restaurant_id=restaurant_id,
        capacity_id=reserved.capacity_id,
        party_size=party_size,
    )
    return reserved


@router.post("/capacity/populate", response_model=List[CapacityPopulation])
async def populate_capacity(
    days_ahead: Optional[int] = Query(default=None, ge=1),
    start: Optional[date] = Query(default=None),
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> list[CapacityPopulation]:
    settings = get_settings()
    result = await CapacityAdmission(uow).populate_capacity(
        days_ahead or settings.capacity_days_ahead,
        settings.default_total_seats,
        start,
    )
    return unwrap(result)


@router.post("/promo-code-usages", response_model=PromoCodeUsageRecord, status_code=status.HTTP_201_CREATED)
async def record_promo_code_usage(
    payload: PromoCodeUsageCreate,
    uow: UnitOfWork = Depends(get_uow),
    staff_id: int = Depends(get_current_staff_id),
) -> PromoCodeUsageRecord:
    usage = unwrap(await PromotionValidator(uow).record_usage(payload))
    _audit(
        action="promo_code.applied",
        initiator="staff",
        actor_id=staff_id,
        reservation_id=usage.reservation_id,
        request_id=usage.original_request_id,
        promo_code_id=usage.promo_code_id,
        party_size=usage.party_size,
        extra={"discount_amount": usage.discount_amount},
    )
    return usage
