from datetime import date

from fastapi import APIRouter, Depends, Query

from ..config import get_settings
from ..deps import get_current_staff_id, get_uow
from ..domain.repositories import UnitOfWork
from ..models import MealType
from ..schemas import (
    CalendarDecision,
    CapacityCheck,
    LastCapacityDate,
    QuotaAvailability,
    RestaurantAvailability,
    SlotsResponse,
)
from ..usecases.calendar import CalendarGate
from ..usecases.capacity import CapacityAdmission
from ..usecases.quota import QuotaAllocator
from ..usecases.slots import SlotGenerator
from .errors import unwrap

router = APIRouter(prefix="/restaurants", tags=["availability"])


def _slot_generator(uow: UnitOfWork) -> SlotGenerator:
    return SlotGenerator(uow, interval_minutes=get_settings().slot_interval_minutes)


@router.get("/{restaurant_id}/calendar", response_model=CalendarDecision)
async def is_bookable(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    uow: UnitOfWork = Depends(get_uow),
) -> CalendarDecision:
    return unwrap(await CalendarGate(uow).is_bookable(restaurant_id, day))


@router.get("/{restaurant_id}/slots", response_model=SlotsResponse)
async def list_slots(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    meal_type: MealType = Query(...),
    party_size: int = Query(..., ge=1),
    uow: UnitOfWork = Depends(get_uow),
) -> SlotsResponse:
    return unwrap(await _slot_generator(uow).generate_slots(restaurant_id, day, meal_type, party_size))


@router.get("/{restaurant_id}/slots/check")
async def check_slot(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    slot_time: str = Query(..., alias="time", pattern=r"^\d{2}:\d{2}$"),
    meal_type: MealType = Query(...),
    party_size: int = Query(..., ge=1),
    uow: UnitOfWork = Depends(get_uow),
) -> dict[str, bool]:
    result = await _slot_generator(uow).check_slot_availability(restaurant_id, day, slot_time, meal_type, party_size)
    return {"available": unwrap(result)}


@router.get("/{restaurant_id}/availability", response_model=RestaurantAvailability)
async def meal_availability(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    uow: UnitOfWork = Depends(get_uow),
) -> RestaurantAvailability:
    return unwrap(await _slot_generator(uow).meal_availability(restaurant_id, day))


@router.get("/{restaurant_id}/capacity/last-date", response_model=LastCapacityDate)
async def last_capacity_date(
    restaurant_id: int,
    meal_type: MealType = Query(...),
    uow: UnitOfWork = Depends(get_uow),
) -> LastCapacityDate:
    return unwrap(await _slot_generator(uow).last_capacity_date(restaurant_id, meal_type))


@router.get("/{restaurant_id}/capacity/check", response_model=CapacityCheck)
async def check_capacity(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    meal_type: MealType = Query(...),
    party_size: int = Query(..., ge=1),
    uow: UnitOfWork = Depends(get_uow),
) -> CapacityCheck:
    return unwrap(await CapacityAdmission(uow).check_capacity(restaurant_id, day, meal_type, party_size))


@router.get("/{restaurant_id}/quota", response_model=QuotaAvailability)
async def quota_availability(
    restaurant_id: int,
    day: date = Query(..., alias="date"),
    meal_type: MealType = Query(...),
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> QuotaAvailability:
    return unwrap(await QuotaAllocator(uow).quota_availability(restaurant_id, day, meal_type))
