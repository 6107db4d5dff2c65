from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_current_staff_id, get_uow
from ..domain.repositories import UnitOfWork
from ..schemas import (
    PromoCodeCustomerMappingRecord,
    PromoCodeRestaurantMappingRecord,
    PromoCodeUsageRecord,
    PromoCodeValidationData,
)
from ..usecases.promotions import PromotionValidator
from .errors import unwrap

router = APIRouter(prefix="/promo-codes", tags=["promotions"])


@router.get("/{code}/eligibility", response_model=PromoCodeValidationData)
async def resolve_eligibility(
    code: str,
    restaurant_id: int = Query(...),
    customer_id: Optional[int] = Query(default=None),
    uow: UnitOfWork = Depends(get_uow),
) -> PromoCodeValidationData:
    return unwrap(await PromotionValidator(uow).resolve_eligibility(code, restaurant_id, customer_id))


@router.get("/{promo_code_id}/usages", response_model=List[PromoCodeUsageRecord])
async def usage_by_customer(
    promo_code_id: int,
    customer_id: int = Query(...),
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> list[PromoCodeUsageRecord]:
    return unwrap(await PromotionValidator(uow).usage_by_customer(promo_code_id, customer_id))


@router.get("/{promo_code_id}/restaurant-mappings", response_model=List[PromoCodeRestaurantMappingRecord])
async def restaurant_mappings(
    promo_code_id: int,
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> list[PromoCodeRestaurantMappingRecord]:
    return unwrap(await PromotionValidator(uow).restaurant_mappings(promo_code_id))


@router.get("/{promo_code_id}/customer-mappings", response_model=List[PromoCodeCustomerMappingRecord])
async def customer_mappings(
    promo_code_id: int,
    uow: UnitOfWork = Depends(get_uow),
    _staff_id: int = Depends(get_current_staff_id),
) -> list[PromoCodeCustomerMappingRecord]:
    return unwrap(await PromotionValidator(uow).customer_mappings(promo_code_id))
