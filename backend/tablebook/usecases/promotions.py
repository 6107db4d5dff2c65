from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..domain.errors import ErrorCode, NotFoundError
from ..domain.repositories import UnitOfWork
from ..domain.services import is_customer_eligible, is_promo_live, is_restaurant_eligible, normalize_code
from ..models import PromoCodeCustomerMapping, PromoCodeUsage
from ..schemas import (
    PromoCodeCustomerMappingRecord,
    PromoCodeRestaurantMappingRecord,
    PromoCodeUsageCreate,
    PromoCodeUsageRecord,
    PromoCodeValidationData,
)
from ..utils.time import utc_now_naive
from .outcome import returns_result

logger = logging.getLogger(__name__)

PROMO_NOT_FOUND_MESSAGE = "Promo code not found or expired"


async def append_usage_ledger(uow: UnitOfWork, usage: PromoCodeUsageCreate) -> PromoCodeUsage:
    """Ledger row plus counter bump. Must run inside ``uow.atomic``."""
    entry = await uow.promo_codes.add_usage(
        PromoCodeUsage(
            promo_code_id=usage.promo_code_id,
            customer_id=usage.customer_id,
            reservation_id=usage.reservation_id,
            original_request_id=usage.request_id,
            original_amount=usage.original_amount,
            discount_amount=usage.discount_amount,
            party_size=usage.party_size,
            applied_by=usage.applied_by,
            applied_at=utc_now_naive(),
        )
    )
    if not await uow.promo_codes.increment_counters(usage.promo_code_id, usage.party_size):
        raise NotFoundError(f"Promo code {usage.promo_code_id} not found")
    return entry


class PromotionValidator:
    """Promo code lookup, eligibility data and usage accounting."""

    def __init__(self, uow: UnitOfWork, *, clock: Callable[[], datetime] = utc_now_naive) -> None:
        self.uow = uow
        self.clock = clock

    @returns_result("get promo code with validation data")
    async def resolve_eligibility(
        self,
        code: str,
        restaurant_id: int,
        customer_id: Optional[int] = None,
    ) -> PromoCodeValidationData:
        """
        Look the code up case-insensitively and gather what eligibility
        policies need. Unknown, inactive, deleted, not-yet-valid and expired
        codes all fail the same way with PROMO_CODE_NOT_FOUND.
        """
        promo = await self.uow.promo_codes.get_by_code(normalize_code(code))
        if promo is None or not is_promo_live(promo, self.clock()):
            raise NotFoundError(PROMO_NOT_FOUND_MESSAGE, code=ErrorCode.PROMO_CODE_NOT_FOUND)

        restaurant_mappings = await self.uow.promo_codes.restaurant_mappings(promo.id, restaurant_id)
        customer_mappings: list[PromoCodeCustomerMapping] = []
        usage_records: list[PromoCodeUsage] = []
        reservation_count = 0
        if customer_id is not None:
            customer_mappings = await self.uow.promo_codes.customer_mappings(promo.id, customer_id)
            usage_records = await self.uow.promo_codes.usage_by_customer(promo.id, customer_id)
            reservation_count = await self.uow.reservations.count_active_for_customer(customer_id)

        return PromoCodeValidationData.from_db(
            promo=promo,
            customer_reservation_count=reservation_count,
            is_restaurant_eligible=is_restaurant_eligible(promo.campaign_type, restaurant_mappings),
            is_customer_eligible=is_customer_eligible(customer_id),
            usage_records=usage_records,
            restaurant_mappings=restaurant_mappings,
            customer_mappings=customer_mappings,
        )

    @returns_result("record promo code usage")
    async def record_usage(self, usage: PromoCodeUsageCreate) -> PromoCodeUsageRecord:
        """
        Apply a discount to a reservation as one unit: reduce its outstanding
        balance, append the ledger row and bump the code's counters.
        """

        async def work(uow: UnitOfWork) -> PromoCodeUsage:
            applied = await uow.reservations.apply_discount(
                usage.reservation_id, usage.promo_code_id, usage.discount_amount
            )
            if not applied:
                raise NotFoundError(f"Reservation {usage.reservation_id} not found")
            return await append_usage_ledger(uow, usage)

        entry = await self.uow.atomic(work)
        logger.info("promo code %s applied to reservation %s", usage.promo_code_id, usage.reservation_id)
        return PromoCodeUsageRecord.from_db(usage=entry)

    @returns_result("get promo code usage by customer")
    async def usage_by_customer(self, promo_code_id: int, customer_id: int) -> list[PromoCodeUsageRecord]:
        records = await self.uow.promo_codes.usage_by_customer(promo_code_id, customer_id)
        return [PromoCodeUsageRecord.from_db(usage=r) for r in records]

    @returns_result("get promo code restaurant mappings")
    async def restaurant_mappings(self, promo_code_id: int) -> list[PromoCodeRestaurantMappingRecord]:
        mappings = await self.uow.promo_codes.restaurant_mappings(promo_code_id)
        return [PromoCodeRestaurantMappingRecord.from_db(mapping=m) for m in mappings]

    @returns_result("get promo code customer mappings")
    async def customer_mappings(self, promo_code_id: int) -> list[PromoCodeCustomerMappingRecord]:
        mappings = await self.uow.promo_codes.customer_mappings(promo_code_id)
        return [PromoCodeCustomerMappingRecord.from_db(mapping=m) for m in mappings]

    @returns_result("get customer reservation count")
    async def customer_reservation_count(self, customer_id: int) -> int:
        return await self.uow.reservations.count_active_for_customer(customer_id)
