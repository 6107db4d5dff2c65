from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from ..domain.errors import NotFoundError, StorageError
from ..domain.repositories import UnitOfWork
from ..domain.services import financial_breakdown, reservation_number
from ..models import (
    CreatorType,
    Reservation,
    ReservationFinancialData,
    ReservationRequest,
    ReservationStatus,
)
from ..schemas import PromoCodeUsageCreate, ReservationConfirmation
from ..utils.time import utc_now_naive
from .outcome import returns_result
from .promotions import append_usage_ledger

logger = logging.getLogger(__name__)


class ConfirmationCoordinator:
    """Turns a pending reservation request into a confirmed reservation.

    Confirmation is idempotent on the request id: a second call returns the
    reservation created by the first without writing anything.
    """

    def __init__(self, uow: UnitOfWork, *, clock: Callable[[], datetime] = utc_now_naive) -> None:
        self.uow = uow
        self.clock = clock

    @returns_result("confirm non-advance reservation")
    async def confirm(self, request_id: int, *, record_promo_usage: bool = False) -> ReservationConfirmation:
        """
        Confirm a request that needs no advance payment, so the whole total
        stays due. Reservation, financial record and request status change
        commit together or not at all.

        With ``record_promo_usage`` a request carrying a promo code also gets
        its ledger row and counter bump inside the same unit. The discount is
        already reflected in the request total, so the balance is not reduced
        a second time.
        """

        async def work(uow: UnitOfWork) -> ReservationConfirmation:
            request = await uow.requests.get_with_customer_for_update(request_id)
            if request is None:
                raise NotFoundError(f"Reservation request {request_id} not found")

            existing = await uow.reservations.get_by_request(request_id)
            if existing is not None:
                logger.info("request %s already confirmed as %s", request_id, existing.reservation_number)
                return _confirmation(existing)

            reservation = await uow.reservations.create(_reservation_from(request))
            await uow.reservations.create_financial_data(_financial_data_for(reservation.id, request))
            if record_promo_usage and request.promo_code_id is not None:
                await append_usage_ledger(uow, _usage_for(reservation, request, request.promo_code_id))
            await uow.requests.mark_completed(request, self.clock())
            return _confirmation(reservation)

        async def lookup(uow: UnitOfWork) -> Reservation | None:
            return await uow.reservations.get_by_request(request_id)

        try:
            return await self.uow.atomic(work)
        except StorageError:
            # An overlapping confirm may have committed first; a fresh unit sees it.
            existing = await self.uow.atomic(lookup)
            if existing is None:
                raise
            logger.info("request %s confirmed concurrently as %s", request_id, existing.reservation_number)
            return _confirmation(existing)


def _confirmation(reservation: Reservation) -> ReservationConfirmation:
    return ReservationConfirmation(
        id=reservation.id,
        reservation_number=reservation.reservation_number,
        status=reservation.status.value,
    )


def _reservation_from(request: ReservationRequest) -> Reservation:
    return Reservation(
        reservation_number=reservation_number(request.meal_type, request.requested_date, request.id),
        restaurant_id=request.restaurant_id,
        customer_id=request.customer_id,
        request_id=request.id,
        reservation_name=request.request_name,
        contact_phone=request.contact_phone,
        reservation_date=request.requested_date,
        reservation_time=request.requested_time,
        adult_count=request.adult_count,
        child_count=request.child_count,
        meal_type=request.meal_type,
        total_amount=request.estimated_total_amount,
        service_charge=request.estimated_service_charge,
        tax_amount=request.estimated_tax_amount,
        advance_payment_amount=Decimal("0"),
        remaining_payment_amount=request.estimated_total_amount,
        status=ReservationStatus.CONFIRMED,
        created_by=CreatorType.MERCHANT,
        special_requests=request.special_requests,
        dietary_requirements=request.dietary_requirements,
        occasion=request.occasion,
        promo_code_id=request.promo_code_id,
        discount_amount=request.estimated_discount_amount or Decimal("0"),
    )


def _financial_data_for(reservation_id: int, request: ReservationRequest) -> ReservationFinancialData:
    breakdown = financial_breakdown(
        total=request.estimated_total_amount,
        service_charge=request.estimated_service_charge,
        tax=request.estimated_tax_amount,
        discount=request.estimated_discount_amount,
    )
    return ReservationFinancialData(
        reservation_id=reservation_id,
        net_buffet_price=breakdown.net_buffet_price,
        tax_amount=breakdown.tax_amount,
        service_charge=breakdown.service_charge,
        total_before_discount=breakdown.total_before_discount,
        discount=breakdown.discount,
        total_after_discount=breakdown.total_after_discount,
        advance_payment=breakdown.advance_payment,
        balance_due=breakdown.balance_due,
        is_paid=False,
    )


def _usage_for(reservation: Reservation, request: ReservationRequest, promo_code_id: int) -> PromoCodeUsageCreate:
    discount = request.estimated_discount_amount or Decimal("0")
    return PromoCodeUsageCreate(
        promo_code_id=promo_code_id,
        customer_id=request.customer_id,
        reservation_id=reservation.id,
        request_id=request.id,
        original_amount=request.estimated_total_amount + discount,
        discount_amount=discount,
        party_size=request.eligible_promo_party_size or (request.adult_count + request.child_count),
        applied_by=CreatorType.MERCHANT.value,
    )
