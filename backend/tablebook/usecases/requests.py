from __future__ import annotations

from ..domain.repositories import UnitOfWork
from ..models import Customer, ReservationRequest, ReservationRequestStatus
from ..schemas import CustomerRead, CustomerUpsert, ReservationRequestCreate, ReservationRequestRead
from .outcome import returns_result


class RequestIntake:
    """Staff-side intake: customers and the pending requests confirmation works from."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    @returns_result("upsert customer")
    async def upsert_customer(self, payload: CustomerUpsert) -> CustomerRead:
        async def work(uow: UnitOfWork) -> Customer:
            return await uow.customers.upsert_by_phone(
                first_name=payload.first_name,
                last_name=payload.last_name,
                phone=payload.phone,
                email=payload.email,
            )

        customer = await self.uow.atomic(work)
        return CustomerRead.from_db(customer=customer)

    @returns_result("create reservation request")
    async def create_reservation_request(self, payload: ReservationRequestCreate) -> ReservationRequestRead:
        async def work(uow: UnitOfWork) -> ReservationRequest:
            return await uow.requests.create(
                ReservationRequest(
                    **payload.model_dump(),
                    status=ReservationRequestStatus.PENDING,
                )
            )

        request = await self.uow.atomic(work)
        return ReservationRequestRead.from_db(request=request)
