"""
Rental lifecycle API endpoints.

This module implements the FastAPI router for the rental desk: checkout,
listing, staff actions (accept, decline, payments, status changes), penalty
queries, notes, deletion and history. Service errors propagate to the
application exception handlers, which map them to 400/404/409 responses
naming the failed precondition.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from tailorshop.api.deps import RentalServiceDep, StaffId
from tailorshop.core.logging import get_logger
from tailorshop.core.rate_limit import STAFF_ACTION_LIMIT, limiter
from tailorshop.schemas.rentals import (
    DeclineRequest,
    DeleteResponse,
    HistoryEntryResponse,
    NotesUpdateRequest,
    PaymentEntryResponse,
    PaymentRequest,
    PaymentResponse,
    PenaltyQueryResponse,
    RentalItemResponse,
    RentalOrderCreateRequest,
    RentalOrderResponse,
    StatusUpdateRequest,
    TransitionResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/rentals", tags=["rentals"])


@router.post(
    "",
    response_model=RentalOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create rental order",
    description="Checkout: one pending order item per line, single garment or bundle",
)
async def create_rental_order(
    payload: RentalOrderCreateRequest,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> RentalOrderResponse:
    logger.info(
        "Rental checkout requested",
        line_count=len(payload.lines),
        order_type=payload.order_type.value,
    )
    order = await service.create_rental_order(
        customer_name=payload.customer_name,
        customer_id=payload.customer_id,
        order_type=payload.order_type,
        lines=[line.model_dump() for line in payload.lines],
        actor=staff_id,
    )
    return RentalOrderResponse(**order)


@router.get(
    "",
    response_model=list[RentalItemResponse],
    summary="List rental order items",
    description="Pending items first, then newest first. Status aliases are accepted.",
)
async def list_rental_items(
    service: RentalServiceDep,
    status_filter: Optional[str] = Query(None, alias="status"),
    order_type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[RentalItemResponse]:
    items = await service.list_order_items(
        status=status_filter,
        order_type=order_type,
        limit=limit,
        offset=offset,
    )
    return [RentalItemResponse(**item) for item in items]


@router.get(
    "/{item_id}",
    response_model=RentalItemResponse,
    summary="Get rental order item",
)
async def get_rental_item(item_id: UUID, service: RentalServiceDep) -> RentalItemResponse:
    return RentalItemResponse(**await service.get_order_item(item_id))


@router.post(
    "/{item_id}/accept",
    response_model=TransitionResponse,
    summary="Accept rental",
    description="Online orders become ready_to_pickup; walk-in orders become rented",
)
@limiter.limit(STAFF_ACTION_LIMIT)
async def accept_rental(
    request: Request,
    item_id: UUID,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> TransitionResponse:
    result = await service.accept_order(item_id, actor=staff_id)
    return TransitionResponse(**result)


@router.post(
    "/{item_id}/decline",
    response_model=TransitionResponse,
    summary="Decline rental",
    description="Cancel a pending rental; a reason is required",
)
@limiter.limit(STAFF_ACTION_LIMIT)
async def decline_rental(
    request: Request,
    item_id: UUID,
    payload: DeclineRequest,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> TransitionResponse:
    result = await service.decline_order(item_id, payload.reason, actor=staff_id)
    return TransitionResponse(**result)


@router.post(
    "/{item_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record payment",
    description=(
        "Append a payment to the ledger. With then_advance_to, the transition "
        "is attempted after the payment is stored."
    ),
)
@limiter.limit(STAFF_ACTION_LIMIT)
async def record_payment(
    request: Request,
    item_id: UUID,
    payload: PaymentRequest,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> PaymentResponse:
    result = await service.record_payment(
        item_id,
        payload.amount,
        payment_method=payload.payment_method,
        notes=payload.notes,
        actor=staff_id,
        then_advance_to=payload.then_advance_to,
    )
    return PaymentResponse(**result)


@router.get(
    "/{item_id}/payments",
    response_model=list[PaymentEntryResponse],
    summary="List payments",
)
async def list_payments(
    item_id: UUID, service: RentalServiceDep
) -> list[PaymentEntryResponse]:
    return [PaymentEntryResponse(**p) for p in await service.get_payments(item_id)]


@router.post(
    "/{item_id}/status",
    response_model=TransitionResponse,
    summary="Advance rental status",
    description=(
        "Move the rental to a target status. Re-sending the current status is "
        "a no-op. On return, damage_by_item maps garment names to descriptions."
    ),
)
@limiter.limit(STAFF_ACTION_LIMIT)
async def advance_rental_status(
    request: Request,
    item_id: UUID,
    payload: StatusUpdateRequest,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> TransitionResponse:
    result = await service.advance_status(
        item_id,
        payload.status,
        damage_by_item=payload.damage_by_item,
        reason=payload.reason,
        actor=staff_id,
    )
    return TransitionResponse(**result)


@router.get(
    "/{item_id}/penalty",
    response_model=PenaltyQueryResponse,
    summary="Compute overdue penalty",
)
async def get_penalty(
    item_id: UUID,
    service: RentalServiceDep,
    as_of: Optional[date] = Query(None, description="Evaluation day, defaults to today"),
) -> PenaltyQueryResponse:
    return PenaltyQueryResponse(**await service.compute_penalty(item_id, as_of))


@router.patch(
    "/{item_id}/notes",
    response_model=RentalItemResponse,
    summary="Update admin notes",
)
async def update_notes(
    item_id: UUID,
    payload: NotesUpdateRequest,
    service: RentalServiceDep,
    staff_id: StaffId,
) -> RentalItemResponse:
    result = await service.update_notes(item_id, payload.admin_notes, actor=staff_id)
    return RentalItemResponse(**result)


@router.delete(
    "/{item_id}",
    response_model=DeleteResponse,
    summary="Delete rental order item",
    description="Only completed or cancelled rentals can be deleted",
)
async def delete_rental_item(
    item_id: UUID, service: RentalServiceDep, staff_id: StaffId
) -> DeleteResponse:
    return DeleteResponse(**await service.delete_order_item(item_id, actor=staff_id))


@router.get(
    "/{item_id}/history",
    response_model=list[HistoryEntryResponse],
    summary="Rental status history",
)
async def get_history(
    item_id: UUID, service: RentalServiceDep
) -> list[HistoryEntryResponse]:
    return [HistoryEntryResponse(**h) for h in await service.get_history(item_id)]
