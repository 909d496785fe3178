"""Inventory endpoints for rentable garments and their damage records."""

from uuid import UUID

from fastapi import APIRouter, status

from tailorshop.api.deps import RentalServiceDep
from tailorshop.schemas.rentals import (
    DamageRecordResponse,
    InventoryCreateRequest,
    InventoryItemResponse,
)

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post(
    "",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add rentable garment",
)
async def create_inventory_item(
    payload: InventoryCreateRequest, service: RentalServiceDep
) -> InventoryItemResponse:
    item = await service.create_inventory_item(
        name=payload.name,
        rental_price=payload.rental_price,
        category=payload.category,
    )
    return InventoryItemResponse(**item)


@router.get(
    "/{inventory_id}",
    response_model=InventoryItemResponse,
    summary="Get garment",
)
async def get_inventory_item(
    inventory_id: UUID, service: RentalServiceDep
) -> InventoryItemResponse:
    return InventoryItemResponse(**await service.get_inventory_item(inventory_id))


@router.get(
    "/{inventory_id}/damage-records",
    response_model=list[DamageRecordResponse],
    summary="List damage records of a garment",
)
async def list_damage_records(
    inventory_id: UUID, service: RentalServiceDep
) -> list[DamageRecordResponse]:
    records = await service.get_damage_records(inventory_id)
    return [DamageRecordResponse(**record) for record in records]
