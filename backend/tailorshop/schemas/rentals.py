"""
Rental Pydantic schemas for API request/response validation.

Status values submitted by clients are normalized to the canonical
RentalStatus here, so legacy spellings such as ``ready_for_pickup`` or
``pending_review`` never reach the service layer.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tailorshop.services.rentals.enums import OrderType, RentalStatus


def _normalize_status(value: Any) -> RentalStatus:
    return RentalStatus.normalize(value)


class RentalLineRequest(BaseModel):
    """One checkout line: a single garment or a bundle."""

    model_config = ConfigDict(str_strip_whitespace=True)

    inventory_item_ids: list[UUID] = Field(
        ...,
        min_length=1,
        description="Garments rented by this line; more than one makes a bundle",
    )
    rental_start_date: Optional[date] = Field(None, description="First rental day")
    rental_end_date: Optional[date] = Field(None, description="Rental due date")
    customer_notes: Optional[str] = Field(None, max_length=1000)


class RentalOrderCreateRequest(BaseModel):
    """Checkout request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_id: Optional[str] = Field(None, max_length=100)
    order_type: OrderType = Field(default=OrderType.ONLINE)
    lines: list[RentalLineRequest] = Field(..., min_length=1)

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v: Any) -> Any:
        """Accept the 'walk-in' spelling."""
        if isinstance(v, str):
            return OrderType.from_string(v)
        return v


class DeclineRequest(BaseModel):
    """Decline a pending rental. The reason is checked by the service."""

    reason: Optional[str] = Field(None, max_length=1000)


class PaymentRequest(BaseModel):
    """Record a payment against an order item."""

    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., description="Payment amount, must be positive")
    payment_method: str = Field(default="cash", max_length=50)
    notes: Optional[str] = Field(None, max_length=500)
    then_advance_to: Optional[RentalStatus] = Field(
        None,
        description="Transition to attempt once the payment is stored",
    )

    @field_validator("then_advance_to", mode="before")
    @classmethod
    def normalize_target(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return _normalize_status(v)


class StatusUpdateRequest(BaseModel):
    """Advance an order item to a target status."""

    status: RentalStatus
    damage_by_item: Optional[dict[str, Optional[str]]] = Field(
        None,
        description=(
            "Damage description keyed by garment name or inventory id, on return. "
            "A null description marks the garment undamaged."
        ),
    )
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> RentalStatus:
        return _normalize_status(v)


class NotesUpdateRequest(BaseModel):
    """Replace admin notes. Bundle composition is not editable."""

    model_config = ConfigDict(extra="forbid")

    admin_notes: Optional[str] = Field(None, max_length=2000)


class PenaltyResponse(BaseModel):
    classification: str
    penalty_amount: Decimal
    days_overdue: int
    days_remaining: Optional[int] = None


class GarmentResponse(BaseModel):
    name: str
    inventory_item_id: Optional[UUID] = None


class RentalItemResponse(BaseModel):
    """Order item with ledger totals and advisory penalty."""

    id: UUID
    order_id: UUID
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    order_type: OrderType
    status: RentalStatus
    next_status: Optional[RentalStatus] = None
    allowed_transitions: list[RentalStatus]
    rental_start_date: Optional[date] = None
    rental_end_date: Optional[date] = None
    final_price: Decimal
    downpayment: Decimal
    amount_paid: Decimal
    remaining_balance: Decimal
    payment_status: str
    is_bundle: bool
    item_name: Optional[str] = None
    garments: list[GarmentResponse]
    customer_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    damage_notes: Optional[Union[dict[str, str], str]] = None
    needs_review: bool = False
    pricing_factors: dict[str, Any]
    penalty: PenaltyResponse
    version: int
    created_at: str
    updated_at: str


class RentalOrderResponse(BaseModel):
    id: UUID
    order_number: str
    customer_name: str
    customer_id: Optional[str] = None
    items: list[RentalItemResponse]
    created_at: str


class TransitionSummary(BaseModel):
    previous_status: RentalStatus
    new_status: RentalStatus
    changed: bool
    penalty_amount: Decimal
    penalty_days: int
    damaged_garments: list[str] = Field(default_factory=list)


class TransitionResponse(BaseModel):
    order_item: RentalItemResponse
    transition: TransitionSummary
    warnings: list[dict[str, Any]] = Field(default_factory=list)


class PaymentEntryResponse(BaseModel):
    id: UUID
    order_item_id: UUID
    amount: Decimal
    payment_method: str
    notes: Optional[str] = None
    remaining_balance: Decimal
    recorded_by: Optional[str] = None
    created_at: str


class PaymentResponse(BaseModel):
    order_item_id: UUID
    amount_paid: Decimal
    remaining_balance: Decimal
    amount_due: Decimal
    payment_status: str
    payment: PaymentEntryResponse
    transition: Optional[TransitionSummary] = None
    transition_error: Optional[dict[str, Any]] = None


class PenaltyQueryResponse(PenaltyResponse):
    order_item_id: UUID
    status: RentalStatus
    due_date: Optional[date] = None
    as_of: date
    realized_penalty: Decimal
    realized_penalty_days: int


class HistoryEntryResponse(BaseModel):
    id: UUID
    action: str
    previous_status: Optional[str] = None
    new_status: str
    notes: Optional[str] = None
    actor: Optional[str] = None
    created_at: str


class DeleteResponse(BaseModel):
    id: UUID
    deleted: bool
    status: RentalStatus


class InventoryCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    rental_price: Decimal = Field(..., ge=0)
    category: Optional[str] = Field(None, max_length=100)


class InventoryItemResponse(BaseModel):
    id: UUID
    name: str
    category: Optional[str] = None
    rental_price: Decimal
    status: str
    damage_notes: Optional[str] = None
    damaged_by: Optional[str] = None
    created_at: str
    updated_at: str


class DamageRecordResponse(BaseModel):
    id: UUID
    inventory_item_id: UUID
    order_item_id: Optional[UUID] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    handled_by: Optional[str] = None
    damage_type: str
    description: str
    repair_cost: Decimal
    repair_status: str
    created_at: str
