"""Billing statistics response schema."""

from decimal import Decimal

from pydantic import BaseModel, Field


class BillingStatisticsResponse(BaseModel):
    """Counts and revenue over non-cancelled rentals."""

    total: int = Field(..., ge=0, description="Non-cancelled rental records")
    paid: int = Field(..., ge=0, description="Fully paid records")
    down_payment: int = Field(..., ge=0, description="Partially paid records")
    unpaid: int = Field(..., ge=0, description="Records with no payment")
    total_revenue: Decimal = Field(..., description="Sum of all payments")
    pending_revenue: Decimal = Field(..., description="Sum of remaining balances")
    overdue: int = Field(..., ge=0, description="Rented items past their due date")
