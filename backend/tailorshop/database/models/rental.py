"""
Rental order models.

This module defines the checkout-level RentalOrder, the RentalOrderItem that
carries the lifecycle state machine, and the RentalStatusHistory audit trail.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tailorshop.database.base import Base, BaseModel, JSONType, utcnow
from tailorshop.services.rentals.enums import HistoryAction, OrderType, RentalStatus


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class RentalOrder(BaseModel):
    """
    Checkout grouping one customer's rental lines.

    Attributes:
        id: Unique order identifier (UUID)
        order_number: Human-readable order number
        customer_id: Customer identifier from the customer service
        customer_name: Customer display name
        items: Rental order items created at checkout
    """

    __tablename__ = "rental_orders"

    order_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Human-readable order number",
    )

    customer_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Customer identifier from the customer service",
    )

    customer_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Customer display name",
    )

    items: Mapped[list["RentalOrderItem"]] = relationship(
        "RentalOrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = ({"comment": "Rental checkouts"},)

    def __repr__(self) -> str:
        return (
            f"<RentalOrder(id={self.id}, order_number={self.order_number}, "
            f"customer_name={self.customer_name!r})>"
        )


class RentalOrderItem(BaseModel):
    """
    One rentable line of a checkout, possibly a bundle of garments.

    Amount paid and remaining balance are not stored here; they are always
    derived from the payment ledger.

    Attributes:
        id: Unique order item identifier (UUID)
        order_id: Owning checkout
        order_type: online or walk_in
        approval_status: Lifecycle status
        rental_start_date: First day of the rental period
        rental_end_date: Due date of the rental
        final_price: Total price, including any realized penalty after return
        pricing_factors: downpayment, penalty, penaltyDays, penaltyAppliedDate
        specific_data: item_name, is_bundle, bundle_items and notes
        inventory_item_id: Garment rented by a single-garment line
        version_id: Optimistic locking counter
        last_payment_at: Timestamp of the latest ledger entry
    """

    __tablename__ = "rental_order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("rental_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning checkout",
    )

    order_type: Mapped[OrderType] = mapped_column(
        SQLEnum(
            OrderType,
            name="rental_order_type",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=OrderType.ONLINE,
        comment="How the rental was placed",
    )

    approval_status: Mapped[RentalStatus] = mapped_column(
        SQLEnum(
            RentalStatus,
            name="rental_status",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=RentalStatus.PENDING,
        index=True,
        comment="Lifecycle status",
    )

    rental_start_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        comment="First day of the rental period",
    )

    rental_end_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        index=True,
        comment="Rental due date",
    )

    final_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Total rental price",
    )

    pricing_factors: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Downpayment and realized penalty",
    )

    specific_data: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Garment names, bundle composition and notes",
    )

    inventory_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("rental_inventory.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Garment rented by a single-garment line",
    )

    version_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Optimistic locking counter",
    )

    last_payment_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of the latest payment",
    )

    order: Mapped["RentalOrder"] = relationship(
        "RentalOrder",
        back_populates="items",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("ix_rental_order_items_status_created", "approval_status", "created_at"),
        CheckConstraint(
            "final_price >= 0",
            name="ck_rental_order_items_final_price_non_negative",
        ),
        CheckConstraint(
            "rental_end_date IS NULL OR rental_start_date IS NULL "
            "OR rental_end_date >= rental_start_date",
            name="ck_rental_order_items_period_order",
        ),
        {"comment": "Rental lines with lifecycle status"},
    )

    def __repr__(self) -> str:
        return (
            f"<RentalOrderItem(id={self.id}, order_id={self.order_id}, "
            f"approval_status={self.approval_status.value}, "
            f"final_price={self.final_price})>"
        )

    @property
    def customer_name(self) -> Optional[str]:
        return self.order.customer_name if self.order is not None else None

    @property
    def downpayment(self) -> Decimal:
        """Minimum payment required before the garment leaves the shop."""
        return Decimal(str(self.pricing_factors.get("downpayment", "0")))

    @property
    def realized_penalty(self) -> Decimal:
        return Decimal(str(self.pricing_factors.get("penalty", "0")))

    @property
    def admin_notes(self) -> Optional[str]:
        return self.specific_data.get("admin_notes")

    def update_pricing_factors(self, **values: Any) -> None:
        """Merge values into pricing_factors, replacing the dict so the change is tracked."""
        self.pricing_factors = {**self.pricing_factors, **values}

    def update_specific_data(self, **values: Any) -> None:
        """Merge values into specific_data, replacing the dict so the change is tracked."""
        self.specific_data = {**self.specific_data, **values}


class RentalStatusHistory(Base):
    """
    Audit trail of status changes and payments on a rental order item.

    Like the payment ledger, rows are kept after the order item is deleted.
    """

    __tablename__ = "rental_status_history"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Rental order item",
    )

    action: Mapped[HistoryAction] = mapped_column(
        SQLEnum(
            HistoryAction,
            name="rental_history_action",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        comment="Kind of event",
    )

    previous_status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Status before the event",
    )

    new_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Status after the event",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Human-readable description",
    )

    actor: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Staff member who triggered the event",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("ix_rental_status_history_item_created", "order_item_id", "created_at"),
        {"comment": "Rental lifecycle audit trail"},
    )
