"""
Payment ledger model.

Ledger rows are append-only. They are never updated or deleted, and they
carry no foreign key to the order item so that the audit trail survives a
hard delete of the item.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tailorshop.database.base import Base, utcnow


class PaymentEntry(Base):
    """
    Single payment applied to a rental order item.

    Attributes:
        id: Unique entry identifier
        order_item_id: Rental order item the payment is applied to
        amount: Payment amount (strictly positive)
        payment_method: How the payment was collected
        notes: Free-form notes
        remaining_balance: Balance left after this payment, as recorded
        recorded_by: Staff member who recorded the payment
        created_at: Recording timestamp
    """

    __tablename__ = "rental_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique ledger entry identifier",
    )

    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Rental order item the payment is applied to",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Payment amount",
    )

    payment_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="cash",
        comment="Payment method",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Payment notes",
    )

    remaining_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Remaining balance after this payment",
    )

    recorded_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Staff member who recorded the payment",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="Recording timestamp",
    )

    __table_args__ = (
        Index("ix_rental_payments_item_created", "order_item_id", "created_at"),
        CheckConstraint("amount > 0", name="ck_rental_payments_amount_positive"),
        {"comment": "Append-only ledger of rental payments"},
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentEntry(id={self.id}, order_item_id={self.order_item_id}, "
            f"amount={self.amount})>"
        )
