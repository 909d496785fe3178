"""
Damage record model.

A damage record is written for every garment that comes back damaged from a
rental. It references the garment and, where known, the customer and the
staff member who processed the return.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tailorshop.database.base import BaseModel


class DamageRecord(BaseModel):
    """Damage event tied to an inventory garment."""

    __tablename__ = "damage_records"

    inventory_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("rental_inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Damaged garment",
    )

    order_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        index=True,
        comment="Rental order item the damage was reported on",
    )

    customer_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Customer identifier from the customer service",
    )

    customer_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="Customer the damage is attributed to",
    )

    handled_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Staff member who processed the return",
    )

    damage_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="rental_return",
        comment="Damage category",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Damage description",
    )

    repair_cost: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Estimated repair cost",
    )

    repair_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="pending",
        comment="Repair progress",
    )

    __table_args__ = (
        Index("ix_damage_records_item_created", "inventory_item_id", "created_at"),
        {"comment": "Damage captured on returned rental garments"},
    )
