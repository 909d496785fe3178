"""
Inventory model for rentable garments.

Each row is one physical garment that can be rented on its own or as part
of a bundle. The rental lifecycle writes availability and damage
annotations back to it when an order is returned.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Enum as SQLEnum, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tailorshop.database.base import BaseModel
from tailorshop.services.rentals.enums import InventoryStatus


class InventoryItem(BaseModel):
    """
    Rentable garment.

    Attributes:
        id: Unique garment identifier (UUID)
        name: Display name, used to address bundle constituents
        category: Garment category (gown, suit, barong, ...)
        rental_price: Price for one rental period
        status: Availability status
        damage_notes: Damage description captured at return
        damaged_by: Name of the customer the damage is attributed to
    """

    __tablename__ = "rental_inventory"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="Garment display name",
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Garment category",
    )

    rental_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Price for one rental period",
    )

    status: Mapped[InventoryStatus] = mapped_column(
        SQLEnum(
            InventoryStatus,
            name="inventory_status",
            values_callable=lambda enum: [e.value for e in enum],
            create_constraint=True,
        ),
        nullable=False,
        default=InventoryStatus.AVAILABLE,
        index=True,
        comment="Availability status",
    )

    damage_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Damage description captured at return",
    )

    damaged_by: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="Customer the damage is attributed to",
    )

    __table_args__ = (
        Index("ix_rental_inventory_status_name", "status", "name"),
        CheckConstraint(
            "rental_price >= 0",
            name="ck_rental_inventory_price_non_negative",
        ),
        {"comment": "Rentable garments and their availability"},
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryItem(id={self.id}, name={self.name!r}, "
            f"status={self.status.value})>"
        )

    @property
    def is_available(self) -> bool:
        return self.status == InventoryStatus.AVAILABLE

    def mark_returned(self) -> None:
        """Put the garment back on the rack and clear damage annotations."""
        self.status = InventoryStatus.AVAILABLE
        self.damage_notes = None
        self.damaged_by = None

    def mark_damaged(self, description: str, damaged_by: Optional[str]) -> None:
        """Send the garment to maintenance with a damage annotation."""
        self.status = InventoryStatus.MAINTENANCE
        self.damage_notes = description
        self.damaged_by = damaged_by
