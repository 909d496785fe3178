"""
Database models package.

Importing this package registers every table on Base.metadata, which the
Alembic environment and the test suite rely on.
"""

from tailorshop.database.models.damage import DamageRecord
from tailorshop.database.models.inventory import InventoryItem
from tailorshop.database.models.payment import PaymentEntry
from tailorshop.database.models.rental import (
    RentalOrder,
    RentalOrderItem,
    RentalStatusHistory,
)

__all__ = [
    "DamageRecord",
    "InventoryItem",
    "PaymentEntry",
    "RentalOrder",
    "RentalOrderItem",
    "RentalStatusHistory",
]
