"""
Rental data access repository.

This module implements the RentalRepository class providing async methods for
creating checkouts, loading order items (optionally under a row lock),
reading the payment ledger and the status history, and querying inventory
and damage records. SQLAlchemy errors are wrapped in RentalRepositoryError.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tailorshop.core.logging import get_logger
from tailorshop.database.models.damage import DamageRecord
from tailorshop.database.models.inventory import InventoryItem
from tailorshop.database.models.payment import PaymentEntry
from tailorshop.database.models.rental import (
    RentalOrder,
    RentalOrderItem,
    RentalStatusHistory,
)
from tailorshop.services.rentals.enums import (
    HistoryAction,
    InventoryStatus,
    OrderType,
    RentalStatus,
)

logger = get_logger(__name__)


class RentalRepositoryError(Exception):
    """Base exception for rental repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class RentalRepository:
    """
    Repository for rental data access operations.

    The repository flushes but never commits; transaction boundaries belong
    to the service.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # Checkout

    async def create_order(
        self,
        order_number: str,
        customer_name: str,
        customer_id: Optional[str],
        items: list[RentalOrderItem],
    ) -> RentalOrder:
        """
        Create a checkout with its order items.

        Args:
            order_number: Human-readable order number
            customer_name: Customer display name
            customer_id: Customer identifier from the customer service
            items: Unsaved order items

        Returns:
            Created RentalOrder with ids assigned

        Raises:
            RentalRepositoryError: If the insert fails
        """
        try:
            order = RentalOrder(
                order_number=order_number,
                customer_name=customer_name,
                customer_id=customer_id,
                items=items,
            )
            self.session.add(order)
            await self.session.flush()

            logger.info(
                "Rental order created",
                order_id=str(order.id),
                order_number=order_number,
                item_count=len(items),
            )
            return order

        except SQLAlchemyError as e:
            logger.error(
                "Failed to create rental order",
                order_number=order_number,
                error=str(e),
            )
            raise RentalRepositoryError(
                "Failed to create rental order",
                order_number=order_number,
                error=str(e),
            ) from e

    # Order items

    async def get_item(
        self, item_id: uuid.UUID, for_update: bool = False
    ) -> Optional[RentalOrderItem]:
        """
        Get an order item by id.

        Args:
            item_id: Order item identifier
            for_update: Lock the row until the transaction ends

        Returns:
            RentalOrderItem if found, None otherwise

        Raises:
            RentalRepositoryError: If query fails
        """
        try:
            stmt = select(RentalOrderItem).where(RentalOrderItem.id == item_id)
            if for_update:
                stmt = stmt.with_for_update().execution_options(populate_existing=True)

            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch rental order item",
                order_item_id=str(item_id),
                error=str(e),
            )
            raise RentalRepositoryError(
                "Failed to fetch rental order item",
                order_item_id=str(item_id),
                error=str(e),
            ) from e

    async def list_items(
        self,
        status: Optional[RentalStatus] = None,
        order_type: Optional[OrderType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[RentalOrderItem]:
        """
        List order items, pending first, then newest first.

        Raises:
            RentalRepositoryError: If query fails
        """
        try:
            pending_first = case(
                (RentalOrderItem.approval_status == RentalStatus.PENDING, 0),
                else_=1,
            )
            stmt = select(RentalOrderItem)
            if status is not None:
                stmt = stmt.where(RentalOrderItem.approval_status == status)
            if order_type is not None:
                stmt = stmt.where(RentalOrderItem.order_type == order_type)
            stmt = (
                stmt.order_by(pending_first, RentalOrderItem.created_at.desc())
                .limit(limit)
                .offset(offset)
            )

            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            logger.error("Failed to list rental order items", error=str(e))
            raise RentalRepositoryError(
                "Failed to list rental order items",
                error=str(e),
            ) from e

    async def list_billable_items(self) -> Sequence[RentalOrderItem]:
        """All order items that are not cancelled."""
        try:
            stmt = select(RentalOrderItem).where(
                RentalOrderItem.approval_status != RentalStatus.CANCELLED
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            logger.error("Failed to list billable rental items", error=str(e))
            raise RentalRepositoryError(
                "Failed to list billable rental items",
                error=str(e),
            ) from e

    async def delete_item(self, item: RentalOrderItem) -> None:
        try:
            await self.session.delete(item)
        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to delete rental order item",
                order_item_id=str(item.id),
                error=str(e),
            ) from e

    # Ledger

    async def get_payment_amounts(self, item_id: uuid.UUID) -> list[Decimal]:
        """Amounts of every ledger entry of an order item."""
        try:
            stmt = select(PaymentEntry.amount).where(PaymentEntry.order_item_id == item_id)
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(
                "Failed to read payment ledger",
                order_item_id=str(item_id),
                error=str(e),
            )
            raise RentalRepositoryError(
                "Failed to read payment ledger",
                order_item_id=str(item_id),
                error=str(e),
            ) from e

    async def get_payment_totals(
        self, item_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, Decimal]:
        """Sum of ledger entries per order item, for many items at once."""
        if not item_ids:
            return {}
        try:
            stmt = (
                select(PaymentEntry.order_item_id, func.sum(PaymentEntry.amount))
                .where(PaymentEntry.order_item_id.in_(list(item_ids)))
                .group_by(PaymentEntry.order_item_id)
            )
            result = await self.session.execute(stmt)
            return {
                item_id: Decimal(str(total or 0)) for item_id, total in result.all()
            }

        except SQLAlchemyError as e:
            logger.error("Failed to aggregate payment ledger", error=str(e))
            raise RentalRepositoryError(
                "Failed to aggregate payment ledger",
                error=str(e),
            ) from e

    async def get_payments(self, item_id: uuid.UUID) -> Sequence[PaymentEntry]:
        try:
            stmt = (
                select(PaymentEntry)
                .where(PaymentEntry.order_item_id == item_id)
                .order_by(PaymentEntry.created_at)
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to fetch payments",
                order_item_id=str(item_id),
                error=str(e),
            ) from e

    def add_payment(self, entry: PaymentEntry) -> PaymentEntry:
        """Stage a ledger entry; it is written when the service commits."""
        self.session.add(entry)
        return entry

    # History

    def add_history(
        self,
        item_id: uuid.UUID,
        action: HistoryAction,
        new_status: RentalStatus,
        previous_status: Optional[RentalStatus] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> RentalStatusHistory:
        entry = RentalStatusHistory(
            order_item_id=item_id,
            action=action,
            previous_status=previous_status.value if previous_status else None,
            new_status=new_status.value,
            notes=notes,
            actor=actor,
        )
        self.session.add(entry)
        return entry

    async def get_history(self, item_id: uuid.UUID) -> Sequence[RentalStatusHistory]:
        try:
            stmt = (
                select(RentalStatusHistory)
                .where(RentalStatusHistory.order_item_id == item_id)
                .order_by(RentalStatusHistory.created_at)
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to fetch rental history",
                order_item_id=str(item_id),
                error=str(e),
            ) from e

    # Inventory

    async def get_inventory_items(
        self, inventory_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, InventoryItem]:
        try:
            stmt = select(InventoryItem).where(InventoryItem.id.in_(list(inventory_ids)))
            result = await self.session.execute(stmt)
            return {item.id: item for item in result.scalars().all()}

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to fetch inventory items",
                error=str(e),
            ) from e

    async def get_inventory_item(self, inventory_id: uuid.UUID) -> Optional[InventoryItem]:
        try:
            return await self.session.get(InventoryItem, inventory_id)
        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to fetch inventory item",
                inventory_item_id=str(inventory_id),
                error=str(e),
            ) from e

    async def create_inventory_item(
        self,
        name: str,
        rental_price: Decimal,
        category: Optional[str] = None,
        status: InventoryStatus = InventoryStatus.AVAILABLE,
    ) -> InventoryItem:
        try:
            item = InventoryItem(
                name=name,
                rental_price=rental_price,
                category=category,
                status=status,
            )
            self.session.add(item)
            await self.session.flush()
            logger.info("Inventory item created", inventory_item_id=str(item.id), name=name)
            return item

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to create inventory item",
                name=name,
                error=str(e),
            ) from e

    async def get_damage_records(self, inventory_id: uuid.UUID) -> Sequence[DamageRecord]:
        try:
            stmt = (
                select(DamageRecord)
                .where(DamageRecord.inventory_item_id == inventory_id)
                .order_by(DamageRecord.created_at.desc())
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to fetch damage records",
                inventory_item_id=str(inventory_id),
                error=str(e),
            ) from e

    async def list_overdue(self, today: date) -> Sequence[RentalOrderItem]:
        """Rented items past their due date, most overdue first."""
        try:
            stmt = (
                select(RentalOrderItem)
                .where(
                    RentalOrderItem.approval_status == RentalStatus.RENTED,
                    RentalOrderItem.rental_end_date < today,
                )
                .order_by(RentalOrderItem.rental_end_date)
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to list overdue rentals",
                error=str(e),
            ) from e

    async def count_overdue(self, today: date) -> int:
        """Number of rented items past their due date."""
        try:
            stmt = (
                select(func.count())
                .select_from(RentalOrderItem)
                .where(
                    RentalOrderItem.approval_status == RentalStatus.RENTED,
                    RentalOrderItem.rental_end_date < today,
                )
            )
            result = await self.session.execute(stmt)
            return result.scalar_one()

        except SQLAlchemyError as e:
            raise RentalRepositoryError(
                "Failed to count overdue rentals",
                error=str(e),
            ) from e
