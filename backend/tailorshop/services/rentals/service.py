"""
Rental service orchestrating the rental order lifecycle.

This module implements the RentalService class: checkout, staff actions
(accept, decline, record payment, advance status), penalty queries, notes,
deletion and the read side. Each staff action runs in its own transaction
with the order item row locked and its version checked, and the inventory
fan-out of a return runs only after the order status has been committed.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tailorshop.core.config import Settings, get_settings
from tailorshop.core.logging import get_logger
from tailorshop.database.base import utcnow
from tailorshop.database.models.payment import PaymentEntry
from tailorshop.database.models.rental import RentalOrder, RentalOrderItem
from tailorshop.services.rentals.enums import (
    HistoryAction,
    InventoryStatus,
    OrderType,
    RentalStatus,
    get_allowed_transitions,
    get_next_status,
)
from tailorshop.services.rentals.exceptions import (
    ConcurrentModificationError,
    DeletionNotAllowedError,
    RentalNotFoundError,
    RentalProcessingError,
    RentalServiceError,
    RentalValidationError,
    TransitionRefusedError,
)
from tailorshop.services.rentals.fanout import (
    GarmentBundle,
    GarmentRef,
    GarmentReturn,
    InventoryStore,
    ReturnContext,
    SingleGarment,
    build_specific_data,
    garments_from_item,
)
from tailorshop.services.rentals.ledger import (
    LedgerSummary,
    compute_downpayment,
    summarize_payments,
    to_money,
    validate_payment_amount,
)
from tailorshop.services.rentals.penalty import PenaltyAssessment
from tailorshop.services.rentals.repository import (
    RentalRepository,
    RentalRepositoryError,
)
from tailorshop.services.rentals.state_machine import (
    RentalStateMachine,
    TransitionRequest,
    describe_damage,
    describe_transition,
)

logger = get_logger(__name__)

StatusInput = Union[str, RentalStatus]


class RentalService:
    """
    Rental service orchestrating the order item lifecycle.

    Attributes:
        session: Async database session, committed by the service
        repository: Rental repository for data access
        state_machine: Transition rules and their in-memory effects
        inventory_store: Per-garment inventory writer used on return
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        inventory_store: Optional[InventoryStore] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize rental service.

        Args:
            session: Async database session
            settings: Business settings, defaults to the application settings
            inventory_store: Inventory writer, defaults to one bound to the
                session's engine
            today: Clock returning the current business day
        """
        self.settings = settings or get_settings()
        self.session = session
        self.repository = RentalRepository(session)
        self.state_machine = RentalStateMachine(
            penalty_daily_rate=self.settings.rental_penalty_daily_rate,
            due_soon_days=self.settings.rental_due_soon_days,
        )
        self.inventory_store = inventory_store or InventoryStore.for_session(session)
        self._today = today or date.today

    # Checkout

    async def create_rental_order(
        self,
        customer_name: str,
        lines: list[Mapping[str, Any]],
        order_type: Union[str, OrderType] = OrderType.ONLINE,
        customer_id: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a checkout with one pending order item per line.

        A line with one inventory id rents a single garment; a line with
        several ids is a bundle priced at the sum of its garments.

        Args:
            customer_name: Customer display name
            lines: Dicts with inventory_item_ids, rental_start_date,
                rental_end_date and optional customer_notes
            order_type: online or walk_in
            customer_id: Customer identifier from the customer service
            actor: Staff member placing a walk-in order

        Returns:
            Dictionary containing the created order and its items

        Raises:
            RentalValidationError: If the checkout input is invalid
            RentalNotFoundError: If a referenced garment does not exist
            RentalProcessingError: If the checkout cannot be stored
        """
        if not (customer_name or "").strip():
            raise RentalValidationError("Customer name is required", field="customer_name")
        if not lines:
            raise RentalValidationError("At least one rental line is required", field="lines")

        try:
            order_type = (
                order_type
                if isinstance(order_type, OrderType)
                else OrderType.from_string(order_type)
            )
        except ValueError as e:
            raise RentalValidationError(str(e), field="order_type") from e

        logger.info(
            "Creating rental order",
            customer_name=customer_name,
            order_type=order_type.value,
            line_count=len(lines),
        )

        try:
            wanted = [
                uuid.UUID(str(item_id))
                for line in lines
                for item_id in line.get("inventory_item_ids", [])
            ]
        except ValueError as e:
            raise RentalValidationError(
                "Invalid inventory item id", field="inventory_item_ids"
            ) from e

        try:
            inventory = await self.repository.get_inventory_items(wanted)

            items = [
                self._build_order_item(line, order_type, inventory) for line in lines
            ]
            order = await self.repository.create_order(
                order_number=self._generate_order_number(),
                customer_name=customer_name.strip(),
                customer_id=customer_id,
                items=items,
            )
            for item in order.items:
                self.repository.add_history(
                    item.id,
                    HistoryAction.CREATED,
                    RentalStatus.PENDING,
                    notes="Rental order created",
                    actor=actor,
                )
            await self._commit(order.id)

        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError(
                "Failed to create rental order", **e.context
            ) from e

        logger.info(
            "Rental order created successfully",
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return self._format_order(order)

    def _build_order_item(
        self,
        line: Mapping[str, Any],
        order_type: OrderType,
        inventory: Mapping[uuid.UUID, Any],
    ) -> RentalOrderItem:
        ids = [uuid.UUID(str(item_id)) for item_id in line.get("inventory_item_ids", [])]
        if not ids:
            raise RentalValidationError(
                "Each rental line needs at least one garment",
                field="inventory_item_ids",
            )
        if len(set(ids)) != len(ids):
            raise RentalValidationError(
                "A garment can appear only once in a bundle",
                field="inventory_item_ids",
            )

        garments = []
        for item_id in ids:
            garment = inventory.get(item_id)
            if garment is None:
                raise RentalNotFoundError(
                    "Inventory item not found",
                    inventory_item_id=str(item_id),
                )
            if garment.status == InventoryStatus.MAINTENANCE:
                raise RentalValidationError(
                    f"{garment.name} is under maintenance",
                    field="inventory_item_ids",
                    inventory_item_id=str(item_id),
                )
            garments.append(garment)

        start = _parse_date(line.get("rental_start_date"), "rental_start_date")
        end = _parse_date(line.get("rental_end_date"), "rental_end_date")
        if start and end and end < start:
            raise RentalValidationError(
                "Rental end date must not be before the start date",
                field="rental_period",
                rental_start_date=start.isoformat(),
                rental_end_date=end.isoformat(),
            )

        refs = tuple(GarmentRef(name=g.name, inventory_item_id=g.id) for g in garments)
        composition = GarmentBundle(refs) if len(refs) > 1 else SingleGarment(refs[0])

        final_price = to_money(sum((Decimal(g.rental_price) for g in garments), Decimal("0")))
        downpayment = compute_downpayment(
            final_price, self.settings.rental_downpayment_ratio
        )

        return RentalOrderItem(
            order_type=order_type,
            approval_status=RentalStatus.PENDING,
            rental_start_date=start,
            rental_end_date=end,
            final_price=final_price,
            pricing_factors={
                "downpayment": str(downpayment),
                "penalty": "0",
                "penaltyDays": 0,
            },
            specific_data=build_specific_data(composition, line.get("customer_notes")),
            inventory_item_id=None if composition.is_bundle else refs[0].inventory_item_id,
        )

    # Staff actions

    async def accept_order(
        self, item_id: uuid.UUID, actor: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Accept a pending rental.

        Online orders move to ready_to_pickup; walk-in orders go straight to
        rented since the customer is in the shop.
        """
        item = await self._load_item(item_id)
        target = get_next_status(OrderType(item.order_type), RentalStatus.PENDING)
        return await self.advance_status(item_id, target, actor=actor)

    async def decline_order(
        self, item_id: uuid.UUID, reason: Optional[str], actor: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Decline a pending rental.

        Raises:
            RentalValidationError: If reason is empty
            TransitionRefusedError: If the rental is no longer pending
        """
        return await self.advance_status(
            item_id,
            RentalStatus.CANCELLED,
            reason=reason,
            actor=actor,
            action=HistoryAction.DECLINE,
        )

    async def advance_status(
        self,
        item_id: uuid.UUID,
        target_status: StatusInput,
        damage_by_item: Optional[Mapping[str, Optional[str]]] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
        action: HistoryAction = HistoryAction.STATUS_UPDATE,
    ) -> dict[str, Any]:
        """
        Move an order item to target_status.

        Requesting the current status succeeds without changes, except that
        damage reported on an already returned item is recorded. On return,
        per-garment inventory updates run after the status is committed and
        their failures come back as warnings. Damage reported with a return
        refused for payment is recorded before the refusal is raised.

        Args:
            item_id: Order item identifier
            target_status: Target status, legacy aliases accepted
            damage_by_item: Damage description per garment name, on return
            reason: Decline reason
            actor: Staff member performing the action
            action: History action recorded for the change

        Returns:
            Dictionary with the updated order item, the transition summary
            and any inventory warnings

        Raises:
            RentalValidationError: If input is invalid
            TransitionRefusedError: If a business rule refuses the transition
            RentalNotFoundError: If the order item does not exist
            ConcurrentModificationError: If another request changed the item
            RentalProcessingError: If the store fails
        """
        target = self._normalize_status(target_status)

        logger.info(
            "Advancing rental status",
            order_item_id=str(item_id),
            target_status=target.value,
            actor=actor,
        )

        try:
            item = await self._get_item_or_raise(item_id, for_update=True)
            ledger = await self._ledger_for(item)
            result = self.state_machine.apply(
                item,
                TransitionRequest(
                    target=target,
                    ledger=ledger,
                    today=self._today(),
                    reason=reason,
                    damage_by_item=damage_by_item,
                ),
            )

            if result.changed or result.garment_returns:
                self.repository.add_history(
                    item.id,
                    action if result.changed else HistoryAction.DAMAGE_REPORT,
                    result.new_status,
                    previous_status=result.previous_status,
                    notes=result.note,
                    actor=actor,
                )
            await self._commit(item_id)

        except TransitionRefusedError as e:
            await self.session.rollback()
            logger.warning(
                "Rental transition refused",
                order_item_id=str(item_id),
                reason=e.reason.value,
                current_status=e.current_status.value,
                target_status=e.target_status.value,
            )
            if (
                e.is_payment_required
                and target == RentalStatus.RETURNED
                and damage_by_item
            ):
                # damage capture is not gated by payment
                recorded = await self._record_damage(item_id, damage_by_item, actor)
                e.context.update(recorded)
            raise
        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError(
                "Failed to update rental status", **e.context
            ) from e

        response: dict[str, Any] = {
            "order_item": self._format_item(
                item,
                summarize_payments(
                    item.final_price, item.downpayment, [ledger.amount_paid]
                ),
            ),
            "transition": describe_transition(result),
            "warnings": [],
        }
        if result.garment_returns:
            response["warnings"] = await self._propagate_return(
                item, result.garment_returns, actor, response["order_item"]
            )
        warnings = response["warnings"]

        if result.changed:
            logger.info(
                "Rental status advanced",
                order_item_id=str(item_id),
                previous_status=result.previous_status.value,
                new_status=result.new_status.value,
                warning_count=len(warnings),
            )
        return response

    async def _record_damage(
        self,
        item_id: uuid.UUID,
        damage_by_item: Mapping[str, Optional[str]],
        actor: Optional[str],
    ) -> dict[str, Any]:
        """
        Record damage on a rented item whose return was refused.

        Runs in its own transaction after the refused one was rolled back.
        Newly damaged garments go to maintenance right away.

        Returns:
            Context describing the recorded damage, merged into the refusal
        """
        try:
            item = await self._get_item_or_raise(item_id, for_update=True)
            status = self.state_machine.current_status(item)
            fresh = self.state_machine.capture_damage(item, damage_by_item)
            if not fresh:
                await self.session.rollback()
                return {"damage_recorded": []}

            self.repository.add_history(
                item.id,
                HistoryAction.DAMAGE_REPORT,
                status,
                previous_status=status,
                notes=describe_damage(fresh),
                actor=actor,
            )
            await self._commit(item_id)

        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError("Failed to record damage", **e.context) from e

        warnings = await self._propagate_return(item, fresh, actor)
        return {
            "damage_recorded": [o.garment.name for o in fresh],
            "warnings": warnings,
        }

    async def _propagate_return(
        self,
        item: RentalOrderItem,
        outcomes: list[GarmentReturn],
        actor: Optional[str],
        formatted: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """
        Push garment outcomes to the inventory and flag the item on failures.

        formatted is the already serialized order item, if any; it is
        updated in place once the review flag is stored.
        """
        order_item_id = str(item.id)
        order = item.order
        report = await self.inventory_store.fan_out_return(
            outcomes,
            ReturnContext(
                order_item_id=item.id,
                customer_name=order.customer_name if order else None,
                customer_id=order.customer_id if order else None,
                actor=actor,
            ),
        )
        if not report.has_failures:
            return []

        logger.warning(
            "Rental returned with inventory sync failures",
            order_item_id=order_item_id,
            failed=len(report.warnings),
            updated=len(report.updated),
        )
        try:
            item.update_specific_data(
                inventory_sync_failures=(
                    list(item.specific_data.get("inventory_sync_failures") or [])
                    + report.warnings
                ),
                needs_review=True,
            )
            await self._commit(item.id)
        except RentalServiceError as e:
            logger.error(
                "Failed to flag rental for inventory review",
                order_item_id=order_item_id,
                error=str(e),
            )
        else:
            if formatted is not None:
                formatted["needs_review"] = True
                formatted["version"] = item.version_id
        return report.warnings

    async def record_payment(
        self,
        item_id: uuid.UUID,
        amount: Any,
        payment_method: str = "cash",
        notes: Optional[str] = None,
        actor: Optional[str] = None,
        then_advance_to: Optional[StatusInput] = None,
    ) -> dict[str, Any]:
        """
        Append a payment to the ledger of an order item.

        The payment is committed on its own. When then_advance_to is given,
        that transition is attempted afterwards; its refusal is reported in
        the result and does not undo the payment.

        Args:
            item_id: Order item identifier
            amount: Payment amount, must be positive
            payment_method: How the payment was collected
            notes: Payment notes
            actor: Staff member recording the payment
            then_advance_to: Transition to retry once the payment is stored

        Returns:
            Dictionary with amount_paid, remaining_balance, payment_status,
            the ledger entry and the queued transition outcome

        Raises:
            RentalValidationError: If the amount is invalid or over-pays
            RentalNotFoundError: If the order item does not exist
            ConcurrentModificationError: If another request changed the item
            RentalProcessingError: If the store fails
        """
        value = validate_payment_amount(amount)
        target = self._normalize_status(then_advance_to) if then_advance_to else None

        logger.info(
            "Recording rental payment",
            order_item_id=str(item_id),
            amount=str(value),
            actor=actor,
        )

        try:
            item = await self._get_item_or_raise(item_id, for_update=True)
            status = self.state_machine.current_status(item)
            if status == RentalStatus.CANCELLED:
                raise RentalValidationError(
                    "Payments cannot be recorded on a cancelled rental",
                    field="status",
                    status=status.value,
                )

            ledger = await self._ledger_for(item)
            payable = self.state_machine.payable_total(item, self._today())
            updated = ledger.with_payment(value)
            if updated.amount_paid > payable:
                raise RentalValidationError(
                    "Payment exceeds the remaining balance",
                    field="amount",
                    amount=str(value),
                    amount_paid=str(ledger.amount_paid),
                    amount_due=str(max(Decimal("0"), payable - ledger.amount_paid)),
                )

            entry = self.repository.add_payment(
                PaymentEntry(
                    order_item_id=item.id,
                    amount=value,
                    payment_method=payment_method,
                    notes=notes,
                    remaining_balance=updated.remaining_balance,
                    recorded_by=actor,
                )
            )
            item.last_payment_at = utcnow()
            self.repository.add_history(
                item.id,
                HistoryAction.PAYMENT,
                status,
                previous_status=status,
                notes=f"Payment of {value}",
                actor=actor,
            )
            await self._commit(item_id)

        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError("Failed to record payment", **e.context) from e

        logger.info(
            "Rental payment recorded",
            order_item_id=str(item_id),
            amount=str(value),
            amount_paid=str(updated.amount_paid),
            remaining_balance=str(updated.remaining_balance),
        )

        response: dict[str, Any] = {
            "order_item_id": str(item.id),
            "amount_paid": str(updated.amount_paid),
            "remaining_balance": str(updated.remaining_balance),
            "amount_due": str(max(Decimal("0"), payable - updated.amount_paid)),
            "payment_status": updated.payment_status.value,
            "payment": self._format_payment(entry),
            "transition": None,
            "transition_error": None,
        }

        if target is not None:
            try:
                advanced = await self.advance_status(item_id, target, actor=actor)
                response["transition"] = advanced["transition"]
            except (
                TransitionRefusedError,
                RentalValidationError,
                ConcurrentModificationError,
            ) as e:
                logger.info(
                    "Queued rental transition not applied",
                    order_item_id=str(item_id),
                    target_status=target.value,
                    error=str(e),
                )
                response["transition_error"] = {"message": str(e), **e.context}

        return response

    async def update_notes(
        self, item_id: uuid.UUID, admin_notes: Optional[str], actor: Optional[str] = None
    ) -> dict[str, Any]:
        """Replace the admin notes of an order item without touching its status."""
        try:
            item = await self._get_item_or_raise(item_id, for_update=True)
            status = self.state_machine.current_status(item)
            item.update_specific_data(admin_notes=admin_notes)
            self.repository.add_history(
                item.id,
                HistoryAction.NOTES_UPDATE,
                status,
                previous_status=status,
                notes="Admin notes updated",
                actor=actor,
            )
            await self._commit(item_id)
            ledger = await self._ledger_for(item)

        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError("Failed to update notes", **e.context) from e

        return self._format_item(item, ledger)

    async def delete_order_item(
        self, item_id: uuid.UUID, actor: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Hard delete a completed or cancelled order item.

        Ledger and history rows are kept.

        Raises:
            DeletionNotAllowedError: If the order item is still in progress
        """
        try:
            item = await self._get_item_or_raise(item_id, for_update=True)
            status = self.state_machine.current_status(item)
            if not status.is_deletable():
                raise DeletionNotAllowedError(
                    "Only completed or cancelled rentals can be deleted",
                    status=status,
                    order_item_id=str(item_id),
                )
            await self.repository.delete_item(item)
            await self._commit(item_id)

        except RentalServiceError:
            await self.session.rollback()
            raise
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError("Failed to delete rental", **e.context) from e

        logger.info(
            "Rental order item deleted",
            order_item_id=str(item_id),
            status=status.value,
            actor=actor,
        )
        return {"id": str(item_id), "deleted": True, "status": status.value}

    # Queries

    async def compute_penalty(
        self, item_id: uuid.UUID, as_of: Optional[date] = None
    ) -> dict[str, Any]:
        """
        Compute the overdue penalty of an order item. Read-only.

        While rented this is the advisory penalty for as_of. Before pickup
        and after return the classification is not_applicable; a returned
        item also reports the penalty realized at return.
        """
        item = await self._load_item(item_id)
        as_of = as_of or self._today()
        assessment = self.state_machine.assess_penalty(item, as_of)
        status = self.state_machine.current_status(item)

        return {
            "order_item_id": str(item.id),
            "status": status.value,
            "due_date": item.rental_end_date.isoformat() if item.rental_end_date else None,
            "as_of": as_of.isoformat(),
            **_format_penalty(assessment),
            "realized_penalty": str(to_money(item.realized_penalty)),
            "realized_penalty_days": int(item.pricing_factors.get("penaltyDays", 0) or 0),
        }

    async def get_order_item(self, item_id: uuid.UUID) -> dict[str, Any]:
        item = await self._load_item(item_id)
        ledger = await self._ledger_for(item)
        return self._format_item(item, ledger)

    async def list_order_items(
        self,
        status: Optional[StatusInput] = None,
        order_type: Optional[Union[str, OrderType]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """List order items, pending first, with ledger totals."""
        status_filter = self._normalize_status(status) if status else None
        try:
            type_filter = (
                OrderType.from_string(order_type)
                if isinstance(order_type, str)
                else order_type
            )
        except ValueError as e:
            raise RentalValidationError(str(e), field="order_type") from e

        try:
            items = await self.repository.list_items(
                status=status_filter, order_type=type_filter, limit=limit, offset=offset
            )
            totals = await self.repository.get_payment_totals([i.id for i in items])
        except RentalRepositoryError as e:
            raise RentalProcessingError("Failed to list rentals", **e.context) from e

        return [
            self._format_item(
                item,
                summarize_payments(
                    item.final_price,
                    item.downpayment,
                    [totals.get(item.id, Decimal("0"))],
                ),
            )
            for item in items
        ]

    async def get_payments(self, item_id: uuid.UUID) -> list[dict[str, Any]]:
        """Ledger entries of an order item, oldest first."""
        try:
            entries = await self.repository.get_payments(item_id)
        except RentalRepositoryError as e:
            raise RentalProcessingError("Failed to fetch payments", **e.context) from e
        return [self._format_payment(entry) for entry in entries]

    async def get_history(self, item_id: uuid.UUID) -> list[dict[str, Any]]:
        """Status history of an order item, oldest first. Kept after deletion."""
        try:
            entries = await self.repository.get_history(item_id)
        except RentalRepositoryError as e:
            raise RentalProcessingError("Failed to fetch history", **e.context) from e
        return [
            {
                "id": str(entry.id),
                "action": entry.action.value,
                "previous_status": entry.previous_status,
                "new_status": entry.new_status,
                "notes": entry.notes,
                "actor": entry.actor,
                "created_at": entry.created_at.isoformat(),
            }
            for entry in entries
        ]

    # Inventory

    async def create_inventory_item(
        self,
        name: str,
        rental_price: Any,
        category: Optional[str] = None,
    ) -> dict[str, Any]:
        if not (name or "").strip():
            raise RentalValidationError("Garment name is required", field="name")
        price = to_money(rental_price)
        if price < 0:
            raise RentalValidationError(
                "Rental price cannot be negative", field="rental_price"
            )

        try:
            item = await self.repository.create_inventory_item(
                name=name.strip(), rental_price=price, category=category
            )
            await self._commit(item.id)
        except RentalRepositoryError as e:
            await self.session.rollback()
            raise RentalProcessingError(
                "Failed to create inventory item", **e.context
            ) from e
        return item.to_dict()

    async def get_inventory_item(self, inventory_id: uuid.UUID) -> dict[str, Any]:
        item = await self.repository.get_inventory_item(inventory_id)
        if item is None:
            raise RentalNotFoundError(
                "Inventory item not found", inventory_item_id=str(inventory_id)
            )
        return item.to_dict()

    async def get_damage_records(self, inventory_id: uuid.UUID) -> list[dict[str, Any]]:
        await self.get_inventory_item(inventory_id)
        records = await self.repository.get_damage_records(inventory_id)
        return [record.to_dict() for record in records]

    # Helpers

    def _normalize_status(self, value: StatusInput) -> RentalStatus:
        try:
            return RentalStatus.normalize(value)
        except ValueError as e:
            raise RentalValidationError(str(e), field="status") from e

    async def _load_item(self, item_id: uuid.UUID) -> RentalOrderItem:
        try:
            return await self._get_item_or_raise(item_id)
        except RentalRepositoryError as e:
            raise RentalProcessingError("Failed to fetch rental", **e.context) from e

    async def _get_item_or_raise(
        self, item_id: uuid.UUID, for_update: bool = False
    ) -> RentalOrderItem:
        item = await self.repository.get_item(item_id, for_update=for_update)
        if item is None:
            raise RentalNotFoundError(
                "Rental order item not found",
                order_item_id=str(item_id),
            )
        return item

    async def _ledger_for(self, item: RentalOrderItem) -> LedgerSummary:
        amounts = await self.repository.get_payment_amounts(item.id)
        return summarize_payments(item.final_price, item.downpayment, amounts)

    async def _commit(self, entity_id: uuid.UUID) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            logger.warning(
                "Concurrent modification detected",
                entity_id=str(entity_id),
            )
            raise ConcurrentModificationError(
                "The rental was modified by another request, please retry",
                order_item_id=str(entity_id),
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to commit rental changes",
                entity_id=str(entity_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RentalProcessingError(
                "Failed to save rental changes",
                entity_id=str(entity_id),
                error=str(e),
            ) from e

    def _generate_order_number(self) -> str:
        timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        random_suffix = uuid.uuid4().hex[:6].upper()
        return f"RNT-{timestamp}-{random_suffix}"

    def _format_order(self, order: RentalOrder) -> dict[str, Any]:
        empty = Decimal("0")
        return {
            "id": str(order.id),
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "customer_id": order.customer_id,
            "items": [
                self._format_item(
                    item, summarize_payments(item.final_price, item.downpayment, [empty])
                )
                for item in order.items
            ],
            "created_at": order.created_at.isoformat(),
        }

    def _format_item(self, item: RentalOrderItem, ledger: LedgerSummary) -> dict[str, Any]:
        status = self.state_machine.current_status(item)
        order_type = OrderType(item.order_type)
        garments = garments_from_item(item.specific_data, item.inventory_item_id)
        next_status = get_next_status(order_type, status)
        data = item.specific_data

        return {
            "id": str(item.id),
            "order_id": str(item.order_id),
            "order_number": item.order.order_number if item.order else None,
            "customer_name": item.customer_name,
            "order_type": order_type.value,
            "status": status.value,
            "next_status": next_status.value if next_status else None,
            "allowed_transitions": sorted(
                s.value for s in get_allowed_transitions(order_type, status)
            ),
            "rental_start_date": (
                item.rental_start_date.isoformat() if item.rental_start_date else None
            ),
            "rental_end_date": (
                item.rental_end_date.isoformat() if item.rental_end_date else None
            ),
            "final_price": str(to_money(item.final_price)),
            "downpayment": str(ledger.downpayment),
            "amount_paid": str(ledger.amount_paid),
            "remaining_balance": str(ledger.remaining_balance),
            "payment_status": ledger.payment_status.value,
            "is_bundle": garments.is_bundle,
            "item_name": data.get("item_name"),
            "garments": [
                {
                    "name": g.name,
                    "inventory_item_id": (
                        str(g.inventory_item_id) if g.inventory_item_id else None
                    ),
                }
                for g in garments.garments
            ],
            "customer_notes": data.get("customer_notes"),
            "admin_notes": data.get("admin_notes"),
            "damage_notes": data.get("damage_notes"),
            "needs_review": bool(data.get("needs_review", False)),
            "pricing_factors": dict(item.pricing_factors),
            "penalty": _format_penalty(
                self.state_machine.assess_penalty(item, self._today())
            ),
            "version": item.version_id,
            "created_at": item.created_at.isoformat(),
            "updated_at": item.updated_at.isoformat(),
        }

    @staticmethod
    def _format_payment(entry: PaymentEntry) -> dict[str, Any]:
        return {
            "id": str(entry.id),
            "order_item_id": str(entry.order_item_id),
            "amount": str(to_money(entry.amount)),
            "payment_method": entry.payment_method,
            "notes": entry.notes,
            "remaining_balance": str(to_money(entry.remaining_balance)),
            "recorded_by": entry.recorded_by,
            "created_at": entry.created_at.isoformat(),
        }


def _format_penalty(assessment: PenaltyAssessment) -> dict[str, Any]:
    return {
        "classification": assessment.classification.value,
        "penalty_amount": str(to_money(assessment.penalty_amount)),
        "days_overdue": assessment.days_overdue,
        "days_remaining": assessment.days_remaining,
    }


def _parse_date(value: Any, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise RentalValidationError(f"Invalid date: {value}", field=field) from e
