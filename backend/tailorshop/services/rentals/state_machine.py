"""Rental order item state machine.

This module implements the RentalStateMachine that decides whether a rental
order item may move to a target status and applies the in-memory effects of
the move. It performs no I/O: payment sufficiency and penalties are computed
from a ledger summary and a date handed in by the caller, and persistence is
left to the service layer.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from tailorshop.core.logging import get_logger
from tailorshop.database.models.rental import RentalOrderItem
from tailorshop.services.rentals.enums import (
    OrderType,
    RefusalReason,
    RentalStatus,
    get_allowed_transitions,
    validate_transition,
)
from tailorshop.services.rentals.exceptions import (
    RentalValidationError,
    TransitionRefusedError,
)
from tailorshop.services.rentals.fanout import (
    GarmentReturn,
    garments_from_item,
    merge_damage,
    resolve_damage,
    serialize_damage_notes,
)
from tailorshop.services.rentals.ledger import LedgerSummary, to_money
from tailorshop.services.rentals.penalty import (
    DEFAULT_DAILY_RATE,
    DEFAULT_DUE_SOON_DAYS,
    NOT_APPLICABLE,
    PenaltyAssessment,
    assess_for_status,
)

logger = get_logger(__name__)

DECLINE_PREFIX = "Declined: "


@dataclass
class TransitionRequest:
    """Everything a transition decision depends on."""

    target: RentalStatus
    ledger: LedgerSummary
    today: date
    reason: Optional[str] = None
    damage_by_item: Optional[Mapping[str, Optional[str]]] = None


@dataclass
class TransitionResult:
    """Outcome of applying a transition to an order item.

    Attributes:
        previous_status: Status before the transition
        new_status: Status after the transition
        changed: False when the item already was in the target status
        penalty: Penalty realized by a return, if any
        garment_returns: Per-garment outcomes to push to the inventory
        note: Human-readable history note
    """

    previous_status: RentalStatus
    new_status: RentalStatus
    changed: bool = True
    penalty: PenaltyAssessment = NOT_APPLICABLE
    garment_returns: list[GarmentReturn] = field(default_factory=list)
    note: Optional[str] = None


class RentalStateMachine:
    """State machine for the rental order item lifecycle.

    Guards are keyed by (current, target) and raise TransitionRefusedError
    when a business rule blocks the move. Side effects are keyed by target
    status and mutate the order item in memory.
    """

    def __init__(
        self,
        penalty_daily_rate: Decimal = DEFAULT_DAILY_RATE,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ):
        self.penalty_daily_rate = Decimal(penalty_daily_rate)
        self.due_soon_days = due_soon_days
        self._transition_guards: Dict[
            tuple[RentalStatus, RentalStatus],
            Callable[[RentalOrderItem, TransitionRequest], None],
        ] = self._initialize_guards()
        self._side_effects: Dict[
            RentalStatus,
            Callable[[RentalOrderItem, TransitionRequest, TransitionResult], None],
        ] = self._initialize_side_effects()

    def _initialize_guards(self):
        return {
            (RentalStatus.READY_TO_PICKUP, RentalStatus.RENTED): self._guard_downpayment,
            (RentalStatus.PENDING, RentalStatus.RENTED): self._guard_downpayment,
            (RentalStatus.RENTED, RentalStatus.RETURNED): self._guard_full_payment,
        }

    def _initialize_side_effects(self):
        return {
            RentalStatus.CANCELLED: self._effect_declined,
            RentalStatus.RETURNED: self._effect_returned,
        }

    def current_status(self, item: RentalOrderItem) -> RentalStatus:
        return RentalStatus.normalize(item.approval_status)

    def assess_penalty(self, item: RentalOrderItem, today: date) -> PenaltyAssessment:
        """Advisory penalty for the item as of today."""
        return assess_for_status(
            self.current_status(item),
            item.rental_end_date,
            today,
            daily_rate=self.penalty_daily_rate,
            due_soon_days=self.due_soon_days,
        )

    def payable_total(self, item: RentalOrderItem, today: date) -> Decimal:
        """Price plus the advisory penalty while the garment is out."""
        return to_money(item.final_price) + self.assess_penalty(item, today).penalty_amount

    def validate_request(self, item: RentalOrderItem, request: TransitionRequest) -> None:
        """Reject malformed input before any rule is evaluated.

        Raises:
            RentalValidationError: If a decline has no reason or reported
                damage does not match the garments of the item
        """
        if request.target == RentalStatus.CANCELLED:
            if not (request.reason or "").strip():
                raise RentalValidationError(
                    "A reason is required to decline a rental",
                    field="reason",
                    order_item_id=str(item.id),
                )

        if request.target == RentalStatus.RETURNED:
            garments = garments_from_item(item.specific_data, item.inventory_item_id)
            resolve_damage(garments, request.damage_by_item)

    def check_transition(self, item: RentalOrderItem, request: TransitionRequest) -> bool:
        """Validate a transition without applying it.

        Returns:
            False when the item already is in the target status, True when
            the transition is allowed

        Raises:
            RentalValidationError: If the request input is invalid
            TransitionRefusedError: If the transition is not allowed
        """
        current = self.current_status(item)
        target = request.target
        if current == target:
            return False

        self.validate_request(item, request)

        order_type = OrderType(item.order_type)
        if not validate_transition(order_type, current, target):
            allowed = get_allowed_transitions(order_type, current)
            raise TransitionRefusedError(
                f"Cannot move a rental from {current.value} to {target.value}",
                reason=RefusalReason.INVALID_TRANSITION,
                current_status=current,
                target_status=target,
                allowed_transitions=sorted(s.value for s in allowed),
            )

        guard = self._transition_guards.get((current, target))
        if guard is not None:
            guard(item, request)

        return True

    def apply(self, item: RentalOrderItem, request: TransitionRequest) -> TransitionResult:
        """Validate and apply a transition to the item in memory.

        Re-requesting the current status is a successful no-op. Re-requesting
        returned with damage records that damage without changing status.

        Raises:
            RentalValidationError: If the request input is invalid
            TransitionRefusedError: If the transition is not allowed
        """
        previous = self.current_status(item)

        if not self.check_transition(item, request):
            result = TransitionResult(
                previous_status=previous,
                new_status=previous,
                changed=False,
            )
            if previous == RentalStatus.RETURNED and request.damage_by_item:
                result.garment_returns = self.capture_damage(item, request.damage_by_item)
                result.note = describe_damage(result.garment_returns)
            if not result.garment_returns:
                logger.info(
                    "Rental already in requested status",
                    order_item_id=str(item.id),
                    status=previous.value,
                )
            return result

        item.approval_status = request.target
        result = TransitionResult(previous_status=previous, new_status=request.target)

        side_effect = self._side_effects.get(request.target)
        if side_effect is not None:
            side_effect(item, request, result)

        if result.note is None:
            result.note = (
                f"Status changed from {previous.value} to {request.target.value}"
            )

        logger.info(
            "Rental transition applied",
            order_item_id=str(item.id),
            transition=f"{previous.value}->{request.target.value}",
        )
        return result

    def capture_damage(
        self, item: RentalOrderItem, damage_by_item: Mapping[str, Optional[str]]
    ) -> list[GarmentReturn]:
        """Record reported damage on a rented or returned item without moving it.

        Damage already recorded with the same description is not reported
        again, so retries stay idempotent.

        Returns:
            Outcomes of the garments whose damage is new or changed

        Raises:
            RentalValidationError: If reported damage does not match the garments
            TransitionRefusedError: If the garment is not rented or returned
        """
        current = self.current_status(item)
        if current not in (RentalStatus.RENTED, RentalStatus.RETURNED):
            raise TransitionRefusedError(
                "Damage can only be recorded on rented or returned garments",
                reason=RefusalReason.INVALID_TRANSITION,
                current_status=current,
                target_status=RentalStatus.RETURNED,
            )

        garments = garments_from_item(item.specific_data, item.inventory_item_id)
        merged, fresh = merge_damage(
            garments, item.specific_data.get("damage_notes"), damage_by_item
        )
        if fresh:
            item.update_specific_data(
                damage_notes=serialize_damage_notes(garments, merged)
            )
            logger.info(
                "Rental damage recorded",
                order_item_id=str(item.id),
                status=current.value,
                garments=[o.garment.name for o in fresh],
            )
        return fresh

    # Transition Guards

    def _guard_downpayment(self, item: RentalOrderItem, request: TransitionRequest) -> None:
        if OrderType(item.order_type) == OrderType.WALK_IN:
            return

        required = to_money(item.downpayment)
        if request.ledger.covers(required):
            return

        current = self.current_status(item)
        logger.info(
            "Downpayment required before pickup",
            order_item_id=str(item.id),
            required_amount=str(required),
            amount_paid=str(request.ledger.amount_paid),
        )
        raise TransitionRefusedError(
            "Downpayment must be paid before the rental is picked up",
            reason=RefusalReason.PAYMENT_REQUIRED,
            current_status=current,
            target_status=request.target,
            stage="pickup",
            required_amount=str(required),
            amount_paid=str(request.ledger.amount_paid),
            shortfall=str(required - request.ledger.amount_paid),
        )

    def _guard_full_payment(self, item: RentalOrderItem, request: TransitionRequest) -> None:
        penalty = self.assess_penalty(item, request.today)
        required = to_money(item.final_price) + penalty.penalty_amount
        if request.ledger.covers(required):
            return

        logger.info(
            "Full payment required before return",
            order_item_id=str(item.id),
            required_amount=str(required),
            amount_paid=str(request.ledger.amount_paid),
            penalty_amount=str(penalty.penalty_amount),
        )
        raise TransitionRefusedError(
            "Remaining balance must be paid before the rental is returned",
            reason=RefusalReason.PAYMENT_REQUIRED,
            current_status=self.current_status(item),
            target_status=request.target,
            stage="return",
            required_amount=str(required),
            amount_paid=str(request.ledger.amount_paid),
            shortfall=str(required - request.ledger.amount_paid),
            penalty_amount=str(penalty.penalty_amount),
            penalty_days=penalty.days_overdue,
        )

    # Side Effects

    def _effect_declined(
        self, item: RentalOrderItem, request: TransitionRequest, result: TransitionResult
    ) -> None:
        note = f"{DECLINE_PREFIX}{request.reason.strip()}"
        item.update_specific_data(admin_notes=note)
        result.note = note

    def _effect_returned(
        self, item: RentalOrderItem, request: TransitionRequest, result: TransitionResult
    ) -> None:
        penalty = assess_for_status(
            RentalStatus.RENTED,
            item.rental_end_date,
            request.today,
            daily_rate=self.penalty_daily_rate,
            due_soon_days=self.due_soon_days,
        )
        garments = garments_from_item(item.specific_data, item.inventory_item_id)
        merged, fresh = merge_damage(
            garments, item.specific_data.get("damage_notes"), request.damage_by_item
        )

        item.update_pricing_factors(
            penalty=str(penalty.penalty_amount),
            penaltyDays=penalty.days_overdue,
            penaltyAppliedDate=request.today.isoformat(),
        )
        if penalty.penalty_amount > 0:
            item.final_price = to_money(item.final_price) + penalty.penalty_amount
            result.note = (
                f"Penalty: {penalty.penalty_amount.normalize():f} "
                f"({penalty.days_overdue} day{'s' if penalty.days_overdue != 1 else ''})"
            )

        item.update_specific_data(damage_notes=serialize_damage_notes(garments, merged))
        result.penalty = penalty
        # garments whose damage was recorded before the return are already in maintenance
        result.garment_returns = [o for o in merged if not o.is_damaged or o in fresh]


def describe_damage(outcomes: list[GarmentReturn]) -> Optional[str]:
    """History note for damage recorded outside a status change."""
    damaged = [o for o in outcomes if o.is_damaged]
    if not damaged:
        return None
    return "Damage recorded: " + "; ".join(
        f"{o.garment.name}: {o.damage_description}" for o in damaged
    )


def describe_transition(result: TransitionResult) -> dict[str, Any]:
    """Summary of a transition result for API responses."""
    return {
        "previous_status": result.previous_status.value,
        "new_status": result.new_status.value,
        "changed": result.changed,
        "penalty_amount": str(result.penalty.penalty_amount),
        "penalty_days": result.penalty.days_overdue,
        "damaged_garments": [
            o.garment.name for o in result.garment_returns if o.is_damaged
        ],
    }
