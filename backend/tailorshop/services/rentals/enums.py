"""Rental status and bookkeeping enums for the rental order lifecycle.

This module defines the canonical rental status enumeration together with the
single normalization step that maps legacy status spellings onto it, the
per-order-type transition tables, and the derived payment and penalty
classifications.
"""

from enum import Enum
from typing import Dict, Optional, Set, Tuple


class RentalStatus(str, Enum):
    """Rental order item lifecycle status.

    Valid transitions (online orders):
    - PENDING -> READY_TO_PICKUP, CANCELLED
    - READY_TO_PICKUP -> RENTED
    - RENTED -> RETURNED
    - RETURNED -> COMPLETED

    Walk-in orders skip the pickup step:
    - PENDING -> RENTED, CANCELLED

    COMPLETED and CANCELLED are terminal.
    """

    PENDING = "pending"
    READY_TO_PICKUP = "ready_to_pickup"
    RENTED = "rented"
    RETURNED = "returned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def normalize(cls, value: "str | RentalStatus | None") -> "RentalStatus":
        """Convert a status string, including legacy aliases, to RentalStatus.

        A missing status is treated as pending.

        Args:
            value: Status value as stored or submitted by a client

        Returns:
            Canonical RentalStatus

        Raises:
            ValueError: If value is neither a status nor a known alias
        """
        if value is None:
            return cls.PENDING
        if isinstance(value, cls):
            return value

        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if not key:
            return cls.PENDING
        if key in STATUS_ALIASES:
            return STATUS_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid rental status: {value}. "
                f"Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        """Check if status is a terminal state."""
        return self in TERMINAL_STATUSES

    def is_deletable(self) -> bool:
        """Check if an order item in this status may be hard deleted."""
        return self in (RentalStatus.COMPLETED, RentalStatus.CANCELLED)


STATUS_ALIASES: Dict[str, RentalStatus] = {
    "pending_review": RentalStatus.PENDING,
    "ready_for_pickup": RentalStatus.READY_TO_PICKUP,
    "accepted": RentalStatus.READY_TO_PICKUP,
    "picked_up": RentalStatus.RENTED,
}

TERMINAL_STATUSES: Set[RentalStatus] = {
    RentalStatus.COMPLETED,
    RentalStatus.CANCELLED,
}


class OrderType(str, Enum):
    """How the rental was placed."""

    ONLINE = "online"
    WALK_IN = "walk_in"

    @classmethod
    def from_string(cls, value: str) -> "OrderType":
        """Convert string to OrderType, accepting 'walk-in' spelling."""
        try:
            return cls(value.strip().lower().replace("-", "_"))
        except ValueError:
            valid_values = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Invalid order type: {value}. Valid values are: {valid_values}"
            )


class InventoryStatus(str, Enum):
    """Availability of a rentable garment."""

    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"


class PaymentStatus(str, Enum):
    """Payment progress derived from the ledger."""

    UNPAID = "unpaid"
    PARTIAL_PAYMENT = "partial_payment"
    DOWN_PAYMENT = "down_payment"
    FULLY_PAID = "fully_paid"


class PenaltyClassification(str, Enum):
    """Due-date standing of a rented item."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"
    NOT_APPLICABLE = "not_applicable"


class RefusalReason(str, Enum):
    """Business-rule reason a transition was refused."""

    PAYMENT_REQUIRED = "payment_required"
    INVALID_TRANSITION = "invalid_transition"


class HistoryAction(str, Enum):
    """Kind of entry recorded in the rental status history."""

    CREATED = "created"
    STATUS_UPDATE = "status_update"
    DECLINE = "decline"
    PAYMENT = "payment"
    NOTES_UPDATE = "notes_update"
    DAMAGE_REPORT = "damage_report"


# Valid status transitions per order type
RENTAL_TRANSITIONS: Dict[OrderType, Dict[RentalStatus, Set[RentalStatus]]] = {
    OrderType.ONLINE: {
        RentalStatus.PENDING: {RentalStatus.READY_TO_PICKUP, RentalStatus.CANCELLED},
        RentalStatus.READY_TO_PICKUP: {RentalStatus.RENTED},
        RentalStatus.RENTED: {RentalStatus.RETURNED},
        RentalStatus.RETURNED: {RentalStatus.COMPLETED},
        RentalStatus.COMPLETED: set(),
        RentalStatus.CANCELLED: set(),
    },
    OrderType.WALK_IN: {
        RentalStatus.PENDING: {RentalStatus.RENTED, RentalStatus.CANCELLED},
        RentalStatus.READY_TO_PICKUP: {RentalStatus.RENTED},
        RentalStatus.RENTED: {RentalStatus.RETURNED},
        RentalStatus.RETURNED: {RentalStatus.COMPLETED},
        RentalStatus.COMPLETED: set(),
        RentalStatus.CANCELLED: set(),
    },
}

# Forward step offered to staff for each (order type, status)
NEXT_STATUS: Dict[Tuple[OrderType, RentalStatus], RentalStatus] = {
    (OrderType.ONLINE, RentalStatus.PENDING): RentalStatus.READY_TO_PICKUP,
    (OrderType.ONLINE, RentalStatus.READY_TO_PICKUP): RentalStatus.RENTED,
    (OrderType.ONLINE, RentalStatus.RENTED): RentalStatus.RETURNED,
    (OrderType.ONLINE, RentalStatus.RETURNED): RentalStatus.COMPLETED,
    (OrderType.WALK_IN, RentalStatus.PENDING): RentalStatus.RENTED,
    (OrderType.WALK_IN, RentalStatus.READY_TO_PICKUP): RentalStatus.RENTED,
    (OrderType.WALK_IN, RentalStatus.RENTED): RentalStatus.RETURNED,
    (OrderType.WALK_IN, RentalStatus.RETURNED): RentalStatus.COMPLETED,
}


def get_allowed_transitions(
    order_type: OrderType, current: RentalStatus
) -> Set[RentalStatus]:
    """Get statuses reachable in one step from current status.

    Args:
        order_type: Order type of the rental
        current: Current status

    Returns:
        Set of allowed target statuses
    """
    return set(RENTAL_TRANSITIONS[order_type].get(current, set()))


def validate_transition(
    order_type: OrderType, current: RentalStatus, target: RentalStatus
) -> bool:
    """Check whether current -> target is in the transition table."""
    return target in RENTAL_TRANSITIONS[order_type].get(current, set())


def get_next_status(
    order_type: OrderType, current: RentalStatus
) -> Optional[RentalStatus]:
    """Look up the forward step staff would take next, if any."""
    return NEXT_STATUS.get((order_type, current))
