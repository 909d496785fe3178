"""
Rental order lifecycle.

Status state machine, payment ledger, late-return penalties and the
per-garment inventory fan-out performed when a rental is returned.
"""

from tailorshop.services.rentals.enums import (
    OrderType,
    PaymentStatus,
    PenaltyClassification,
    RefusalReason,
    RentalStatus,
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

__all__ = [
    "ConcurrentModificationError",
    "DeletionNotAllowedError",
    "OrderType",
    "PaymentStatus",
    "PenaltyClassification",
    "RefusalReason",
    "RentalNotFoundError",
    "RentalProcessingError",
    "RentalServiceError",
    "RentalStatus",
    "RentalValidationError",
    "TransitionRefusedError",
]
