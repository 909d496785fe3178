"""
Rental service exception hierarchy.

Every exception carries a human-readable message plus a context dict that
the API layer copies into the error response, so a caller can always tell
which precondition failed.
"""

from typing import Any, Optional

from tailorshop.services.rentals.enums import RefusalReason, RentalStatus


class RentalServiceError(Exception):
    """Base exception for rental service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class RentalValidationError(RentalServiceError):
    """Raised when user input is rejected before any state change.

    The field attribute names the offending input: ``reason``, ``amount``,
    ``damage`` or ``status``.
    """

    def __init__(self, message: str, field: str, **context: Any):
        super().__init__(message, field=field, **context)
        self.field = field


class TransitionRefusedError(RentalServiceError):
    """Raised when a business rule refuses a status transition."""

    def __init__(
        self,
        message: str,
        reason: RefusalReason,
        current_status: RentalStatus,
        target_status: RentalStatus,
        **context: Any,
    ):
        super().__init__(
            message,
            reason=reason.value,
            current_status=current_status.value,
            target_status=target_status.value,
            **context,
        )
        self.reason = reason
        self.current_status = current_status
        self.target_status = target_status

    @property
    def is_payment_required(self) -> bool:
        return self.reason == RefusalReason.PAYMENT_REQUIRED


class RentalNotFoundError(RentalServiceError):
    """Raised when a rental order item or inventory item does not exist."""

    pass


class DeletionNotAllowedError(RentalServiceError):
    """Raised when deleting an order item that is still in progress."""

    def __init__(self, message: str, status: Optional[RentalStatus] = None, **context: Any):
        super().__init__(
            message,
            status=status.value if status is not None else None,
            **context,
        )


class ConcurrentModificationError(RentalServiceError):
    """Raised when another request modified the order item first."""

    pass


class RentalProcessingError(RentalServiceError):
    """Raised when an operation fails for infrastructure reasons."""

    pass
