"""
Payment ledger arithmetic.

The ledger itself is the rental_payments table; this module holds the pure
functions that turn its entries into amount paid, remaining balance and a
payment status. Amount paid is never stored anywhere else.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from tailorshop.services.rentals.enums import PaymentStatus
from tailorshop.services.rentals.exceptions import RentalValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Convert a numeric or string amount to a two-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_downpayment(final_price: Decimal, ratio: Decimal) -> Decimal:
    """Downpayment owed before pickup: ratio of the final price."""
    return to_money(Decimal(final_price) * Decimal(ratio))


def validate_payment_amount(amount: Any) -> Decimal:
    """
    Validate a payment amount submitted by staff.

    Args:
        amount: Submitted amount

    Returns:
        Amount as a two-place Decimal

    Raises:
        RentalValidationError: If the amount is not a positive number
    """
    try:
        value = to_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise RentalValidationError(
            "Payment amount must be a number",
            field="amount",
            amount=str(amount),
        )

    if not value.is_finite() or value <= ZERO:
        raise RentalValidationError(
            "Payment amount must be greater than zero",
            field="amount",
            amount=str(amount),
        )
    return value


def derive_payment_status(
    amount_paid: Decimal, downpayment: Decimal, final_price: Decimal
) -> PaymentStatus:
    """Label payment progress from the ledger totals."""
    if amount_paid <= ZERO:
        return PaymentStatus.UNPAID
    if amount_paid >= final_price:
        return PaymentStatus.FULLY_PAID
    if amount_paid >= downpayment:
        return PaymentStatus.DOWN_PAYMENT
    return PaymentStatus.PARTIAL_PAYMENT


@dataclass(frozen=True)
class LedgerSummary:
    """
    Totals derived from the ledger for one order item.

    Attributes:
        final_price: Price the ledger is reconciled against
        downpayment: Minimum payment before pickup
        amount_paid: Sum of all ledger entries
        entry_count: Number of ledger entries
    """

    final_price: Decimal
    downpayment: Decimal
    amount_paid: Decimal
    entry_count: int = 0

    @property
    def raw_balance(self) -> Decimal:
        """Signed balance; negative means over-payment."""
        return self.final_price - self.amount_paid

    @property
    def remaining_balance(self) -> Decimal:
        return max(ZERO, self.raw_balance)

    @property
    def is_fully_paid(self) -> bool:
        return self.raw_balance <= ZERO

    @property
    def payment_status(self) -> PaymentStatus:
        return derive_payment_status(
            self.amount_paid, self.downpayment, self.final_price
        )

    def covers(self, required: Decimal) -> bool:
        return self.amount_paid >= required

    def with_payment(self, amount: Decimal) -> "LedgerSummary":
        """Summary as it will read once amount is appended."""
        return LedgerSummary(
            final_price=self.final_price,
            downpayment=self.downpayment,
            amount_paid=self.amount_paid + amount,
            entry_count=self.entry_count + 1,
        )


def summarize_payments(
    final_price: Decimal, downpayment: Decimal, amounts: Iterable[Decimal]
) -> LedgerSummary:
    """
    Reconcile ledger entries against a price.

    Args:
        final_price: Price the ledger is reconciled against
        downpayment: Minimum payment before pickup
        amounts: Amounts of every ledger entry

    Returns:
        LedgerSummary with amount_paid equal to the sum of amounts
    """
    total = ZERO
    count = 0
    for amount in amounts:
        total += Decimal(amount)
        count += 1
    return LedgerSummary(
        final_price=to_money(final_price),
        downpayment=to_money(downpayment),
        amount_paid=to_money(total),
        entry_count=count,
    )
