"""
Tests for payment ledger arithmetic.
"""

from decimal import Decimal

import pytest

from tailorshop.services.rentals.enums import PaymentStatus
from tailorshop.services.rentals.exceptions import RentalValidationError
from tailorshop.services.rentals.ledger import (
    compute_downpayment,
    derive_payment_status,
    summarize_payments,
    to_money,
    validate_payment_amount,
)


class TestMoney:
    def test_rounds_half_up_to_cents(self) -> None:
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(3) == Decimal("3.00")

    def test_downpayment_is_ratio_of_price(self) -> None:
        assert compute_downpayment(Decimal("1000"), Decimal("0.5")) == Decimal("500.00")
        assert compute_downpayment(Decimal("333.33"), Decimal("0.5")) == Decimal("166.67")


class TestValidatePaymentAmount:
    @pytest.mark.parametrize("amount", [0, "0", -5, "-0.01"])
    def test_rejects_non_positive(self, amount) -> None:
        with pytest.raises(RentalValidationError) as exc_info:
            validate_payment_amount(amount)
        assert exc_info.value.field == "amount"

    @pytest.mark.parametrize("amount", ["abc", None, "NaN"])
    def test_rejects_non_numbers(self, amount) -> None:
        with pytest.raises(RentalValidationError) as exc_info:
            validate_payment_amount(amount)
        assert exc_info.value.context["field"] == "amount"

    def test_accepts_strings(self) -> None:
        assert validate_payment_amount("400") == Decimal("400.00")


class TestPaymentStatus:
    @pytest.mark.parametrize(
        "paid,expected",
        [
            ("0", PaymentStatus.UNPAID),
            ("100", PaymentStatus.PARTIAL_PAYMENT),
            ("500", PaymentStatus.DOWN_PAYMENT),
            ("999.99", PaymentStatus.DOWN_PAYMENT),
            ("1000", PaymentStatus.FULLY_PAID),
        ],
    )
    def test_derived_from_totals(self, paid: str, expected: PaymentStatus) -> None:
        assert (
            derive_payment_status(Decimal(paid), Decimal("500"), Decimal("1000"))
            is expected
        )


class TestSummarizePayments:
    def test_amount_paid_is_sum_of_entries(self) -> None:
        summary = summarize_payments(
            Decimal("1000"), Decimal("500"), [Decimal("400"), Decimal("100"), Decimal("250.50")]
        )

        assert summary.amount_paid == Decimal("750.50")
        assert summary.entry_count == 3
        assert summary.remaining_balance == Decimal("249.50")
        assert summary.payment_status is PaymentStatus.DOWN_PAYMENT
        assert not summary.is_fully_paid

    def test_empty_ledger(self) -> None:
        summary = summarize_payments(Decimal("1000"), Decimal("500"), [])

        assert summary.amount_paid == Decimal("0.00")
        assert summary.remaining_balance == Decimal("1000.00")
        assert summary.payment_status is PaymentStatus.UNPAID

    def test_remaining_balance_never_negative(self) -> None:
        summary = summarize_payments(Decimal("1000"), Decimal("500"), [Decimal("1200")])

        assert summary.raw_balance == Decimal("-200.00")
        assert summary.remaining_balance == Decimal("0")
        assert summary.is_fully_paid

    def test_with_payment_does_not_mutate(self) -> None:
        summary = summarize_payments(Decimal("1000"), Decimal("500"), [Decimal("400")])
        updated = summary.with_payment(Decimal("100"))

        assert summary.amount_paid == Decimal("400.00")
        assert updated.amount_paid == Decimal("500.00")
        assert updated.entry_count == 2
        assert updated.covers(Decimal("500"))
        assert not summary.covers(Decimal("500"))
