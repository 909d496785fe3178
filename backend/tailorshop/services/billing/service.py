"""
Billing statistics over rental order items.

A read-only projection: payment totals come from the ledger, statuses from
the rental lifecycle. Cancelled items are excluded.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tailorshop.core.logging import get_logger
from tailorshop.services.rentals.enums import PaymentStatus
from tailorshop.services.rentals.exceptions import RentalProcessingError
from tailorshop.services.rentals.ledger import LedgerSummary, summarize_payments
from tailorshop.services.rentals.repository import (
    RentalRepository,
    RentalRepositoryError,
)

logger = get_logger(__name__)


def build_billing_statistics(summaries: Iterable[LedgerSummary]) -> dict[str, Any]:
    """
    Aggregate ledger summaries into billing statistics.

    Args:
        summaries: One summary per non-cancelled order item

    Returns:
        Dictionary with record counts per payment state, total revenue
        collected and revenue still pending
    """
    total = 0
    paid = 0
    down_payment = 0
    unpaid = 0
    total_revenue = Decimal("0")
    pending_revenue = Decimal("0")

    for summary in summaries:
        total += 1
        total_revenue += summary.amount_paid
        pending_revenue += summary.remaining_balance

        status = summary.payment_status
        if status == PaymentStatus.FULLY_PAID:
            paid += 1
        elif status == PaymentStatus.UNPAID:
            unpaid += 1
        else:
            down_payment += 1

    return {
        "total": total,
        "paid": paid,
        "down_payment": down_payment,
        "unpaid": unpaid,
        "total_revenue": str(total_revenue),
        "pending_revenue": str(pending_revenue),
    }


class BillingService:
    """Billing statistics for the admin console."""

    def __init__(
        self, session: AsyncSession, today: Optional[Callable[[], date]] = None
    ):
        self.repository = RentalRepository(session)
        self._today = today or date.today

    async def get_statistics(self) -> dict[str, Any]:
        """
        Compute billing statistics for all non-cancelled rentals.

        Raises:
            RentalProcessingError: If the store fails
        """
        try:
            items = await self.repository.list_billable_items()
            totals = await self.repository.get_payment_totals([i.id for i in items])
            overdue = await self.repository.count_overdue(self._today())
        except RentalRepositoryError as e:
            logger.error("Failed to compute billing statistics", error=str(e))
            raise RentalProcessingError(
                "Failed to compute billing statistics", **e.context
            ) from e

        statistics = build_billing_statistics(
            summarize_payments(
                item.final_price,
                item.downpayment,
                [totals.get(item.id, Decimal("0"))],
            )
            for item in items
        )
        statistics["overdue"] = overdue

        logger.debug("Billing statistics computed", **statistics)
        return statistics
