"""
Overdue rental monitoring.

Periodically scans rented items past their due date and logs the penalty
accrued so far. Notifying customers is left to external services that
consume these log events.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tailorshop.core.logging import get_logger
from tailorshop.services.rentals.penalty import assess_penalty
from tailorshop.services.rentals.repository import RentalRepository

logger = get_logger(__name__)


async def scan_overdue_rentals(
    session: AsyncSession,
    today: date,
    daily_rate: Decimal,
) -> list[dict[str, Any]]:
    """
    Report every rented item that is past its due date.

    Args:
        session: Async database session
        today: Evaluation day
        daily_rate: Penalty charged per overdue day

    Returns:
        One entry per overdue item with its days overdue and current penalty
    """
    repository = RentalRepository(session)
    items = await repository.list_overdue(today)

    overdue = []
    for item in items:
        assessment = assess_penalty(item.rental_end_date, today, daily_rate)
        entry = {
            "order_item_id": str(item.id),
            "customer_name": item.customer_name,
            "item_name": item.specific_data.get("item_name"),
            "due_date": item.rental_end_date.isoformat(),
            "days_overdue": assessment.days_overdue,
            "penalty_amount": str(assessment.penalty_amount),
        }
        overdue.append(entry)
        logger.warning("Rental overdue", **entry)

    logger.info("Overdue rental scan completed", overdue_count=len(overdue))
    return overdue
