"""
Tests for billing statistics over rental order items.
"""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tailorshop.services.billing.service import BillingService, build_billing_statistics
from tailorshop.services.rentals.exceptions import RentalProcessingError
from tailorshop.services.rentals.ledger import summarize_payments
from tailorshop.services.rentals.repository import RentalRepositoryError


class TestBuildBillingStatistics:
    def test_counts_and_revenue(self) -> None:
        price, down = Decimal("1000"), Decimal("500")
        summaries = [
            summarize_payments(price, down, [Decimal("1000")]),
            summarize_payments(price, down, [Decimal("500")]),
            summarize_payments(price, down, [Decimal("100")]),
            summarize_payments(price, down, []),
        ]

        stats = build_billing_statistics(summaries)

        assert stats == {
            "total": 4,
            "paid": 1,
            "down_payment": 2,
            "unpaid": 1,
            "total_revenue": "1600.00",
            "pending_revenue": "2400.00",
        }

    def test_empty(self) -> None:
        stats = build_billing_statistics([])
        assert stats["total"] == 0
        assert Decimal(stats["total_revenue"]) == 0


class TestBillingService:
    async def test_cancelled_items_excluded(
        self, rental_service, db_session, garments, checkout
    ) -> None:
        kept = await checkout(rental_service, garments["gown"])
        dropped = await checkout(rental_service, garments["barong"])
        await rental_service.record_payment(uuid.UUID(kept["id"]), "500")
        await rental_service.record_payment(uuid.UUID(dropped["id"]), "100")
        await rental_service.decline_order(uuid.UUID(dropped["id"]), "Duplicate order")

        stats = await BillingService(db_session, today=lambda: date(2024, 3, 10)).get_statistics()

        assert stats["total"] == 1
        assert stats["down_payment"] == 1
        assert stats["total_revenue"] == "500.00"
        assert stats["pending_revenue"] == "500.00"
        assert stats["overdue"] == 0

    async def test_overdue_count(
        self, rental_service, db_session, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"], end=date(2024, 3, 8))
        item_id = uuid.UUID(item["id"])
        await rental_service.accept_order(item_id)
        await rental_service.record_payment(item_id, "500")
        await rental_service.advance_status(item_id, "rented")

        service = BillingService(db_session, today=lambda: date(2024, 3, 10))
        assert (await service.get_statistics())["overdue"] == 1

        on_time = BillingService(db_session, today=lambda: date(2024, 3, 8))
        assert (await on_time.get_statistics())["overdue"] == 0

    async def test_store_failure(self) -> None:
        service = BillingService(MagicMock())
        service.repository.list_billable_items = AsyncMock(
            side_effect=RentalRepositoryError("Failed to list billable rental items")
        )

        with pytest.raises(RentalProcessingError):
            await service.get_statistics()
