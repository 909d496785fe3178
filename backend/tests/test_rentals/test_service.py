"""
Test suite for RentalService business logic.

Runs the service against a per-test SQLite database: checkout, the payment
gates on pickup and return, penalties, bundle returns with their inventory
fan-out, idempotent re-requests, deletion and the audit trail.
"""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tailorshop.database.models import InventoryItem
from tailorshop.services.rentals.enums import InventoryStatus, RentalStatus
from tailorshop.services.rentals.exceptions import (
    ConcurrentModificationError,
    DeletionNotAllowedError,
    RentalNotFoundError,
    RentalValidationError,
    TransitionRefusedError,
)
from tailorshop.services.rentals.fanout import InventoryStore, InventorySyncError
from tailorshop.services.rentals.service import RentalService

OVERDUE_END = date(2024, 3, 8)


async def rent_out(service: RentalService, item_id, paid: str = "500") -> None:
    """Accept, pay and pick up an online rental."""
    await service.accept_order(item_id)
    await service.record_payment(item_id, paid)
    await service.advance_status(item_id, RentalStatus.RENTED)


# ============================================================================
# Checkout Tests
# ============================================================================


class TestCreateRentalOrder:
    async def test_single_garment(self, rental_service, garments) -> None:
        order = await rental_service.create_rental_order(
            customer_name="  Maria Santos ",
            customer_id="cust-1",
            lines=[
                {
                    "inventory_item_ids": [garments["gown"].id],
                    "rental_start_date": "2024-03-01",
                    "rental_end_date": "2024-03-12",
                    "customer_notes": "Hem 2 inches",
                }
            ],
        )

        assert order["order_number"].startswith("RNT-")
        assert order["customer_name"] == "Maria Santos"
        item = order["items"][0]
        assert item["status"] == "pending"
        assert item["order_type"] == "online"
        assert item["next_status"] == "ready_to_pickup"
        assert item["final_price"] == "1000.00"
        assert item["downpayment"] == "500.00"
        assert item["amount_paid"] == "0.00"
        assert item["payment_status"] == "unpaid"
        assert item["is_bundle"] is False
        assert item["item_name"] == "Evening Gown"
        assert item["customer_notes"] == "Hem 2 inches"
        assert item["garments"] == [
            {"name": "Evening Gown", "inventory_item_id": str(garments["gown"].id)}
        ]

        history = await rental_service.get_history(uuid.UUID(item["id"]))
        assert [h["action"] for h in history] == ["created"]

    async def test_bundle_priced_as_sum(self, rental_service, garments, checkout) -> None:
        item = await checkout(
            rental_service, garments["barong"], garments["vest"], garments["slacks"]
        )

        assert item["is_bundle"] is True
        assert item["item_name"] == "Barong, Vest, Slacks"
        assert item["final_price"] == "600.00"
        assert item["downpayment"] == "300.00"
        assert [g["name"] for g in item["garments"]] == ["Barong", "Vest", "Slacks"]

    async def test_one_item_per_line(self, rental_service, garments) -> None:
        order = await rental_service.create_rental_order(
            customer_name="Juan",
            lines=[
                {"inventory_item_ids": [garments["gown"].id]},
                {"inventory_item_ids": [garments["barong"].id, garments["vest"].id]},
            ],
        )
        assert [i["is_bundle"] for i in order["items"]] == [False, True]

    @pytest.mark.parametrize("name", ["", "   "])
    async def test_customer_name_required(self, rental_service, garments, name) -> None:
        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.create_rental_order(
                customer_name=name,
                lines=[{"inventory_item_ids": [garments["gown"].id]}],
            )
        assert exc_info.value.field == "customer_name"

    async def test_unknown_garment(self, rental_service, garments) -> None:
        with pytest.raises(RentalNotFoundError):
            await rental_service.create_rental_order(
                customer_name="Juan",
                lines=[{"inventory_item_ids": [uuid.uuid4()]}],
            )

    async def test_garment_in_maintenance(self, rental_service, session_factory) -> None:
        async with session_factory() as session:
            broken = InventoryItem(
                name="Torn Suit", rental_price=500, status=InventoryStatus.MAINTENANCE
            )
            session.add(broken)
            await session.commit()

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.create_rental_order(
                customer_name="Juan",
                lines=[{"inventory_item_ids": [broken.id]}],
            )
        assert exc_info.value.field == "inventory_item_ids"

    async def test_end_before_start(self, rental_service, garments, checkout) -> None:
        with pytest.raises(RentalValidationError) as exc_info:
            await checkout(
                rental_service,
                garments["gown"],
                start=date(2024, 3, 10),
                end=date(2024, 3, 1),
            )
        assert exc_info.value.field == "rental_period"

    async def test_duplicate_garment_in_bundle(self, rental_service, garments, checkout) -> None:
        with pytest.raises(RentalValidationError):
            await checkout(rental_service, garments["vest"], garments["vest"])


# ============================================================================
# Payment Gate Tests
# ============================================================================


class TestPickupGate:
    async def test_downpayment_gate(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        accepted = await rental_service.accept_order(item_id)
        assert accepted["order_item"]["status"] == "ready_to_pickup"

        await rental_service.record_payment(item_id, "400")
        with pytest.raises(TransitionRefusedError) as exc_info:
            await rental_service.advance_status(item_id, "rented")

        error = exc_info.value
        assert error.context["reason"] == "payment_required"
        assert error.context["required_amount"] == "500.00"
        assert error.context["amount_paid"] == "400.00"
        unchanged = await rental_service.get_order_item(item_id)
        assert unchanged["status"] == "ready_to_pickup"

        await rental_service.record_payment(item_id, "100")
        result = await rental_service.advance_status(item_id, "picked_up")

        assert result["transition"]["previous_status"] == "ready_to_pickup"
        assert result["order_item"]["status"] == "rented"
        assert result["order_item"]["payment_status"] == "down_payment"
        assert result["warnings"] == []

    async def test_payment_then_advance(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rental_service.accept_order(item_id)

        first = await rental_service.record_payment(
            item_id, "400", then_advance_to="ready_for_pickup"
        )
        assert first["transition"]["changed"] is False

        refused = await rental_service.record_payment(item_id, "50", then_advance_to="rented")
        assert refused["amount_paid"] == "450.00"
        assert refused["transition"] is None
        assert refused["transition_error"]["reason"] == "payment_required"

        paid = await rental_service.record_payment(item_id, "50", then_advance_to="rented")
        assert paid["transition"]["new_status"] == "rented"
        assert len(await rental_service.get_payments(item_id)) == 3

    async def test_walk_in_goes_straight_to_rented(
        self, rental_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"], order_type="walk-in")
        assert item["next_status"] == "rented"

        result = await rental_service.accept_order(uuid.UUID(item["id"]))

        assert result["transition"]["previous_status"] == "pending"
        assert result["order_item"]["status"] == "rented"
        assert result["order_item"]["amount_paid"] == "0.00"


class TestReturnGate:
    async def test_overdue_return_requires_penalty(
        self, rental_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"], end=OVERDUE_END)
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id)
        await rental_service.record_payment(item_id, "500")

        penalty = await rental_service.compute_penalty(item_id)
        assert penalty["classification"] == "overdue"
        assert penalty["penalty_amount"] == "200.00"
        assert penalty["days_overdue"] == 2

        with pytest.raises(TransitionRefusedError) as exc_info:
            await rental_service.advance_status(item_id, "returned")
        assert exc_info.value.context["required_amount"] == "1200.00"
        assert exc_info.value.context["penalty_days"] == 2

        await rental_service.record_payment(item_id, "200")
        result = await rental_service.advance_status(item_id, "returned")

        returned = result["order_item"]
        assert returned["status"] == "returned"
        assert returned["final_price"] == "1200.00"
        assert returned["remaining_balance"] == "0.00"
        assert returned["payment_status"] == "fully_paid"
        assert returned["pricing_factors"]["penalty"] == "200"
        assert returned["pricing_factors"]["penaltyDays"] == 2
        assert result["transition"]["penalty_amount"] == "200"

        history = await rental_service.get_history(item_id)
        assert history[-1]["notes"] == "Penalty: 200 (2 days)"

        after = await rental_service.compute_penalty(item_id)
        assert after["classification"] == "not_applicable"
        assert after["realized_penalty"] == "200.00"
        assert after["realized_penalty_days"] == 2

    async def test_penalty_query_is_read_only(self, make_service, garments, checkout) -> None:
        service = make_service()
        item = await checkout(service, garments["gown"], end=OVERDUE_END)
        item_id = uuid.UUID(item["id"])
        await rent_out(service, item_id)

        later = make_service(today=date(2024, 3, 15))
        penalty = await later.compute_penalty(item_id, as_of=date(2024, 3, 13))
        assert penalty["penalty_amount"] == "500.00"

        fresh = await make_service().get_order_item(item_id)
        assert fresh["final_price"] == "1000.00"
        assert fresh["pricing_factors"]["penalty"] == "0"
        assert fresh["version"] == item["version"] + 3

    async def test_damage_recorded_when_return_refused(
        self, rental_service, make_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id)

        with pytest.raises(TransitionRefusedError) as exc_info:
            await rental_service.advance_status(
                item_id,
                "returned",
                damage_by_item={"Evening Gown": "torn hem"},
                actor="staff-4",
            )
        assert exc_info.value.context["reason"] == "payment_required"
        assert exc_info.value.context["damage_recorded"] == ["Evening Gown"]

        reader = make_service()
        detail = await reader.get_order_item(item_id)
        assert detail["status"] == "rented"
        assert detail["damage_notes"] == "torn hem"
        gown = await reader.get_inventory_item(garments["gown"].id)
        assert gown["status"] == "maintenance"
        assert len(await reader.get_damage_records(garments["gown"].id)) == 1

        await rental_service.record_payment(item_id, "500")
        result = await rental_service.advance_status(item_id, "returned")

        assert result["order_item"]["status"] == "returned"
        assert result["order_item"]["damage_notes"] == "torn hem"
        assert result["transition"]["damaged_garments"] == []

        after = make_service()
        gown = await after.get_inventory_item(garments["gown"].id)
        assert gown["status"] == "maintenance"
        assert len(await after.get_damage_records(garments["gown"].id)) == 1
        history = await rental_service.get_history(item_id)
        damage_rows = [h for h in history if h["action"] == "damage_report"]
        assert len(damage_rows) == 1
        assert damage_rows[0]["notes"] == "Damage recorded: Evening Gown: torn hem"
        assert damage_rows[0]["actor"] == "staff-4"

    async def test_pending_item_has_no_penalty(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"], end=OVERDUE_END)
        penalty = await rental_service.compute_penalty(uuid.UUID(item["id"]))
        assert penalty["classification"] == "not_applicable"
        assert penalty["penalty_amount"] == "0.00"


# ============================================================================
# Ledger Tests
# ============================================================================


class TestPayments:
    async def test_amount_paid_is_ledger_sum(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        await rental_service.record_payment(item_id, "250.25", actor="staff-1")
        result = await rental_service.record_payment(item_id, "149.75", payment_method="gcash")

        assert result["amount_paid"] == "400.00"
        assert result["remaining_balance"] == "600.00"
        assert result["payment_status"] == "partial_payment"
        assert result["payment"]["remaining_balance"] == "600.00"

        payments = await rental_service.get_payments(item_id)
        assert [p["amount"] for p in payments] == ["250.25", "149.75"]
        assert payments[0]["recorded_by"] == "staff-1"
        assert payments[1]["payment_method"] == "gcash"

        detail = await rental_service.get_order_item(item_id)
        assert detail["amount_paid"] == "400.00"

    @pytest.mark.parametrize("amount", ["0", "-10", "abc"])
    async def test_invalid_amount(self, rental_service, garments, checkout, amount) -> None:
        item = await checkout(rental_service, garments["gown"])

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.record_payment(uuid.UUID(item["id"]), amount)
        assert exc_info.value.field == "amount"

    async def test_over_payment_rejected(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.record_payment(item_id, "1000.01")
        assert exc_info.value.context["amount_due"] == "1000.00"

        await rental_service.record_payment(item_id, "1000")
        with pytest.raises(RentalValidationError):
            await rental_service.record_payment(item_id, "1")

        assert len(await rental_service.get_payments(item_id)) == 1

    async def test_payment_on_cancelled_rental(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rental_service.decline_order(item_id, "Out of stock")

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.record_payment(item_id, "100")
        assert exc_info.value.field == "status"

    async def test_unknown_item(self, rental_service, garments) -> None:
        with pytest.raises(RentalNotFoundError):
            await rental_service.record_payment(uuid.uuid4(), "100")


# ============================================================================
# Decline, Idempotence and Concurrency Tests
# ============================================================================


class TestDecline:
    async def test_reason_required(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.decline_order(item_id, "  ")
        assert exc_info.value.field == "reason"

        still_pending = await rental_service.get_order_item(item_id)
        assert still_pending["status"] == "pending"

    async def test_decline_with_reason(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        result = await rental_service.decline_order(item_id, "Size unavailable", actor="staff-2")

        assert result["order_item"]["status"] == "cancelled"
        assert result["order_item"]["admin_notes"] == "Declined: Size unavailable"
        history = await rental_service.get_history(item_id)
        assert history[-1]["action"] == "decline"
        assert history[-1]["actor"] == "staff-2"

    async def test_cannot_decline_after_accept(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rental_service.accept_order(item_id)

        with pytest.raises(TransitionRefusedError) as exc_info:
            await rental_service.decline_order(item_id, "Changed mind")
        assert exc_info.value.context["reason"] == "invalid_transition"


class TestIdempotence:
    async def test_repeated_request_is_a_no_op(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])

        first = await rental_service.accept_order(item_id)
        second = await rental_service.advance_status(item_id, "ready_to_pickup")

        assert first["transition"]["changed"] is True
        assert second["transition"]["changed"] is False
        assert second["order_item"]["version"] == first["order_item"]["version"]
        history = await rental_service.get_history(item_id)
        assert [h["action"] for h in history] == ["created", "status_update"]

    async def test_cancelled_retry_needs_no_reason(
        self, rental_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rental_service.decline_order(item_id, "fabric stained")

        result = await rental_service.advance_status(item_id, "cancelled")

        assert result["transition"]["changed"] is False
        assert result["order_item"]["status"] == "cancelled"
        assert result["order_item"]["admin_notes"] == "Declined: fabric stained"

    async def test_damage_reported_after_return(
        self, rental_service, make_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id)
        await rental_service.record_payment(item_id, "500")
        await rental_service.advance_status(item_id, "returned")

        result = await rental_service.advance_status(
            item_id, "returned", damage_by_item={"Evening Gown": "torn hem"}
        )

        assert result["transition"]["changed"] is False
        assert result["transition"]["damaged_garments"] == ["Evening Gown"]
        assert result["order_item"]["status"] == "returned"
        assert result["order_item"]["damage_notes"] == "torn hem"

        reader = make_service()
        gown = await reader.get_inventory_item(garments["gown"].id)
        assert gown["status"] == "maintenance"
        assert gown["damaged_by"] == "Maria Santos"
        assert len(await reader.get_damage_records(garments["gown"].id)) == 1

        retry = await rental_service.advance_status(
            item_id, "returned", damage_by_item={"Evening Gown": "torn hem"}
        )

        assert retry["transition"]["damaged_garments"] == []
        assert len(await make_service().get_damage_records(garments["gown"].id)) == 1
        history = await rental_service.get_history(item_id)
        assert [h["action"] for h in history].count("damage_report") == 1

    async def test_invalid_status_value(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["gown"])
        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.advance_status(uuid.UUID(item["id"]), "lost")
        assert exc_info.value.field == "status"


class TestConcurrency:
    async def test_stale_write_is_rejected(self, make_service, garments, checkout) -> None:
        setup = make_service()
        item = await checkout(setup, garments["gown"])
        item_id = uuid.UUID(item["id"])

        first = make_service()
        second = make_service()
        stale = await first.repository.get_item(item_id)

        await second.accept_order(item_id)

        stale.update_specific_data(admin_notes="written from a stale copy")
        with pytest.raises(ConcurrentModificationError):
            await first._commit(item_id)

        current = await make_service().get_order_item(item_id)
        assert current["status"] == "ready_to_pickup"
        assert current["admin_notes"] is None


# ============================================================================
# Return Fan-out Tests
# ============================================================================


class TestBundleReturn:
    async def test_damaged_garment_goes_to_maintenance(
        self, rental_service, make_service, garments, checkout
    ) -> None:
        item = await checkout(
            rental_service, garments["barong"], garments["vest"], garments["slacks"]
        )
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id, paid="600")

        result = await rental_service.advance_status(
            item_id, "returned", damage_by_item={"Vest": "torn lining"}, actor="staff-3"
        )

        assert result["warnings"] == []
        assert result["order_item"]["damage_notes"] == {"Vest": "torn lining"}

        reader = make_service()
        barong = await reader.get_inventory_item(garments["barong"].id)
        vest = await reader.get_inventory_item(garments["vest"].id)
        slacks = await reader.get_inventory_item(garments["slacks"].id)
        assert barong["status"] == "available"
        assert slacks["status"] == "available"
        assert vest["status"] == "maintenance"
        assert vest["damage_notes"] == "torn lining"
        assert vest["damaged_by"] == "Maria Santos"

        records = await reader.get_damage_records(garments["vest"].id)
        assert len(records) == 1
        assert records[0]["order_item_id"] == str(item_id)
        assert records[0]["handled_by"] == "staff-3"
        assert await reader.get_damage_records(garments["barong"].id) == []

    async def test_same_named_garments_are_addressed_by_id(
        self, rental_service, make_service, garments, checkout
    ) -> None:
        created = await rental_service.create_inventory_item(
            name="Barong", rental_price="300", category="formal"
        )
        second_id = uuid.UUID(created["id"])
        second = await rental_service.repository.get_inventory_item(second_id)
        item = await checkout(rental_service, garments["barong"], second)
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id, paid="600")

        with pytest.raises(RentalValidationError) as exc_info:
            await rental_service.advance_status(
                item_id, "returned", damage_by_item={"Barong": "stain"}
            )
        assert exc_info.value.field == "damage"

        result = await rental_service.advance_status(
            item_id, "returned", damage_by_item={str(second_id): "stain"}
        )

        assert result["order_item"]["damage_notes"] == {str(second_id): "stain"}
        reader = make_service()
        first_row = await reader.get_inventory_item(garments["barong"].id)
        second_row = await reader.get_inventory_item(second_id)
        assert first_row["status"] == "available"
        assert second_row["status"] == "maintenance"

    async def test_unknown_damage_key_leaves_item_rented(
        self, rental_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["barong"], garments["vest"])
        item_id = uuid.UUID(item["id"])
        await rent_out(rental_service, item_id, paid="500")

        with pytest.raises(RentalValidationError):
            await rental_service.advance_status(
                item_id, "returned", damage_by_item={"Tie": "lost"}
            )

        detail = await rental_service.get_order_item(item_id)
        assert detail["status"] == "rented"

    async def test_inventory_failure_becomes_warning(
        self, db_session, test_settings, make_service, garments, checkout
    ) -> None:
        store = InventoryStore(session_factory=MagicMock())
        store.apply_return = AsyncMock(
            side_effect=[None, InventorySyncError("Inventory item not found"), None]
        )
        service = RentalService(
            db_session, settings=test_settings, inventory_store=store, today=lambda: date(2024, 3, 10)
        )
        item = await checkout(service, garments["barong"], garments["vest"], garments["slacks"])
        item_id = uuid.UUID(item["id"])
        await rent_out(service, item_id, paid="600")

        result = await service.advance_status(item_id, "returned")

        assert result["order_item"]["status"] == "returned"
        assert result["warnings"] == [
            {
                "garment": "Vest",
                "inventory_item_id": str(garments["vest"].id),
                "error": "Inventory item not found",
            }
        ]
        assert store.apply_return.await_count == 3

        reader = make_service()
        detail = await reader.get_order_item(item_id)
        assert detail["status"] == "returned"
        assert detail["needs_review"] is True
        stored = await reader.repository.get_item(item_id)
        assert stored.specific_data["inventory_sync_failures"][0]["garment"] == "Vest"


# ============================================================================
# Notes, Deletion and Listing Tests
# ============================================================================


class TestNotesAndDeletion:
    async def test_update_notes_keeps_status(self, rental_service, garments, checkout) -> None:
        item = await checkout(rental_service, garments["barong"], garments["vest"])
        item_id = uuid.UUID(item["id"])

        updated = await rental_service.update_notes(item_id, "Call before pickup")

        assert updated["admin_notes"] == "Call before pickup"
        assert updated["status"] == "pending"
        assert updated["item_name"] == "Barong, Vest"
        history = await rental_service.get_history(item_id)
        assert history[-1]["action"] == "notes_update"

    async def test_in_progress_rental_cannot_be_deleted(
        self, rental_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"])

        with pytest.raises(DeletionNotAllowedError) as exc_info:
            await rental_service.delete_order_item(uuid.UUID(item["id"]))
        assert exc_info.value.context["status"] == "pending"

    async def test_ledger_and_history_survive_delete(
        self, rental_service, make_service, garments, checkout
    ) -> None:
        item = await checkout(rental_service, garments["gown"])
        item_id = uuid.UUID(item["id"])
        await rental_service.record_payment(item_id, "100")
        await rental_service.decline_order(item_id, "Customer cancelled")

        deleted = await rental_service.delete_order_item(item_id)
        assert deleted == {"id": str(item_id), "deleted": True, "status": "cancelled"}

        reader = make_service()
        with pytest.raises(RentalNotFoundError):
            await reader.get_order_item(item_id)
        assert [p["amount"] for p in await reader.get_payments(item_id)] == ["100.00"]
        assert [h["action"] for h in await reader.get_history(item_id)] == [
            "created",
            "payment",
            "decline",
        ]


class TestListing:
    async def test_pending_first_and_status_aliases(
        self, rental_service, garments, checkout
    ) -> None:
        accepted = await checkout(rental_service, garments["gown"])
        await rental_service.accept_order(uuid.UUID(accepted["id"]))
        pending = await checkout(rental_service, garments["barong"])

        listed = await rental_service.list_order_items()
        assert [i["id"] for i in listed] == [pending["id"], accepted["id"]]

        ready = await rental_service.list_order_items(status="ready_for_pickup")
        assert [i["id"] for i in ready] == [accepted["id"]]

        walk_ins = await rental_service.list_order_items(order_type="walk-in")
        assert walk_ins == []
