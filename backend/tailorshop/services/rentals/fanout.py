"""
Garment composition of a rental line and return fan-out to inventory.

A rental order item rents either one garment or a bundle of garments. The
composition is parsed once from the item's specific_data into a tagged
variant, so lifecycle code branches on the variant instead of re-reading
bundle flags. On return, each garment's outcome is pushed to the inventory
store independently: one garment failing never undoes the others or the
order status that was already committed.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tailorshop.core.logging import get_logger
from tailorshop.database.models.damage import DamageRecord
from tailorshop.database.models.inventory import InventoryItem
from tailorshop.services.rentals.exceptions import RentalValidationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class GarmentRef:
    """Reference to one physical garment of a rental line."""

    name: str
    inventory_item_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class SingleGarment:
    garment: GarmentRef
    is_bundle = False

    @property
    def garments(self) -> tuple[GarmentRef, ...]:
        return (self.garment,)


@dataclass(frozen=True)
class GarmentBundle:
    garments: tuple[GarmentRef, ...]
    is_bundle = True


RentalGarments = Union[SingleGarment, GarmentBundle]


def _parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def build_specific_data(
    garments: RentalGarments, customer_notes: Optional[str] = None
) -> dict[str, Any]:
    """Serialize a garment composition into a fresh specific_data payload."""
    if isinstance(garments, GarmentBundle):
        return {
            "item_name": ", ".join(g.name for g in garments.garments),
            "is_bundle": True,
            "bundle_items": [
                {
                    "item_id": str(g.inventory_item_id) if g.inventory_item_id else None,
                    "item_name": g.name,
                }
                for g in garments.garments
            ],
            "customer_notes": customer_notes,
            "admin_notes": None,
            "damage_notes": None,
        }
    return {
        "item_name": garments.garment.name,
        "is_bundle": False,
        "customer_notes": customer_notes,
        "admin_notes": None,
        "damage_notes": None,
    }


def garments_from_item(
    specific_data: Mapping[str, Any], inventory_item_id: Optional[uuid.UUID] = None
) -> RentalGarments:
    """
    Parse the garment composition of a rental order item.

    Args:
        specific_data: The item's specific_data payload
        inventory_item_id: The item's single-garment reference, if any

    Returns:
        GarmentBundle when the payload lists bundle items, SingleGarment otherwise
    """
    bundle_items = specific_data.get("bundle_items") or []
    if specific_data.get("is_bundle") and bundle_items:
        garments = tuple(
            GarmentRef(
                name=str(entry.get("item_name") or f"Item {index + 1}"),
                inventory_item_id=_parse_uuid(entry.get("item_id")),
            )
            for index, entry in enumerate(bundle_items)
        )
        return GarmentBundle(garments=garments)

    return SingleGarment(
        garment=GarmentRef(
            name=str(specific_data.get("item_name") or "Rental item"),
            inventory_item_id=inventory_item_id,
        )
    )


@dataclass(frozen=True)
class GarmentReturn:
    """Return outcome of one garment; description is None when undamaged."""

    garment: GarmentRef
    damage_description: Optional[str] = None

    @property
    def is_damaged(self) -> bool:
        return self.damage_description is not None


def damage_note_keys(garments: RentalGarments) -> dict[GarmentRef, str]:
    """
    Key of each garment in a bundle's damage notes.

    Garments are keyed by name. When a name repeats within the bundle, those
    garments are keyed by inventory id instead, or by position when they
    have none.
    """
    counts = Counter(g.name for g in garments.garments)
    keys: dict[GarmentRef, str] = {}
    for index, garment in enumerate(garments.garments):
        if counts[garment.name] == 1:
            keys[garment] = garment.name
        elif garment.inventory_item_id is not None:
            keys[garment] = str(garment.inventory_item_id)
        else:
            keys[garment] = f"{garment.name} #{index + 1}"
    return keys


def resolve_damage(
    garments: RentalGarments, damage_by_item: Optional[Mapping[str, Optional[str]]]
) -> list[GarmentReturn]:
    """
    Match reported damage to the garments of a rental line.

    Damage is keyed by garment name or inventory id. A garment whose name
    repeats within the bundle must be addressed by inventory id. A null
    description leaves the garment undamaged; any other value flags it, so
    the description must not be blank.

    Raises:
        RentalValidationError: If a key names no garment of the line, names
            more than one garment, or a flagged garment has no description
    """
    damage_by_item = damage_by_item or {}
    note_keys = damage_note_keys(garments)
    names = Counter(g.name for g in garments.garments)

    lookup: dict[str, GarmentRef] = {}
    for garment in garments.garments:
        lookup[note_keys[garment]] = garment
        if garment.inventory_item_id is not None:
            lookup[str(garment.inventory_item_id)] = garment

    descriptions: dict[GarmentRef, str] = {}
    for key, description in damage_by_item.items():
        key = str(key)
        garment = lookup.get(key)
        if garment is None:
            if names[key] > 1:
                raise RentalValidationError(
                    f"Several garments are named {key}, report damage by inventory id",
                    field="damage",
                    garment=key,
                    inventory_item_ids=[
                        str(g.inventory_item_id)
                        for g in garments.garments
                        if g.name == key and g.inventory_item_id is not None
                    ],
                )
            raise RentalValidationError(
                f"Damage reported for unknown garment: {key}",
                field="damage",
                garment=key,
                garments=[g.name for g in garments.garments],
            )
        if description is None:
            continue
        text = description.strip()
        if not text:
            raise RentalValidationError(
                f"Damage description is required for {garment.name}",
                field="damage",
                garment=garment.name,
            )
        descriptions[garment] = text

    return [
        GarmentReturn(garment=garment, damage_description=descriptions.get(garment))
        for garment in garments.garments
    ]


def serialize_damage_notes(
    garments: RentalGarments, outcomes: list[GarmentReturn]
) -> Union[dict[str, str], str, None]:
    """Damage notes as stored on the order item: key mapping for bundles, text otherwise."""
    damaged = [o for o in outcomes if o.is_damaged]
    if not damaged:
        return None
    if isinstance(garments, GarmentBundle):
        keys = damage_note_keys(garments)
        return {keys[o.garment]: o.damage_description for o in damaged}
    return damaged[0].damage_description


def recorded_damage(
    garments: RentalGarments, damage_notes: Union[Mapping[str, str], str, None]
) -> dict[GarmentRef, str]:
    """Damage already stored on the order item, per garment."""
    if not damage_notes:
        return {}
    if isinstance(damage_notes, str):
        return {garments.garments[0]: damage_notes}

    by_key = {key: garment for garment, key in damage_note_keys(garments).items()}
    return {
        by_key[key]: description
        for key, description in damage_notes.items()
        if key in by_key and description
    }


def merge_damage(
    garments: RentalGarments,
    damage_notes: Union[Mapping[str, str], str, None],
    damage_by_item: Optional[Mapping[str, Optional[str]]],
) -> tuple[list[GarmentReturn], list[GarmentReturn]]:
    """
    Combine newly reported damage with the damage already recorded.

    Returns:
        All garment outcomes after the merge, and the outcomes whose damage
        is new or changed and still has to reach the inventory
    """
    recorded = recorded_damage(garments, damage_notes)
    merged = []
    fresh = []
    for outcome in resolve_damage(garments, damage_by_item):
        previous = recorded.get(outcome.garment)
        description = outcome.damage_description or previous
        merged.append(GarmentReturn(outcome.garment, description))
        if outcome.is_damaged and description != previous:
            fresh.append(merged[-1])
    return merged, fresh


class InventorySyncError(Exception):
    """Raised when a garment's inventory record cannot be updated."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


@dataclass
class ReturnContext:
    """Who and what a return fan-out is attributed to."""

    order_item_id: uuid.UUID
    customer_name: Optional[str]
    customer_id: Optional[str] = None
    actor: Optional[str] = None


@dataclass
class FanOutReport:
    """Per-garment results of a return fan-out."""

    updated: list[str] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.warnings)


class InventoryStore:
    """
    Writes return outcomes to the inventory, one transaction per garment.

    Each garment gets its own session from the factory so that a failure
    rolls back only that garment.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    @classmethod
    def for_session(cls, session: AsyncSession) -> "InventoryStore":
        """Store bound to the same engine as an existing session."""
        return cls(async_sessionmaker(session.bind, expire_on_commit=False))

    async def apply_return(self, outcome: GarmentReturn, context: ReturnContext) -> None:
        """
        Apply one garment's return outcome.

        Undamaged garments go back to available with damage fields cleared;
        damaged garments go to maintenance and get a DamageRecord.

        Raises:
            InventorySyncError: If the garment has no inventory record
        """
        garment = outcome.garment
        if garment.inventory_item_id is None:
            raise InventorySyncError(
                "Garment has no inventory reference",
                garment=garment.name,
            )

        async with self.session_factory() as session:
            async with session.begin():
                item = await session.get(InventoryItem, garment.inventory_item_id)
                if item is None:
                    raise InventorySyncError(
                        "Inventory item not found",
                        garment=garment.name,
                        inventory_item_id=str(garment.inventory_item_id),
                    )

                if outcome.is_damaged:
                    item.mark_damaged(outcome.damage_description, context.customer_name)
                    session.add(
                        DamageRecord(
                            inventory_item_id=item.id,
                            order_item_id=context.order_item_id,
                            customer_id=context.customer_id,
                            customer_name=context.customer_name,
                            handled_by=context.actor,
                            description=outcome.damage_description,
                        )
                    )
                else:
                    item.mark_returned()

    async def fan_out_return(
        self, outcomes: list[GarmentReturn], context: ReturnContext
    ) -> FanOutReport:
        """
        Push every garment's return outcome to the inventory.

        Failures are logged and collected, never raised.
        """
        report = FanOutReport()

        for outcome in outcomes:
            garment = outcome.garment
            try:
                await self.apply_return(outcome, context)
                report.updated.append(garment.name)
                logger.info(
                    "Inventory updated for returned garment",
                    order_item_id=str(context.order_item_id),
                    garment=garment.name,
                    inventory_item_id=str(garment.inventory_item_id),
                    damaged=outcome.is_damaged,
                )
            except Exception as e:
                logger.warning(
                    "Failed to update inventory for returned garment",
                    order_item_id=str(context.order_item_id),
                    garment=garment.name,
                    inventory_item_id=(
                        str(garment.inventory_item_id)
                        if garment.inventory_item_id
                        else None
                    ),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                report.warnings.append(
                    {
                        "garment": garment.name,
                        "inventory_item_id": (
                            str(garment.inventory_item_id)
                            if garment.inventory_item_id
                            else None
                        ),
                        "error": str(e),
                    }
                )

        return report
