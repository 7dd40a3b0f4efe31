"""Domain events for the InventoryItem aggregate.

The item's event stream is its ledger. ``MovementRecorded`` is the only event
that changes quantities; counters and allocations are folded from it.
The remaining events record descriptive or lifecycle changes.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory


@inventory.event(part_of="InventoryItem")
class ItemRegistered:
    """A new dishware item was registered in draft state."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    outlet_id = Identifier()
    name = String(required=True)
    category = String()
    material = String()
    unit = String(required=True)
    registered_by = Identifier(required=True)
    registered_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class ItemDetailsUpdated:
    __version__ = 1

    inventory_item_id = Identifier(required=True)
    outlet_id = Identifier()
    name = String(required=True)
    category = String()
    material = String()
    unit = String(required=True)
    updated_by = Identifier(required=True)
    updated_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class MovementRecorded:
    """One immutable stock movement.

    ``from_allocated`` records where a loss was drawn from, so replay never
    depends on allocation state.
    """

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    movement_id = Identifier(required=True)
    movement_category = String(required=True)
    movement_type = String(required=True)
    quantity = Integer(required=True, min_value=1)
    reference_type = String()
    reference_id = Identifier()
    allocation_id = Identifier()
    from_allocated = Boolean(default=False)
    reason_code = String(required=True)
    notes = Text()
    actor = Identifier(required=True)
    actor_role = String(required=True)
    occurred_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class OpeningBalanceConfirmed:
    """Opening stock was locked; later adjustments need an admin."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    trigger = String(required=True)  # manual, auto
    confirmed_by = Identifier()
    confirmed_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class LifecycleTransitioned:
    __version__ = 1

    inventory_item_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    transitioned_by = Identifier(required=True)
    transitioned_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class ItemDeleted:
    """The item was removed from use. Its stream is kept for history."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    previous_status = String(required=True)
    deleted_by = Identifier(required=True)
    deleted_at = DateTime(required=True)

