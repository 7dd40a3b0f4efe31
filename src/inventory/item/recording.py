"""Generic movement append: the single entry point every movement goes through.

The typed commands elsewhere in this package are shorthands that fill in the
movement type; they all end in ``InventoryItem.record_movement``.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.staff.staff import resolve_role

logger = structlog.get_logger(__name__)


@inventory.command(part_of="InventoryItem")
class RecordMovement:
    """Append one movement to an item's ledger."""

    inventory_item_id = Identifier(required=True)
    movement_type = String(required=True, max_length=30)
    movement_category = String(max_length=20)  # Derived from the type when omitted
    quantity = Integer()
    reference_type = String(max_length=20)
    reference_id = Identifier()
    reason_code = String(max_length=50)
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()  # Optional: defaults to now


def append_movement(inventory_item_id, performed_by, **movement):
    """Load the item, record the movement, persist it; return the movement id."""
    role = resolve_role(performed_by)
    repo = current_domain.repository_for(InventoryItem)
    item = repo.get(inventory_item_id)
    movement_id = item.record_movement(actor=performed_by, role=role, **movement)
    repo.add(item)

    logger.info(
        "Movement recorded",
        inventory_item_id=str(inventory_item_id),
        movement_id=movement_id,
        movement_type=movement.get("movement_type"),
        quantity=movement.get("quantity"),
        reference_type=movement.get("reference_type"),
        reference_id=movement.get("reference_id"),
    )
    return movement_id


@inventory.command_handler(part_of=InventoryItem)
class MovementRecordingHandler:
    @handle(RecordMovement)
    def record_movement(self, command):
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=command.movement_type,
            movement_category=command.movement_category,
            quantity=command.quantity,
            reference_type=command.reference_type,
            reference_id=command.reference_id,
            reason_code=command.reason_code,
            notes=command.notes,
            as_of=command.as_of,
        )
