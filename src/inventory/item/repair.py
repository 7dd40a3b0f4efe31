"""Repairs: sending damaged stock out and taking it back; commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType
from inventory.item.recording import append_movement

REPAIR_OUTCOMES = ("repaired", "irreparable")


@inventory.command(part_of="InventoryItem")
class SendToRepair:
    inventory_item_id = Identifier(required=True)
    quantity = Integer()
    reason_code = String(max_length=50)  # internal_repair, external_vendor
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="InventoryItem")
class ReturnFromRepair:
    """Take stock back from repair: repaired units return to the shelf,
    irreparable ones leave the books.
    """

    inventory_item_id = Identifier(required=True)
    quantity = Integer()
    outcome = String(required=True, max_length=20)  # repaired, irreparable
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command_handler(part_of=InventoryItem)
class RepairHandler:
    @handle(SendToRepair)
    def send_to_repair(self, command):
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=MovementType.SEND_TO_REPAIR.value,
            quantity=command.quantity,
            reason_code=command.reason_code,
            notes=command.notes,
            as_of=command.as_of,
        )

    @handle(ReturnFromRepair)
    def return_from_repair(self, command):
        if command.outcome not in REPAIR_OUTCOMES:
            raise ValidationError({"outcome": [f"Outcome must be one of {', '.join(REPAIR_OUTCOMES)}"]})
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=MovementType.RETURN_FROM_REPAIR.value,
            quantity=command.quantity,
            reason_code=command.outcome,
            notes=command.notes,
            as_of=command.as_of,
        )
