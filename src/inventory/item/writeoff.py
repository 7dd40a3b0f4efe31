"""Write-offs: damage, loss and disposal; commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import CATEGORY_OF, MovementCategory, MovementType
from inventory.item.recording import append_movement


@inventory.command(part_of="InventoryItem")
class WriteOffStock:
    """Record damaged, lost or disposed stock.

    ``damage_client`` always names the subscription or event; ``loss`` names
    one when the stock was lost while out with a customer.
    """

    inventory_item_id = Identifier(required=True)
    writeoff_type = String(required=True, max_length=30)  # damage_warehouse, damage_client, loss, disposal
    quantity = Integer()
    reason_code = String(max_length=50)
    notes = Text()
    reference_type = String(max_length=20)
    reference_id = Identifier()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command_handler(part_of=InventoryItem)
class WriteOffHandler:
    @handle(WriteOffStock)
    def write_off_stock(self, command):
        try:
            movement_type = MovementType(command.writeoff_type)
        except ValueError:
            movement_type = None
        if movement_type is None or CATEGORY_OF[movement_type] != MovementCategory.WRITEOFF:
            raise ValidationError({"writeoff_type": [f"Unknown write-off type: {command.writeoff_type}"]})

        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=movement_type.value,
            quantity=command.quantity,
            reason_code=command.reason_code,
            notes=command.notes,
            reference_type=command.reference_type,
            reference_id=command.reference_id,
            as_of=command.as_of,
        )
