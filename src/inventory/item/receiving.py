"""Stock receiving: command and handler."""

from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType
from inventory.item.recording import append_movement


@inventory.command(part_of="InventoryItem")
class ReceiveStock:
    """Receive purchased, gifted or transferred stock onto the shelf."""

    inventory_item_id = Identifier(required=True)
    quantity = Integer()
    reason_code = String(max_length=50)  # new_purchase, gift_received, transfer_in
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command_handler(part_of=InventoryItem)
class StockReceivingHandler:
    @handle(ReceiveStock)
    def receive_stock(self, command):
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=MovementType.PURCHASE.value,
            quantity=command.quantity,
            reason_code=command.reason_code,
            notes=command.notes,
            as_of=command.as_of,
        )
