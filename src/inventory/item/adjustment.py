"""Manual stock adjustment: command and handler.

Once the opening balance is locked, only admins may adjust.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType
from inventory.item.recording import append_movement


@inventory.command(part_of="InventoryItem")
class AdjustStock:
    """Correct available stock up or down."""

    inventory_item_id = Identifier(required=True)
    quantity_change = Integer()  # Signed
    reason_code = String(required=True, max_length=50)
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command_handler(part_of=InventoryItem)
class StockAdjustmentHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        if not command.quantity_change:
            raise ValidationError({"quantity_change": ["Adjustment must change stock by at least one unit"]})

        if command.quantity_change > 0:
            movement_type = MovementType.ADJUSTMENT_POSITIVE
        else:
            movement_type = MovementType.ADJUSTMENT_NEGATIVE

        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=movement_type.value,
            quantity=abs(command.quantity_change),
            reason_code=command.reason_code,
            notes=command.notes,
            as_of=command.as_of,
        )
