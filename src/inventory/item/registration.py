"""Item registration and details: commands and handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType
from inventory.item.policy import Action, authorize
from inventory.staff.staff import resolve_role

logger = structlog.get_logger(__name__)


@inventory.command(part_of="InventoryItem")
class RegisterItem:
    """Register a new dishware item, optionally with its opening stock."""

    name = String(required=True, max_length=200)
    outlet_id = Identifier()
    category = String(max_length=100)
    material = String(max_length=100)
    unit = String(max_length=30)
    opening_stock = Integer(default=0)
    performed_by = Identifier(required=True)
    as_of = DateTime()  # Optional: defaults to now


@inventory.command(part_of="InventoryItem")
class UpdateItemDetails:
    inventory_item_id = Identifier(required=True)
    name = String(max_length=200)
    outlet_id = Identifier()
    category = String(max_length=100)
    material = String(max_length=100)
    unit = String(max_length=30)
    performed_by = Identifier(required=True)


@inventory.command_handler(part_of=InventoryItem)
class ItemRegistrationHandler:
    @handle(RegisterItem)
    def register_item(self, command):
        role = resolve_role(command.performed_by)
        authorize(Action.EDIT_DETAILS, role)

        item = InventoryItem.register(
            name=command.name,
            registered_by=command.performed_by,
            outlet_id=command.outlet_id,
            category=command.category,
            material=command.material,
            unit=command.unit,
            registered_at=command.as_of,
        )
        if command.opening_stock:
            item.record_movement(
                movement_type=MovementType.OPENING_STOCK.value,
                quantity=command.opening_stock,
                actor=command.performed_by,
                role=role,
                notes="Opening stock at registration",
                as_of=command.as_of,
            )

        current_domain.repository_for(InventoryItem).add(item)
        logger.info(
            "Inventory item registered",
            inventory_item_id=str(item.id),
            outlet_id=command.outlet_id,
            opening_stock=command.opening_stock or 0,
        )
        return str(item.id)

    @handle(UpdateItemDetails)
    def update_item_details(self, command):
        role = resolve_role(command.performed_by)
        repo = current_domain.repository_for(InventoryItem)
        item = repo.get(command.inventory_item_id)
        item.update_details(
            updated_by=command.performed_by,
            role=role,
            name=command.name,
            category=command.category,
            material=command.material,
            unit=command.unit,
            outlet_id=command.outlet_id,
        )
        repo.add(item)
