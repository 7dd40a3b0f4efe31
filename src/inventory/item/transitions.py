"""Lifecycle transitions and the opening balance lock: commands and handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.staff.staff import resolve_role

logger = structlog.get_logger(__name__)


@inventory.command(part_of="InventoryItem")
class TransitionLifecycle:
    """Move an item to another lifecycle status (or delete it)."""

    inventory_item_id = Identifier(required=True)
    target = String(required=True, max_length=20)  # active, discontinued, archived, deleted
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="InventoryItem")
class ConfirmOpeningBalance:
    inventory_item_id = Identifier(required=True)
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command_handler(part_of=InventoryItem)
class LifecycleHandler:
    @handle(TransitionLifecycle)
    def transition_lifecycle(self, command):
        role = resolve_role(command.performed_by)
        repo = current_domain.repository_for(InventoryItem)
        item = repo.get(command.inventory_item_id)
        previous = item.lifecycle_status
        item.transition_lifecycle(command.target, actor=command.performed_by, role=role, as_of=command.as_of)
        repo.add(item)

        logger.info(
            "Item lifecycle changed",
            inventory_item_id=str(command.inventory_item_id),
            from_status=previous,
            to_status=command.target,
            performed_by=str(command.performed_by),
        )

    @handle(ConfirmOpeningBalance)
    def confirm_opening_balance(self, command):
        role = resolve_role(command.performed_by)
        repo = current_domain.repository_for(InventoryItem)
        item = repo.get(command.inventory_item_id)
        item.confirm_opening_balance(actor=command.performed_by, role=role, as_of=command.as_of)
        repo.add(item)
