"""Allocations: dispatching stock to subscriptions and events, taking it back,
and settling a reference before its parent is cancelled.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.errors import StateError
from inventory.item.item import InventoryItem
from inventory.item.movements import ALLOCATION_REFERENCES, MovementType, resolve_reference
from inventory.item.queries import list_reference_allocations
from inventory.item.recording import append_movement

logger = structlog.get_logger(__name__)


@inventory.command(part_of="InventoryItem")
class AllocateStock:
    """Send stock out against a subscription or event."""

    inventory_item_id = Identifier(required=True)
    reference_type = String(required=True, max_length=20)  # subscription, event
    reference_id = Identifier(required=True)
    quantity = Integer()
    additional = Boolean(default=False)  # Top up an open allocation
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="InventoryItem")
class ReturnStock:
    """Take allocated stock back, intact or damaged."""

    inventory_item_id = Identifier(required=True)
    reference_type = String(required=True, max_length=20)
    reference_id = Identifier(required=True)
    quantity = Integer()
    damaged = Boolean(default=False)
    reason_code = String(max_length=50)
    notes = Text()
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="InventoryItem")
class SettleReference:
    """Confirm nothing is outstanding for a subscription or event.

    Cancelling a parent with stock still out is refused: the stock has to be
    returned or written off first.
    """

    reference_type = String(required=True, max_length=20)
    reference_id = Identifier(required=True)


@inventory.command_handler(part_of=InventoryItem)
class AllocationHandler:
    @handle(AllocateStock)
    def allocate_stock(self, command):
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=MovementType.ALLOCATION.value,
            quantity=command.quantity,
            reference_type=command.reference_type,
            reference_id=command.reference_id,
            reason_code="additional_dispatch" if command.additional else None,
            notes=command.notes,
            as_of=command.as_of,
        )

    @handle(ReturnStock)
    def return_stock(self, command):
        movement_type = MovementType.RETURN_DAMAGED if command.damaged else MovementType.RETURN_GOOD
        return append_movement(
            command.inventory_item_id,
            command.performed_by,
            movement_type=movement_type.value,
            quantity=command.quantity,
            reference_type=command.reference_type,
            reference_id=command.reference_id,
            reason_code=command.reason_code,
            notes=command.notes,
            as_of=command.as_of,
        )

    @handle(SettleReference)
    def settle_reference(self, command):
        if resolve_reference(command.reference_type, command.reference_id) not in ALLOCATION_REFERENCES:
            raise ValidationError({"reference_type": ["Only subscriptions and events carry allocations"]})

        rows = list_reference_allocations(command.reference_type, command.reference_id)
        repo = current_domain.repository_for(InventoryItem)

        settled, blocked = [], []
        for item_id in sorted({str(row.inventory_item_id) for row in rows}):
            item = repo.get(item_id)
            try:
                settled.extend(item.check_reference_settled(command.reference_type, command.reference_id))
            except StateError as exc:
                blocked.extend(exc.messages["allocations"])

        if blocked:
            logger.warning(
                "Reference has outstanding allocations",
                reference_type=command.reference_type,
                reference_id=str(command.reference_id),
                blocked_items=len(blocked),
            )
            raise StateError({"allocations": blocked})

        logger.info(
            "Reference settled",
            reference_type=command.reference_type,
            reference_id=str(command.reference_id),
            allocations=len(settled),
        )
        return len(settled)
