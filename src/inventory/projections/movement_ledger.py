"""Movement ledger: one immutable row per recorded movement."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.events import MovementRecorded
from inventory.item.item import InventoryItem


@inventory.projection
class MovementLedger:
    movement_id = Identifier(identifier=True, required=True)
    inventory_item_id = Identifier(required=True)
    movement_category = String(required=True, max_length=20)
    movement_type = String(required=True, max_length=30)
    quantity = Integer(required=True)
    reference_type = String(max_length=20)
    reference_id = Identifier()
    from_allocated = Boolean(default=False)
    reason_code = String(required=True, max_length=50)
    notes = Text()
    actor = Identifier(required=True)
    actor_role = String(max_length=20)
    occurred_at = DateTime(required=True)


@inventory.projector(projector_for=MovementLedger, aggregates=[InventoryItem])
class MovementLedgerProjector:
    @on(MovementRecorded)
    def on_movement_recorded(self, event):
        current_domain.repository_for(MovementLedger).add(
            MovementLedger(
                movement_id=event.movement_id,
                inventory_item_id=event.inventory_item_id,
                movement_category=event.movement_category,
                movement_type=event.movement_type,
                quantity=event.quantity,
                reference_type=event.reference_type,
                reference_id=event.reference_id,
                from_allocated=bool(event.from_allocated),
                reason_code=event.reason_code,
                notes=event.notes,
                actor=event.actor,
                actor_role=event.actor_role,
                occurred_at=event.occurred_at,
            )
        )
