"""Allocation view: outstanding balances per (item, subscription-or-event).

Lets callers find every item handed out against a reference without loading
each aggregate.
"""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.events import MovementRecorded
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType


@inventory.projection
class AllocationView:
    allocation_id = Identifier(identifier=True, required=True)
    inventory_item_id = Identifier(required=True)
    reference_type = String(required=True, max_length=20)
    reference_id = Identifier(required=True)
    allocated_quantity = Integer(default=0)
    returned_quantity = Integer(default=0)
    damaged_quantity = Integer(default=0)
    lost_quantity = Integer(default=0)
    outstanding = Integer(default=0)
    status = String(required=True, max_length=10)
    opened_at = DateTime()
    closed_at = DateTime()
    updated_at = DateTime()


@inventory.projector(projector_for=AllocationView, aggregates=[InventoryItem])
class AllocationViewProjector:
    @on(MovementRecorded)
    def on_movement_recorded(self, event):
        if not event.allocation_id:
            return

        repo = current_domain.repository_for(AllocationView)
        mtype = MovementType(event.movement_type)

        if mtype == MovementType.ALLOCATION:
            existing = repo._dao.query.filter(allocation_id=event.allocation_id).all().items
            if not existing:
                repo.add(
                    AllocationView(
                        allocation_id=event.allocation_id,
                        inventory_item_id=event.inventory_item_id,
                        reference_type=event.reference_type,
                        reference_id=event.reference_id,
                        allocated_quantity=event.quantity,
                        outstanding=event.quantity,
                        status="open",
                        opened_at=event.occurred_at,
                        updated_at=event.occurred_at,
                    )
                )
                return
            row = existing[0]
            row.allocated_quantity = row.allocated_quantity + event.quantity
        else:
            row = repo.get(event.allocation_id)
            if mtype == MovementType.RETURN_GOOD:
                row.returned_quantity = row.returned_quantity + event.quantity
            elif mtype == MovementType.LOSS:
                row.lost_quantity = row.lost_quantity + event.quantity
            else:
                row.damaged_quantity = row.damaged_quantity + event.quantity

        row.outstanding = (
            row.allocated_quantity - row.returned_quantity - row.damaged_quantity - row.lost_quantity
        )
        if row.outstanding == 0:
            row.status = "closed"
            row.closed_at = event.occurred_at
        row.updated_at = event.occurred_at
        repo.add(row)
