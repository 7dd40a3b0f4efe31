"""Item stock: per-item counters and lifecycle for listings and audits.

Counters are folded with the same projector the aggregate uses, so the read
model can never disagree with the ledger about what a movement means.
"""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.item.events import (
    ItemDeleted,
    ItemDetailsUpdated,
    ItemRegistered,
    LifecycleTransitioned,
    MovementRecorded,
    OpeningBalanceConfirmed,
)
from inventory.item.item import InventoryItem
from inventory.item.movements import MovementType
from inventory.item.projection import COUNTERS, apply_movement


@inventory.projection
class ItemStock:
    inventory_item_id = Identifier(identifier=True, required=True)
    outlet_id = Identifier()
    name = String(required=True, max_length=200)
    category = String(max_length=100)
    material = String(max_length=100)
    unit = String(max_length=30)
    lifecycle_status = String(required=True, max_length=20)
    opening_balance_confirmed = Boolean(default=False)
    available = Integer(default=0)
    allocated = Integer(default=0)
    damaged = Integer(default=0)
    in_repair = Integer(default=0)
    lost = Integer(default=0)
    total = Integer(default=0)
    last_movement_at = DateTime()
    updated_at = DateTime()


@inventory.projector(projector_for=ItemStock, aggregates=[InventoryItem])
class ItemStockProjector:
    @on(ItemRegistered)
    def on_item_registered(self, event):
        current_domain.repository_for(ItemStock).add(
            ItemStock(
                inventory_item_id=event.inventory_item_id,
                outlet_id=event.outlet_id,
                name=event.name,
                category=event.category,
                material=event.material,
                unit=event.unit,
                lifecycle_status="draft",
                updated_at=event.registered_at,
            )
        )

    @on(ItemDetailsUpdated)
    def on_item_details_updated(self, event):
        repo = current_domain.repository_for(ItemStock)
        row = repo.get(event.inventory_item_id)
        row.outlet_id = event.outlet_id
        row.name = event.name
        row.category = event.category
        row.material = event.material
        row.unit = event.unit
        row.updated_at = event.updated_at
        repo.add(row)

    @on(MovementRecorded)
    def on_movement_recorded(self, event):
        repo = current_domain.repository_for(ItemStock)
        row = repo.get(event.inventory_item_id)
        mtype = MovementType(event.movement_type)
        counters = apply_movement(
            {counter: getattr(row, counter) for counter in COUNTERS},
            mtype,
            event.quantity,
            reason_code=event.reason_code,
            from_allocated=bool(event.from_allocated),
        )
        for counter, value in counters.items():
            setattr(row, counter, value)
        if mtype == MovementType.ALLOCATION:
            row.opening_balance_confirmed = True
        row.last_movement_at = event.occurred_at
        row.updated_at = event.occurred_at
        repo.add(row)

    @on(OpeningBalanceConfirmed)
    def on_opening_balance_confirmed(self, event):
        repo = current_domain.repository_for(ItemStock)
        row = repo.get(event.inventory_item_id)
        row.opening_balance_confirmed = True
        row.updated_at = event.confirmed_at
        repo.add(row)

    @on(LifecycleTransitioned)
    def on_lifecycle_transitioned(self, event):
        repo = current_domain.repository_for(ItemStock)
        row = repo.get(event.inventory_item_id)
        row.lifecycle_status = event.to_status
        row.updated_at = event.transitioned_at
        repo.add(row)

    @on(ItemDeleted)
    def on_item_deleted(self, event):
        repo = current_domain.repository_for(ItemStock)
        row = repo.get(event.inventory_item_id)
        repo._dao.delete(row)
