"""Read-side lookups for items, allocations and movements.

Item state and single allocations are answered from the aggregate, so they
reflect the ledger as of the last append. Listings come from projections.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from inventory.item.item import InventoryItem
from inventory.item.lifecycle import LifecycleStatus
from inventory.projections.allocation_view import AllocationView
from inventory.projections.item_stock import ItemStock
from inventory.projections.movement_ledger import MovementLedger

# Listing queries are bounded; protean query sets default to a page of 100
MAX_ROWS = 10_000


def load_live_item(inventory_item_id) -> InventoryItem:
    item = current_domain.repository_for(InventoryItem).get(inventory_item_id)
    if item.status == LifecycleStatus.DELETED:
        raise ObjectNotFoundError(f"Inventory item {inventory_item_id} has been deleted")
    return item


def get_item_state(inventory_item_id):
    """Snapshot of one item's counters, lifecycle and lock flag."""
    return load_live_item(inventory_item_id).snapshot()


def get_allocation(inventory_item_id, reference_type, reference_id):
    """The item's allocation for a subscription or event, or None."""
    return load_live_item(inventory_item_id).allocation_for(reference_type, reference_id)


def list_reference_allocations(reference_type, reference_id, open_only=False):
    filters = {"reference_type": reference_type, "reference_id": str(reference_id)}
    if open_only:
        filters["status"] = "open"
    return current_domain.repository_for(AllocationView)._dao.query.filter(**filters).limit(MAX_ROWS).all().items


def list_movements(inventory_item_id, limit=100):
    """Movements of one item, oldest first."""
    rows = (
        current_domain.repository_for(MovementLedger)
        ._dao.query.filter(inventory_item_id=str(inventory_item_id))
        .limit(MAX_ROWS)
        .all()
        .items
    )
    return sorted(rows, key=lambda row: row.occurred_at)[:limit]


def list_outlet_items(outlet_id, statuses=None):
    """Live items of an outlet, optionally restricted to lifecycle statuses."""
    rows = (
        current_domain.repository_for(ItemStock)._dao.query.filter(outlet_id=str(outlet_id)).limit(MAX_ROWS).all().items
    )
    if statuses:
        wanted = {s.value if isinstance(s, LifecycleStatus) else s for s in statuses}
        rows = [row for row in rows if row.lifecycle_status in wanted]
    return sorted(rows, key=lambda row: row.name)
