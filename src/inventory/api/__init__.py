from inventory.api.errors import register_inventory_exception_handlers
from inventory.api.routes import allocation_router, audit_router, item_router, staff_router

__all__ = [
    "item_router",
    "allocation_router",
    "audit_router",
    "staff_router",
    "register_inventory_exception_handlers",
]
