"""Lifecycle state machine for inventory items.

Which transitions exist, and which movement categories each state admits.
Guards that depend on stock or history live on the aggregate.
"""

from enum import Enum

from protean.exceptions import ValidationError

from inventory.errors import StateError
from inventory.item.movements import MovementCategory


class LifecycleStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    DISCONTINUED = "discontinued"
    ARCHIVED = "archived"
    DELETED = "deleted"


_VALID_TRANSITIONS = {
    LifecycleStatus.DRAFT: {LifecycleStatus.ACTIVE, LifecycleStatus.DELETED},
    LifecycleStatus.ACTIVE: {LifecycleStatus.DISCONTINUED, LifecycleStatus.DELETED},
    LifecycleStatus.DISCONTINUED: {LifecycleStatus.ACTIVE, LifecycleStatus.ARCHIVED},
    LifecycleStatus.ARCHIVED: set(),
    LifecycleStatus.DELETED: set(),
}

_ADMISSIBLE_CATEGORIES = {
    LifecycleStatus.DRAFT: {
        MovementCategory.INFLOW,
        MovementCategory.ADJUSTMENT,
        MovementCategory.WRITEOFF,
        MovementCategory.REPAIR,
    },
    LifecycleStatus.ACTIVE: set(MovementCategory),
    LifecycleStatus.DISCONTINUED: {MovementCategory.RETURN, MovementCategory.WRITEOFF},
    LifecycleStatus.ARCHIVED: set(),
    LifecycleStatus.DELETED: set(),
}


def parse_status(value) -> LifecycleStatus:
    try:
        return LifecycleStatus(value)
    except ValueError:
        raise ValidationError({"target": [f"Unknown lifecycle status: {value}"]}) from None


def check_transition(current: LifecycleStatus, target: LifecycleStatus) -> None:
    if target not in _VALID_TRANSITIONS[current]:
        raise StateError({"lifecycle_status": [f"Cannot transition from {current.value} to {target.value}"]})


def check_admissible(status: LifecycleStatus, category: MovementCategory) -> None:
    if category in _ADMISSIBLE_CATEGORIES[status]:
        return
    if status == LifecycleStatus.ARCHIVED:
        message = "Archived items are read-only and accept no movements"
    else:
        message = f"{category.value} movements are not allowed while the item is {status.value}"
    raise ValidationError({"lifecycle_status": [message]})
