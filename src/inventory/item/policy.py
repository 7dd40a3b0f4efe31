"""Authorization policy: one table keyed by (action, lifecycle state) -> roles.

Every role check in the inventory context goes through ``authorize``.
Accountants are read-only and appear in no entry.
"""

from enum import Enum

from inventory.errors import AuthorizationError
from inventory.item.lifecycle import LifecycleStatus


class Role(Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    ACCOUNTANT = "accountant"


class Action(Enum):
    RECORD_MOVEMENT = "record_movement"
    ADJUST_LOCKED = "adjust_locked"
    RECONCILE = "reconcile"
    CONFIRM_OPENING_BALANCE = "confirm_opening_balance"
    ACTIVATE = "activate"
    DISCONTINUE = "discontinue"
    REACTIVATE = "reactivate"
    DELETE = "delete"
    ARCHIVE = "archive"
    EDIT_DETAILS = "edit_details"
    RUN_AUDIT = "run_audit"
    APPROVE_AUDIT = "approve_audit"
    MANAGE_STAFF = "manage_staff"


ANY_STATE = None

_STAFF = frozenset({Role.ADMIN, Role.MANAGER})
_ADMIN = frozenset({Role.ADMIN})

POLICY = {
    (Action.RECORD_MOVEMENT, ANY_STATE): _STAFF,
    (Action.ADJUST_LOCKED, ANY_STATE): _ADMIN,
    (Action.RECONCILE, ANY_STATE): _STAFF,
    (Action.CONFIRM_OPENING_BALANCE, LifecycleStatus.DRAFT): _STAFF,
    (Action.CONFIRM_OPENING_BALANCE, LifecycleStatus.ACTIVE): _STAFF,
    (Action.ACTIVATE, LifecycleStatus.DRAFT): _STAFF,
    (Action.DISCONTINUE, LifecycleStatus.ACTIVE): _STAFF,
    (Action.REACTIVATE, LifecycleStatus.DISCONTINUED): _STAFF,
    (Action.DELETE, LifecycleStatus.DRAFT): _STAFF,
    (Action.DELETE, LifecycleStatus.ACTIVE): _ADMIN,
    (Action.ARCHIVE, LifecycleStatus.DISCONTINUED): _ADMIN,
    (Action.EDIT_DETAILS, ANY_STATE): _STAFF,
    (Action.RUN_AUDIT, ANY_STATE): _STAFF,
    (Action.APPROVE_AUDIT, ANY_STATE): _ADMIN,
    (Action.MANAGE_STAFF, ANY_STATE): _ADMIN,
}

# Lifecycle action needed to move from one state to another
TRANSITION_ACTIONS = {
    (LifecycleStatus.DRAFT, LifecycleStatus.ACTIVE): Action.ACTIVATE,
    (LifecycleStatus.DRAFT, LifecycleStatus.DELETED): Action.DELETE,
    (LifecycleStatus.ACTIVE, LifecycleStatus.DISCONTINUED): Action.DISCONTINUE,
    (LifecycleStatus.ACTIVE, LifecycleStatus.DELETED): Action.DELETE,
    (LifecycleStatus.DISCONTINUED, LifecycleStatus.ACTIVE): Action.REACTIVATE,
    (LifecycleStatus.DISCONTINUED, LifecycleStatus.ARCHIVED): Action.ARCHIVE,
}


def allowed_roles(action: Action, status: LifecycleStatus | None = None) -> frozenset:
    """Roles permitted to perform ``action`` on an item in ``status``.

    An entry for the specific state wins over the any-state entry.
    """
    if (action, status) in POLICY:
        return POLICY[(action, status)]
    return POLICY.get((action, ANY_STATE), frozenset())


def is_allowed(action: Action, role, status: LifecycleStatus | None = None) -> bool:
    try:
        role = Role(role.value if isinstance(role, Role) else role)
    except ValueError:
        return False
    return role in allowed_roles(action, status)


def authorize(action: Action, role, status: LifecycleStatus | None = None) -> None:
    if not is_allowed(action, role, status):
        role_name = role.value if isinstance(role, Role) else role
        where = f" on a {status.value} item" if status is not None else ""
        raise AuthorizationError({"role": [f"Role {role_name} may not {action.value.replace('_', ' ')}{where}"]})
