"""StaffMember aggregate (CQRS): who may touch the ledger, and as what.

The inventory context keeps its own copy of each user's role so every
command can be authorized locally. Accountants may read but never write.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.errors import AuthorizationError, StateError
from inventory.item.policy import Role
from inventory.staff.events import StaffDeactivated, StaffRegistered, StaffRoleChanged


def _parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError({"role": [f"Unknown role: {value}"]}) from None


@inventory.aggregate
class StaffMember:
    user_id = Identifier(identifier=True, required=True)
    full_name = String(required=True, max_length=200)
    role = String(choices=Role, required=True)
    is_active = Boolean(default=True)
    registered_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, user_id, full_name, role):
        now = datetime.now(UTC)
        role = _parse_role(role)
        member = cls(
            user_id=str(user_id),
            full_name=full_name,
            role=role.value,
            registered_at=now,
            updated_at=now,
        )
        member.raise_(
            StaffRegistered(
                user_id=str(user_id),
                full_name=full_name,
                role=role.value,
                registered_at=now,
            )
        )
        return member

    def change_role(self, new_role, changed_by):
        new_role = _parse_role(new_role)
        if not self.is_active:
            raise StateError({"user_id": ["Cannot change the role of an inactive user"]})
        if new_role.value == self.role:
            return

        previous = self.role
        self.role = new_role.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StaffRoleChanged(
                user_id=str(self.user_id),
                previous_role=previous,
                new_role=new_role.value,
                changed_by=str(changed_by),
                changed_at=self.updated_at,
            )
        )

    def deactivate(self, deactivated_by):
        if not self.is_active:
            raise StateError({"user_id": ["User is already inactive"]})
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StaffDeactivated(
                user_id=str(self.user_id),
                deactivated_by=str(deactivated_by),
                deactivated_at=self.updated_at,
            )
        )


def resolve_role(user_id) -> Role:
    """Role of an active user; unknown or inactive users are refused."""
    if not user_id:
        raise AuthorizationError({"performed_by": ["An acting user is required"]})
    try:
        member = current_domain.repository_for(StaffMember).get(str(user_id))
    except ObjectNotFoundError:
        raise AuthorizationError({"performed_by": [f"Unknown user {user_id}"]}) from None
    if not member.is_active:
        raise AuthorizationError({"performed_by": [f"User {user_id} is inactive"]})
    return Role(member.role)
