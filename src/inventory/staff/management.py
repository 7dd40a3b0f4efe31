"""Staff management: commands and handler.

Only admins manage staff, except for the very first registration, which
bootstraps an empty outlet with its first admin. That first member must be
an admin, or nobody would be left to register anyone else.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.errors import ConflictError
from inventory.item.policy import Action, Role, authorize
from inventory.staff.staff import StaffMember, resolve_role

logger = structlog.get_logger(__name__)


@inventory.command(part_of="StaffMember")
class RegisterStaff:
    user_id = Identifier(required=True)
    full_name = String(required=True, max_length=200)
    role = String(required=True, max_length=20)
    performed_by = Identifier()  # Omitted only when bootstrapping the first admin


@inventory.command(part_of="StaffMember")
class ChangeStaffRole:
    user_id = Identifier(required=True)
    role = String(required=True, max_length=20)
    performed_by = Identifier(required=True)


@inventory.command(part_of="StaffMember")
class DeactivateStaff:
    user_id = Identifier(required=True)
    performed_by = Identifier(required=True)


@inventory.command_handler(part_of=StaffMember)
class StaffManagementHandler:
    @handle(RegisterStaff)
    def register_staff(self, command):
        repo = current_domain.repository_for(StaffMember)
        if repo._dao.query.limit(1).all().items:
            authorize(Action.MANAGE_STAFF, resolve_role(command.performed_by))
        elif command.role != Role.ADMIN.value:
            raise ValidationError({"role": ["The first staff member must be an admin"]})
        if repo._dao.query.filter(user_id=str(command.user_id)).all().items:
            raise ConflictError({"user_id": [f"User {command.user_id} is already registered"]})

        member = StaffMember.register(
            user_id=command.user_id,
            full_name=command.full_name,
            role=command.role,
        )
        repo.add(member)
        logger.info("Staff member registered", user_id=str(command.user_id), role=command.role)
        return str(member.user_id)

    @handle(ChangeStaffRole)
    def change_staff_role(self, command):
        authorize(Action.MANAGE_STAFF, resolve_role(command.performed_by))
        repo = current_domain.repository_for(StaffMember)
        member = repo.get(command.user_id)
        member.change_role(command.role, changed_by=command.performed_by)
        repo.add(member)

    @handle(DeactivateStaff)
    def deactivate_staff(self, command):
        authorize(Action.MANAGE_STAFF, resolve_role(command.performed_by))
        repo = current_domain.repository_for(StaffMember)
        member = repo.get(command.user_id)
        member.deactivate(deactivated_by=command.performed_by)
        repo.add(member)
