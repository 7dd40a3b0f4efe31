"""Domain events for the StaffMember aggregate."""

from protean.fields import DateTime, Identifier, String

from inventory.domain import inventory


@inventory.event(part_of="StaffMember")
class StaffRegistered:
    __version__ = 1

    user_id = Identifier(required=True)
    full_name = String(required=True)
    role = String(required=True)
    registered_at = DateTime(required=True)


@inventory.event(part_of="StaffMember")
class StaffRoleChanged:
    __version__ = 1

    user_id = Identifier(required=True)
    previous_role = String(required=True)
    new_role = String(required=True)
    changed_by = Identifier(required=True)
    changed_at = DateTime(required=True)


@inventory.event(part_of="StaffMember")
class StaffDeactivated:
    __version__ = 1

    user_id = Identifier(required=True)
    deactivated_by = Identifier(required=True)
    deactivated_at = DateTime(required=True)
