"""Domain events for the AuditSession aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from inventory.domain import inventory


@inventory.event(part_of="AuditSession")
class AuditOpened:
    """A physical count was opened and book quantities snapshotted."""

    __version__ = 1

    audit_id = Identifier(required=True)
    outlet_id = Identifier(required=True)
    period = String(required=True)
    items_total = Integer()
    created_by = Identifier(required=True)
    opened_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditCountingStarted:
    __version__ = 1

    audit_id = Identifier(required=True)
    started_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditLineCounted:
    __version__ = 1

    audit_id = Identifier(required=True)
    inventory_item_id = Identifier(required=True)
    system_quantity = Integer()
    physical_quantity = Integer()
    variance = Integer()
    requires_scrutiny = Boolean(default=False)
    counted_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditReviewStarted:
    __version__ = 1

    audit_id = Identifier(required=True)
    started_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditSubmitted:
    """Counts were submitted; shortages wait for an admin."""

    __version__ = 1

    audit_id = Identifier(required=True)
    variance_positive = Integer()
    variance_negative = Integer()
    auto_approved = Boolean(default=False)
    submitted_by = Identifier(required=True)
    submitted_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditApproved:
    __version__ = 1

    audit_id = Identifier(required=True)
    outlet_id = Identifier(required=True)
    period = String(required=True)
    adjusted_lines = Integer()
    approved_by = Identifier(required=True)
    approved_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditRejected:
    __version__ = 1

    audit_id = Identifier(required=True)
    reason = Text(required=True)
    rejected_by = Identifier(required=True)
    rejected_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditCancelled:
    __version__ = 1

    audit_id = Identifier(required=True)
    cancelled_by = Identifier(required=True)
    cancelled_at = DateTime(required=True)


@inventory.event(part_of="AuditSession")
class AuditClosed:
    __version__ = 1

    audit_id = Identifier(required=True)
    final_status = String(required=True)
    closed_at = DateTime(required=True)
