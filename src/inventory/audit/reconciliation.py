"""Physical audit workflow: commands and handler.

Adjustments for approved lines are recorded in the same unit of work as the
approval itself. If any item refuses its adjustment, the approval and every
other adjustment roll back with it.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from inventory.audit.session import ACTIVE_STATUSES, AuditSession, AuditStatus
from inventory.config import get_settings
from inventory.domain import inventory
from inventory.errors import ConflictError
from inventory.item.item import InventoryItem
from inventory.item.lifecycle import LifecycleStatus
from inventory.item.policy import Action, authorize, is_allowed
from inventory.item.queries import MAX_ROWS, list_outlet_items
from inventory.staff.staff import resolve_role

logger = structlog.get_logger(__name__)


@inventory.command(part_of="AuditSession")
class OpenAudit:
    outlet_id = Identifier(required=True)
    period = String(required=True, max_length=7)  # YYYY-MM
    notes = Text()
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class StartCounting:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class RecordCount:
    audit_id = Identifier(required=True)
    inventory_item_id = Identifier(required=True)
    physical_quantity = Integer()
    reason_code = String(max_length=50)
    notes = Text()
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class BeginReview:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class SubmitAudit:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="AuditSession")
class ApproveAudit:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)
    as_of = DateTime()


@inventory.command(part_of="AuditSession")
class RejectAudit:
    audit_id = Identifier(required=True)
    reason = Text(required=True)
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class CancelAudit:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)


@inventory.command(part_of="AuditSession")
class CloseAudit:
    audit_id = Identifier(required=True)
    performed_by = Identifier(required=True)


def _book_adjustments(session, actor, role, as_of=None):
    """Record one adjustment movement per nonzero line of an approved audit."""
    repo = current_domain.repository_for(InventoryItem)
    booked = 0
    for line in session.adjustment_lines():
        item = repo.get(line.inventory_item_id)
        note = f"{line.notes.strip()} " if line.notes and line.notes.strip() else ""
        item.reconcile(
            variance=line.variance,
            audit_id=str(session.id),
            reason_code=line.reason_code,
            notes=f"{note}[Audit {session.period}]",
            actor=actor,
            role=role,
            as_of=as_of,
        )
        repo.add(item)
        booked += 1

    logger.info(
        "Audit adjustments booked",
        audit_id=str(session.id),
        outlet_id=str(session.outlet_id),
        adjustments=booked,
    )
    return booked


def _needs_admin(session, role, as_of=None):
    """True when a line adjusts a locked item the submitter may not adjust."""
    if is_allowed(Action.ADJUST_LOCKED, role):
        return False
    repo = current_domain.repository_for(InventoryItem)
    return any(repo.get(line.inventory_item_id).is_balance_locked(as_of) for line in session.adjustment_lines())


@inventory.command_handler(part_of=AuditSession)
class ReconciliationHandler:
    @handle(OpenAudit)
    def open_audit(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)

        existing = repo._dao.query.filter(outlet_id=str(command.outlet_id)).limit(MAX_ROWS).all().items
        if any(a.period == command.period and a.status != AuditStatus.CANCELLED.value for a in existing):
            raise ConflictError({"period": [f"An audit already exists for {command.period}"]})
        in_progress = [a for a in existing if a.status in {s.value for s in ACTIVE_STATUSES}]
        if in_progress:
            raise ConflictError(
                {"outlet_id": [f"Audit for {in_progress[0].period} is still {in_progress[0].status}"]}
            )

        items = [
            (row.inventory_item_id, row.name, row.available)
            for row in list_outlet_items(command.outlet_id, (LifecycleStatus.DRAFT, LifecycleStatus.ACTIVE))
        ]
        session = AuditSession.open(
            outlet_id=command.outlet_id,
            period=command.period,
            items=items,
            created_by=command.performed_by,
            notes=command.notes,
        )
        repo.add(session)

        logger.info(
            "Audit opened",
            audit_id=str(session.id),
            outlet_id=str(command.outlet_id),
            period=command.period,
            items=len(items),
        )
        return str(session.id)

    @handle(StartCounting)
    def start_counting(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.start_counting()
        repo.add(session)

    @handle(RecordCount)
    def record_count(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.record_count(
            command.inventory_item_id,
            command.physical_quantity,
            large_variance_ratio=get_settings().large_variance_ratio,
            reason_code=command.reason_code,
            notes=command.notes,
        )
        repo.add(session)

    @handle(BeginReview)
    def begin_review(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.begin_review()
        repo.add(session)

    @handle(SubmitAudit)
    def submit_audit(self, command):
        role = resolve_role(command.performed_by)
        authorize(Action.RUN_AUDIT, role)
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)

        auto_approved = session.submit(
            command.performed_by,
            require_scrutiny_notes=get_settings().require_notes_for_large_variance,
            require_approval=_needs_admin(session, role, as_of=command.as_of),
            as_of=command.as_of,
        )
        if auto_approved:
            _book_adjustments(session, command.performed_by, role, as_of=command.as_of)
        repo.add(session)

        logger.info(
            "Audit submitted",
            audit_id=str(session.id),
            status=session.status,
            variance_positive=session.variance_positive,
            variance_negative=session.variance_negative,
        )
        return session.status

    @handle(ApproveAudit)
    def approve_audit(self, command):
        role = resolve_role(command.performed_by)
        authorize(Action.APPROVE_AUDIT, role)
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.approve(command.performed_by, as_of=command.as_of)
        _book_adjustments(session, command.performed_by, role, as_of=command.as_of)
        repo.add(session)

    @handle(RejectAudit)
    def reject_audit(self, command):
        authorize(Action.APPROVE_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.reject(command.performed_by, command.reason)
        repo.add(session)
        logger.info("Audit rejected", audit_id=str(session.id), reason=command.reason)

    @handle(CancelAudit)
    def cancel_audit(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.cancel(command.performed_by)
        repo.add(session)

    @handle(CloseAudit)
    def close_audit(self, command):
        authorize(Action.RUN_AUDIT, resolve_role(command.performed_by))
        repo = current_domain.repository_for(AuditSession)
        session = repo.get(command.audit_id)
        session.close()
        repo.add(session)
