"""Application tests for the physical audit workflow.

Approved variances are booked as adjustment movements against each item's
ledger, in the same unit of work as the approval.
"""

import pytest
from inventory.audit.reconciliation import (
    ApproveAudit,
    BeginReview,
    CancelAudit,
    CloseAudit,
    OpenAudit,
    RecordCount,
    RejectAudit,
    StartCounting,
    SubmitAudit,
)
from inventory.audit.session import AuditSession
from inventory.errors import AuthorizationError, ConflictError, InsufficientStockError, StateError
from inventory.item.allocation import AllocateStock
from inventory.item.queries import get_item_state, list_movements
from inventory.item.registration import RegisterItem
from inventory.item.transitions import TransitionLifecycle
from protean import current_domain
from protean.exceptions import ValidationError


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _item(staff, name, opening_stock, outlet_id="outlet-001", target="active"):
    item_id = _process(
        RegisterItem(
            name=name,
            outlet_id=outlet_id,
            category="plates",
            opening_stock=opening_stock,
            performed_by=staff["manager"],
        )
    )
    if target in ("active", "discontinued"):
        _process(TransitionLifecycle(inventory_item_id=item_id, target="active", performed_by=staff["manager"]))
    if target == "discontinued":
        _process(TransitionLifecycle(inventory_item_id=item_id, target="discontinued", performed_by=staff["manager"]))
    return item_id


@pytest.fixture
def outlet(staff):
    return {
        "plate": _item(staff, "Dinner Plate", 100),
        "bowl": _item(staff, "Soup Bowl", 40),
    }


def _open(staff, period="2026-09", outlet_id="outlet-001", role="manager"):
    return _process(OpenAudit(outlet_id=outlet_id, period=period, performed_by=staff[role]))


def _count(staff, audit_id, item_id, physical, reason=None, notes=None):
    _process(
        RecordCount(
            audit_id=audit_id,
            inventory_item_id=item_id,
            physical_quantity=physical,
            reason_code=reason,
            notes=notes,
            performed_by=staff["manager"],
        )
    )


def _submitted(staff, outlet, plate_count, plate_reason, bowl_count=40, bowl_reason=None, submitter="manager"):
    audit_id = _open(staff)
    _process(StartCounting(audit_id=audit_id, performed_by=staff["manager"]))
    _count(staff, audit_id, outlet["plate"], plate_count, plate_reason)
    _count(staff, audit_id, outlet["bowl"], bowl_count, bowl_reason)
    _process(BeginReview(audit_id=audit_id, performed_by=staff["manager"]))
    status = _process(SubmitAudit(audit_id=audit_id, performed_by=staff[submitter]))
    return audit_id, status


def _session(audit_id):
    return current_domain.repository_for(AuditSession).get(audit_id)


class TestOpenAudit:
    def test_snapshots_live_items_of_the_outlet(self, staff, outlet):
        _item(staff, "Side Plate", 10, outlet_id="outlet-002")
        _item(staff, "Old Saucer", 0, target="discontinued")
        draft = _item(staff, "New Platter", 6, target="draft")

        session = _session(_open(staff))
        snapshot = {str(line.inventory_item_id): line.system_quantity for line in session.lines}
        assert snapshot == {outlet["plate"]: 100, outlet["bowl"]: 40, draft: 6}

    def test_snapshot_uses_available_stock(self, staff, outlet):
        _process(
            AllocateStock(
                inventory_item_id=outlet["plate"],
                reference_type="event",
                reference_id="evt-001",
                quantity=30,
                performed_by=staff["manager"],
            )
        )
        session = _session(_open(staff))
        plate = next(line for line in session.lines if str(line.inventory_item_id) == outlet["plate"])
        assert plate.system_quantity == 70

    def test_accountant_cannot_open(self, staff, outlet):
        with pytest.raises(AuthorizationError):
            _open(staff, role="accountant")

    def test_one_audit_per_period(self, staff, outlet):
        _open(staff)
        with pytest.raises(ConflictError):
            _open(staff)

    def test_cancelled_period_can_be_reopened(self, staff, outlet):
        audit_id = _open(staff)
        _process(CancelAudit(audit_id=audit_id, performed_by=staff["manager"]))
        assert _open(staff) != audit_id

    def test_one_running_audit_per_outlet(self, staff, outlet):
        audit_id = _open(staff)
        _process(StartCounting(audit_id=audit_id, performed_by=staff["manager"]))
        with pytest.raises(ConflictError) as exc:
            _open(staff, period="2026-10")
        assert "still counting" in exc.value.messages["outlet_id"][0]

    def test_outlet_without_items(self, staff):
        with pytest.raises(ValidationError):
            _open(staff, outlet_id="outlet-empty")


class TestSubmitAudit:
    def test_surplus_is_booked_immediately(self, staff, outlet):
        audit_id, status = _submitted(staff, outlet, 103, "audit_surplus")
        assert status == "approved"
        assert get_item_state(outlet["plate"]).available == 103

        movement = list_movements(outlet["plate"])[-1]
        assert movement.movement_type == "adjustment_positive"
        assert movement.reference_type == "audit"
        assert str(movement.reference_id) == audit_id
        assert movement.notes.endswith("[Audit 2026-09]")

    def test_surplus_on_locked_item_waits_for_an_admin(self, staff, outlet):
        _process(
            AllocateStock(
                inventory_item_id=outlet["plate"],
                reference_type="event",
                reference_id="evt-001",
                quantity=10,
                performed_by=staff["manager"],
            )
        )
        assert get_item_state(outlet["plate"]).opening_balance_confirmed is True

        audit_id, status = _submitted(staff, outlet, 92, "found_stock")
        assert status == "pending_approval"
        assert get_item_state(outlet["plate"]).available == 90

        _process(ApproveAudit(audit_id=audit_id, performed_by=staff["admin"]))
        assert _session(audit_id).status == "approved"
        assert get_item_state(outlet["plate"]).available == 92
        assert str(list_movements(outlet["plate"])[-1].actor) == str(staff["admin"])

    def test_admin_surplus_on_locked_item_is_booked_immediately(self, staff, outlet):
        _process(
            AllocateStock(
                inventory_item_id=outlet["plate"],
                reference_type="event",
                reference_id="evt-001",
                quantity=10,
                performed_by=staff["manager"],
            )
        )
        assert get_item_state(outlet["plate"]).opening_balance_confirmed is True

        _, status = _submitted(staff, outlet, 92, "found_stock", submitter="admin")
        assert status == "approved"
        assert get_item_state(outlet["plate"]).available == 92

    def test_shortage_waits_for_an_admin(self, staff, outlet):
        audit_id, status = _submitted(staff, outlet, 95, "audit_shortage")
        assert status == "pending_approval"
        assert get_item_state(outlet["plate"]).available == 100

        with pytest.raises(AuthorizationError):
            _process(ApproveAudit(audit_id=audit_id, performed_by=staff["manager"]))

        _process(ApproveAudit(audit_id=audit_id, performed_by=staff["admin"]))
        assert _session(audit_id).status == "approved"
        assert get_item_state(outlet["plate"]).available == 95
        assert get_item_state(outlet["plate"]).total == 95

    def test_uncounted_items_block_review(self, staff, outlet):
        audit_id = _open(staff)
        _process(StartCounting(audit_id=audit_id, performed_by=staff["manager"]))
        _count(staff, audit_id, outlet["plate"], 100)
        with pytest.raises(StateError):
            _process(BeginReview(audit_id=audit_id, performed_by=staff["manager"]))


class TestApprovalIsAtomic:
    def test_failed_adjustment_rolls_back_the_approval(self, staff, outlet):
        audit_id, _ = _submitted(staff, outlet, 90, "audit_shortage", bowl_count=38, bowl_reason="missing_stock")

        # Stock moves after the count; the bowl shortage can no longer be booked
        _process(
            AllocateStock(
                inventory_item_id=outlet["bowl"],
                reference_type="event",
                reference_id="evt-001",
                quantity=39,
                performed_by=staff["manager"],
            )
        )

        with pytest.raises(InsufficientStockError):
            _process(ApproveAudit(audit_id=audit_id, performed_by=staff["admin"]))

        assert _session(audit_id).status == "pending_approval"
        # The plate line was booked first and is rolled back with the rest
        assert get_item_state(outlet["plate"]).available == 100
        assert get_item_state(outlet["bowl"]).available == 1


class TestRejectAndClose:
    def test_reject_then_close(self, staff, outlet):
        audit_id, _ = _submitted(staff, outlet, 95, "audit_shortage")
        _process(RejectAudit(audit_id=audit_id, reason="Recount plates", performed_by=staff["admin"]))
        _process(CloseAudit(audit_id=audit_id, performed_by=staff["manager"]))

        session = _session(audit_id)
        assert session.status == "closed"
        assert session.rejection_reason == "Recount plates"
        assert get_item_state(outlet["plate"]).available == 100

    def test_closed_period_blocks_a_new_audit(self, staff, outlet):
        audit_id, _ = _submitted(staff, outlet, 101, "audit_surplus")
        _process(CloseAudit(audit_id=audit_id, performed_by=staff["manager"]))
        with pytest.raises(ConflictError):
            _open(staff)
        assert _open(staff, period="2026-10")
