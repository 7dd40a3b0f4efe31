"""Application tests for settling a subscription or event before cancellation."""

import pytest
from inventory.errors import StateError
from inventory.item.allocation import AllocateStock, ReturnStock, SettleReference
from inventory.item.queries import list_reference_allocations
from inventory.item.registration import RegisterItem
from inventory.item.transitions import TransitionLifecycle
from protean import current_domain
from protean.exceptions import ValidationError


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _active_item(staff, name):
    item_id = _process(
        RegisterItem(
            name=name,
            outlet_id="outlet-001",
            category="cutlery",
            opening_stock=50,
            performed_by=staff["manager"],
        )
    )
    _process(TransitionLifecycle(inventory_item_id=item_id, target="active", performed_by=staff["manager"]))
    return item_id


def _dispatch(staff, item_id, quantity, reference_id="sub-001"):
    _process(
        AllocateStock(
            inventory_item_id=item_id,
            reference_type="subscription",
            reference_id=reference_id,
            quantity=quantity,
            performed_by=staff["manager"],
        )
    )


def _return(staff, item_id, quantity, reference_id="sub-001"):
    _process(
        ReturnStock(
            inventory_item_id=item_id,
            reference_type="subscription",
            reference_id=reference_id,
            quantity=quantity,
            performed_by=staff["manager"],
        )
    )


class TestSettleReference:
    def test_settled_reference_reports_its_allocations(self, staff):
        fork = _active_item(staff, "Dinner Fork")
        knife = _active_item(staff, "Dinner Knife")
        _dispatch(staff, fork, 10)
        _dispatch(staff, knife, 10)
        _return(staff, fork, 10)
        _return(staff, knife, 10)

        settled = _process(SettleReference(reference_type="subscription", reference_id="sub-001"))
        assert settled == 2

    def test_outstanding_stock_blocks_every_item(self, staff):
        fork = _active_item(staff, "Dinner Fork")
        knife = _active_item(staff, "Dinner Knife")
        _dispatch(staff, fork, 10)
        _dispatch(staff, knife, 6)
        _return(staff, fork, 7)

        with pytest.raises(StateError) as exc:
            _process(SettleReference(reference_type="subscription", reference_id="sub-001"))

        messages = exc.value.messages["allocations"]
        assert len(messages) == 2
        assert any("3 units of Dinner Fork" in message for message in messages)
        assert any("6 units of Dinner Knife" in message for message in messages)

    def test_settling_writes_nothing(self, staff):
        fork = _active_item(staff, "Dinner Fork")
        _dispatch(staff, fork, 10)
        with pytest.raises(StateError):
            _process(SettleReference(reference_type="subscription", reference_id="sub-001"))

        rows = list_reference_allocations("subscription", "sub-001")
        assert [(row.outstanding, row.status) for row in rows] == [(10, "open")]

    def test_reference_without_allocations_is_settled(self, staff):
        assert _process(SettleReference(reference_type="event", reference_id="evt-404")) == 0

    def test_manual_references_cannot_be_settled(self, staff):
        with pytest.raises(ValidationError):
            _process(SettleReference(reference_type="manual", reference_id="m-1"))

    def test_open_only_listing(self, staff):
        fork = _active_item(staff, "Dinner Fork")
        knife = _active_item(staff, "Dinner Knife")
        _dispatch(staff, fork, 2)
        _dispatch(staff, knife, 2)
        _return(staff, fork, 2)

        open_rows = list_reference_allocations("subscription", "sub-001", open_only=True)
        assert [str(row.inventory_item_id) for row in open_rows] == [knife]
