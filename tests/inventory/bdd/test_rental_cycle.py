"""BDD tests for dispatching, returning and settling rental stock."""

from inventory.item.allocation import SettleReference
from inventory.item.writeoff import WriteOffStock
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/rental_cycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{qty:d} units are dispatched to {reference_type} "{reference_id}"'))
def _(attempt, dispatch, item_id, qty, reference_type, reference_id):
    attempt(dispatch(item_id, reference_type, reference_id, qty))


@when(parsers.cfparse('{qty:d} units come back in good condition from {reference_type} "{reference_id}"'))
def _(attempt, give_back, item_id, qty, reference_type, reference_id):
    attempt(give_back(item_id, reference_type, reference_id, qty))


@when(parsers.cfparse('{qty:d} units come back damaged from {reference_type} "{reference_id}"'))
def _(attempt, give_back, item_id, qty, reference_type, reference_id):
    attempt(give_back(item_id, reference_type, reference_id, qty, damaged=True))


@when(parsers.cfparse('{qty:d} units are reported lost at {reference_type} "{reference_id}"'))
def _(attempt, staff, item_id, qty, reference_type, reference_id):
    attempt(
        WriteOffStock(
            inventory_item_id=item_id,
            writeoff_type="loss",
            quantity=qty,
            reason_code="client_lost",
            notes="Not returned after the event",
            reference_type=reference_type,
            reference_id=reference_id,
            performed_by=staff["manager"],
        )
    )


@when(parsers.cfparse('{reference_type} "{reference_id}" is settled'))
def _(attempt, reference_type, reference_id):
    attempt(SettleReference(reference_type=reference_type, reference_id=reference_id))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("{count:d} allocation is reported settled"))
def _(outcome, count):
    assert outcome["error"] is None
    assert outcome["result"] == count
