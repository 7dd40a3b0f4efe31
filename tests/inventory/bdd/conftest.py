"""Shared BDD fixtures and step definitions for the Inventory domain.

Steps drive the domain through ``current_domain.process`` and read the
results back through the same queries the API uses. ``Given`` steps must
succeed; ``When`` steps record a refusal in ``outcome`` so ``Then`` steps can
assert on it.
"""

import pytest
from inventory.errors import ConflictError, InsufficientStockError, OverReturnError, StateError
from inventory.item.allocation import AllocateStock, ReturnStock
from inventory.item.queries import get_allocation, get_item_state
from inventory.item.registration import RegisterItem
from inventory.item.transitions import TransitionLifecycle
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Refusals the API answers with 409 Conflict
_CONFLICTS = (ConflictError, InsufficientStockError, OverReturnError, StateError)


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def outlet_id():
    return "outlet-001"


@pytest.fixture()
def items():
    """Item ids by name, for steps that refer to items by what they are."""
    return {}


@pytest.fixture()
def outcome():
    return {"result": None, "error": None}


# ---------------------------------------------------------------------------
# Action fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def process():
    return _process


@pytest.fixture()
def attempt(outcome):
    """Process a command, recording a refusal instead of raising it."""

    def _attempt(command):
        try:
            outcome["result"] = _process(command)
        except ValidationError as exc:
            outcome["error"] = exc
        return outcome

    return _attempt


@pytest.fixture()
def register_item(staff, outlet_id, items):
    def _register(name, opening_stock):
        items[name] = _process(
            RegisterItem(
                name=name,
                outlet_id=outlet_id,
                category="tableware",
                material="porcelain",
                opening_stock=opening_stock,
                performed_by=staff["manager"],
            )
        )
        return items[name]

    return _register


@pytest.fixture()
def transition(staff):
    def _transition(item_id, target):
        return TransitionLifecycle(inventory_item_id=item_id, target=target, performed_by=staff["manager"])

    return _transition


@pytest.fixture()
def dispatch(staff):
    def _dispatch(item_id, reference_type, reference_id, quantity):
        return AllocateStock(
            inventory_item_id=item_id,
            reference_type=reference_type,
            reference_id=reference_id,
            quantity=quantity,
            performed_by=staff["manager"],
        )

    return _dispatch


@pytest.fixture()
def give_back(staff):
    def _give_back(item_id, reference_type, reference_id, quantity, damaged=False):
        return ReturnStock(
            inventory_item_id=item_id,
            reference_type=reference_type,
            reference_id=reference_id,
            quantity=quantity,
            damaged=damaged,
            performed_by=staff["manager"],
        )

    return _give_back


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a draft item "{name}" with {qty:d} units in stock'), target_fixture="item_id")
def _(register_item, name, qty):
    return register_item(name, qty)


@given(parsers.cfparse('an active item "{name}" with {qty:d} units in stock'), target_fixture="item_id")
def _(register_item, transition, name, qty):
    item_id = register_item(name, qty)
    _process(transition(item_id, "active"))
    return item_id


@given(parsers.cfparse('{qty:d} units were dispatched to {reference_type} "{reference_id}"'))
def _(dispatch, item_id, qty, reference_type, reference_id):
    _process(dispatch(item_id, reference_type, reference_id, qty))


@given(parsers.cfparse('{qty:d} units came back in good condition from {reference_type} "{reference_id}"'))
def _(give_back, item_id, qty, reference_type, reference_id):
    _process(give_back(item_id, reference_type, reference_id, qty))


@given("the item was discontinued")
def _(transition, item_id):
    _process(transition(item_id, "discontinued"))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the {counter} quantity is {qty:d}"))
def _(item_id, counter, qty):
    assert getattr(get_item_state(item_id), counter) == qty


@then(parsers.cfparse("the item is {status}"))
def _(item_id, status):
    assert get_item_state(item_id).lifecycle_status == status


@then(parsers.cfparse('the allocation for {reference_type} "{reference_id}" is {status}'))
def _(item_id, reference_type, reference_id, status):
    assert get_allocation(item_id, reference_type, reference_id).status == status


@then("the action is refused as a conflict")
def _(outcome):
    assert isinstance(outcome["error"], _CONFLICTS)


@then("the action fails with a validation error")
def _(outcome):
    assert isinstance(outcome["error"], ValidationError)
    assert not isinstance(outcome["error"], _CONFLICTS)
