"""BDD tests for the item lifecycle."""

from pytest_bdd import parsers, scenarios, when

scenarios("features/item_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse('an item "{name}" is registered with {qty:d} units of opening stock'),
    target_fixture="item_id",
)
def _(register_item, name, qty):
    return register_item(name, qty)


@when(parsers.cfparse('{qty:d} units are dispatched to {reference_type} "{reference_id}"'))
def _(attempt, dispatch, item_id, qty, reference_type, reference_id):
    attempt(dispatch(item_id, reference_type, reference_id, qty))


@when("the item is discontinued")
def _(attempt, transition, item_id):
    attempt(transition(item_id, "discontinued"))


@when("the item is archived")
def _(attempt, transition, item_id):
    attempt(transition(item_id, "archived"))
