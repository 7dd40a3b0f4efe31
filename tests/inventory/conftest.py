import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def inventory_bed():
    from inventory.domain import inventory
    from inventory.utils.db import drop_db, setup_db

    bed = DomainFixture(inventory)
    bed.setup()
    setup_db(inventory)
    yield bed
    drop_db(inventory)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(inventory_bed):
    with inventory_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        for _, broker in current_domain.brokers.items():
            broker._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture
def staff():
    """Register one active user per role and return their ids."""
    from inventory.staff.management import RegisterStaff
    from protean import current_domain

    users = {"admin": "usr-admin", "manager": "usr-manager", "accountant": "usr-accountant"}
    current_domain.process(
        RegisterStaff(user_id=users["admin"], full_name="Asha Admin", role="admin"),
        asynchronous=False,
    )
    for role in ("manager", "accountant"):
        current_domain.process(
            RegisterStaff(
                user_id=users[role],
                full_name=f"{role.title()} User",
                role=role,
                performed_by=users["admin"],
            ),
            asynchronous=False,
        )
    return users
