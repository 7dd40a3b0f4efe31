"""Inbound cross-domain event handlers: Inventory reacts to Rentals events.

Activations dispatch the listed items against the subscription or event.

Cancellation is gated upstream: Rentals must call SettleReference
(`PUT /allocations/{reference_type}/{reference_id}/settle`) and only cancel
once it succeeds. By the time a cancellation event arrives here it has
already happened, so these handlers cannot block it. They only report: the
same check runs again, and anything still outstanding is logged as an error
for staff to resolve. Stock that is still out is never written off
implicitly.

Cross-domain events are imported from shared.events.rentals and registered
as external events via inventory.register_external_event().
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from shared.events.rentals import (
    RentalEventCancelled,
    RentalEventConfirmed,
    SubscriptionActivated,
    SubscriptionCancelled,
)

from inventory.domain import inventory
from inventory.item.item import InventoryItem
from inventory.item.movements import ReferenceType

logger = structlog.get_logger(__name__)

# Register external events so Protean can deserialize them
inventory.register_external_event(SubscriptionActivated, "Rentals.SubscriptionActivated.v1")
inventory.register_external_event(SubscriptionCancelled, "Rentals.SubscriptionCancelled.v1")
inventory.register_external_event(RentalEventConfirmed, "Rentals.RentalEventConfirmed.v1")
inventory.register_external_event(RentalEventCancelled, "Rentals.RentalEventCancelled.v1")


def _parse_items(raw):
    if not raw:
        return []
    return json.loads(raw) if isinstance(raw, str) else raw


def dispatch_items(reference_type, reference_id, items, performed_by):
    """Allocate each listed item; failures are logged and skipped.

    Returns the number of items dispatched.
    """
    from inventory.item.allocation import AllocateStock

    dispatched = 0
    for entry in _parse_items(items):
        item_id = entry.get("inventory_item_id")
        quantity = entry.get("quantity", 1)
        try:
            current_domain.process(
                AllocateStock(
                    inventory_item_id=str(item_id),
                    reference_type=reference_type.value,
                    reference_id=str(reference_id),
                    quantity=quantity,
                    performed_by=str(performed_by),
                ),
                asynchronous=False,
            )
            dispatched += 1
            logger.info(
                "Dispatched item for rental",
                inventory_item_id=str(item_id),
                reference_type=reference_type.value,
                reference_id=str(reference_id),
                quantity=quantity,
            )
        except (ValidationError, ObjectNotFoundError) as exc:
            logger.warning(
                "Failed to dispatch item for rental",
                inventory_item_id=str(item_id),
                reference_type=reference_type.value,
                reference_id=str(reference_id),
                error=str(getattr(exc, "messages", exc)),
            )
    return dispatched


def settle_cancelled(reference_type, reference_id):
    """Report whether a cancelled rental left stock outstanding. Returns True when settled."""
    from inventory.item.allocation import SettleReference

    try:
        current_domain.process(
            SettleReference(reference_type=reference_type.value, reference_id=str(reference_id)),
            asynchronous=False,
        )
    except ValidationError as exc:
        logger.error(
            "Cancelled rental still has stock outstanding",
            reference_type=reference_type.value,
            reference_id=str(reference_id),
            outstanding=exc.messages.get("allocations", []),
        )
        return False
    return True


@inventory.event_handler(part_of=InventoryItem, stream_category="rentals::subscription")
class SubscriptionInventoryEventHandler:
    """Reacts to subscription lifecycle events from the Rentals domain."""

    @handle(SubscriptionActivated)
    def on_subscription_activated(self, event: SubscriptionActivated) -> None:
        logger.info("Dispatching stock for activated subscription", subscription_id=str(event.subscription_id))
        dispatch_items(ReferenceType.SUBSCRIPTION, event.subscription_id, event.items, event.activated_by)

    @handle(SubscriptionCancelled)
    def on_subscription_cancelled(self, event: SubscriptionCancelled) -> None:
        logger.info(
            "Checking allocations for cancelled subscription",
            subscription_id=str(event.subscription_id),
            reason=event.reason,
        )
        settle_cancelled(ReferenceType.SUBSCRIPTION, event.subscription_id)


@inventory.event_handler(part_of=InventoryItem, stream_category="rentals::event")
class RentalEventInventoryEventHandler:
    """Reacts to catering event lifecycle events from the Rentals domain."""

    @handle(RentalEventConfirmed)
    def on_rental_event_confirmed(self, event: RentalEventConfirmed) -> None:
        logger.info("Dispatching stock for confirmed event", event_id=str(event.event_id))
        dispatch_items(ReferenceType.EVENT, event.event_id, event.items, event.confirmed_by)

    @handle(RentalEventCancelled)
    def on_rental_event_cancelled(self, event: RentalEventCancelled) -> None:
        logger.info("Checking allocations for cancelled event", event_id=str(event.event_id), reason=event.reason)
        settle_cancelled(ReferenceType.EVENT, event.event_id)
