"""Cross-domain event contracts for the Rentals domain.

Subscriptions and one-off catering events are owned by Rentals. Inventory
consumes these notifications to dispatch stock when a rental starts, and to
check that nothing is still out before a rental is cancelled. They are
registered as external events with matching ``__type__`` strings.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String, Text


class SubscriptionActivated(BaseEvent):
    """A dishware subscription started; its items leave the outlet."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    outlet_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {"inventory_item_id", "quantity"}
    activated_by = Identifier(required=True)
    activated_at = DateTime(required=True)


class SubscriptionCancelled(BaseEvent):
    __version__ = 1

    subscription_id = Identifier(required=True)
    reason = String()
    cancelled_by = Identifier(required=True)
    cancelled_at = DateTime(required=True)


class RentalEventConfirmed(BaseEvent):
    """A catering event was confirmed; its items are dispatched."""

    __version__ = 1

    event_id = Identifier(required=True)
    outlet_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {"inventory_item_id", "quantity"}
    confirmed_by = Identifier(required=True)
    confirmed_at = DateTime(required=True)


class RentalEventCancelled(BaseEvent):
    __version__ = 1

    event_id = Identifier(required=True)
    reason = String()
    cancelled_by = Identifier(required=True)
    cancelled_at = DateTime(required=True)
