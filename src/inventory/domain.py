"""Inventory bounded context: the rental-dishware stock ledger.

Tracks every stock movement of an outlet's dishware as an event-sourced
ledger per item, derives stock counters from it, enforces the item
lifecycle, reconciles allocations against subscriptions and events, and
runs physical audits that correct drift through the same ledger.
"""

from protean.domain import Domain

from inventory.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
inventory = Domain(name="inventory")
