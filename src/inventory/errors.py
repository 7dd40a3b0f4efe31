"""Inventory rule violations.

Every error is a protean ``ValidationError`` carrying a ``{"field": [msg]}``
dict, so callers that already handle validation failures handle these too.
The subclasses let the API layer map them to distinct status codes.
"""

from protean.exceptions import ValidationError


class InsufficientStockError(ValidationError):
    """A movement would drive a stock counter below zero."""


class ConflictError(ValidationError):
    """A uniqueness rule was violated (duplicate allocation, duplicate audit)."""


class OverReturnError(ValidationError):
    """A return or write-off exceeds the allocation's outstanding quantity."""


class AuthorizationError(ValidationError):
    """The acting user's role does not permit the action."""


class StateError(ValidationError):
    """The aggregate is in a state that does not allow the operation."""
