"""Movement taxonomy: categories, types, reason codes and reference rules.

Pure data and checks with no aggregate state, shared by the aggregate, the
command layer and the reconciliation workflow.
"""

from enum import Enum

from protean.exceptions import ValidationError


class MovementCategory(Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    RETURN = "return"
    WRITEOFF = "writeoff"
    ADJUSTMENT = "adjustment"
    REPAIR = "repair"


class MovementType(Enum):
    OPENING_STOCK = "opening_stock"
    PURCHASE = "purchase"
    ALLOCATION = "allocation"
    RETURN_GOOD = "return_good"
    RETURN_DAMAGED = "return_damaged"
    DAMAGE_WAREHOUSE = "damage_warehouse"
    DAMAGE_CLIENT = "damage_client"
    LOSS = "loss"
    DISPOSAL = "disposal"
    ADJUSTMENT_POSITIVE = "adjustment_positive"
    ADJUSTMENT_NEGATIVE = "adjustment_negative"
    SEND_TO_REPAIR = "send_to_repair"
    RETURN_FROM_REPAIR = "return_from_repair"


class ReferenceType(Enum):
    SUBSCRIPTION = "subscription"
    EVENT = "event"
    AUDIT = "audit"
    MANUAL = "manual"


CATEGORY_OF = {
    MovementType.OPENING_STOCK: MovementCategory.INFLOW,
    MovementType.PURCHASE: MovementCategory.INFLOW,
    MovementType.ALLOCATION: MovementCategory.OUTFLOW,
    MovementType.RETURN_GOOD: MovementCategory.RETURN,
    MovementType.RETURN_DAMAGED: MovementCategory.RETURN,
    MovementType.DAMAGE_WAREHOUSE: MovementCategory.WRITEOFF,
    MovementType.DAMAGE_CLIENT: MovementCategory.WRITEOFF,
    MovementType.LOSS: MovementCategory.WRITEOFF,
    MovementType.DISPOSAL: MovementCategory.WRITEOFF,
    MovementType.ADJUSTMENT_POSITIVE: MovementCategory.ADJUSTMENT,
    MovementType.ADJUSTMENT_NEGATIVE: MovementCategory.ADJUSTMENT,
    MovementType.SEND_TO_REPAIR: MovementCategory.REPAIR,
    MovementType.RETURN_FROM_REPAIR: MovementCategory.REPAIR,
}

# References that open and settle allocations
ALLOCATION_REFERENCES = frozenset({ReferenceType.SUBSCRIPTION, ReferenceType.EVENT})

POSITIVE_ADJUSTMENT_REASONS = frozenset({"audit_surplus", "found_stock", "count_correction", "opening_balance_correction"})
NEGATIVE_ADJUSTMENT_REASONS = frozenset(
    {"audit_shortage", "missing_stock", "count_correction_negative", "unrecorded_damage", "unrecorded_loss"}
)

REASON_CODES = {
    MovementType.OPENING_STOCK: frozenset({"opening_balance", "transfer_in"}),
    MovementType.PURCHASE: frozenset({"new_purchase", "gift_received", "transfer_in"}),
    MovementType.ALLOCATION: frozenset({"subscription_start", "event_dispatch", "additional_dispatch"}),
    MovementType.RETURN_GOOD: frozenset({"normal_return", "early_return"}),
    MovementType.RETURN_DAMAGED: frozenset({"client_damage", "transit_damage"}),
    MovementType.DAMAGE_WAREHOUSE: frozenset({"handling_damage", "storage_damage"}),
    MovementType.DAMAGE_CLIENT: frozenset({"client_damage", "client_reported", "delivery_damage"}),
    MovementType.LOSS: frozenset({"client_lost", "transit_lost", "theft", "missing_stock"}),
    MovementType.DISPOSAL: frozenset({"end_of_life", "unrepairable", "audit_writeoff"}),
    MovementType.ADJUSTMENT_POSITIVE: POSITIVE_ADJUSTMENT_REASONS,
    MovementType.ADJUSTMENT_NEGATIVE: NEGATIVE_ADJUSTMENT_REASONS,
    MovementType.SEND_TO_REPAIR: frozenset({"internal_repair", "external_vendor"}),
    MovementType.RETURN_FROM_REPAIR: frozenset({"repaired", "irreparable"}),
}

_DEFAULT_REASONS = {
    MovementType.OPENING_STOCK: "opening_balance",
    MovementType.PURCHASE: "new_purchase",
    MovementType.RETURN_GOOD: "normal_return",
    MovementType.RETURN_DAMAGED: "client_damage",
    MovementType.DAMAGE_WAREHOUSE: "handling_damage",
    MovementType.DAMAGE_CLIENT: "client_damage",
    MovementType.DISPOSAL: "end_of_life",
    MovementType.SEND_TO_REPAIR: "external_vendor",
}

# Movements that must name the subscription or event they belong to
_REQUIRES_ALLOCATION_REFERENCE = frozenset(
    {
        MovementType.ALLOCATION,
        MovementType.RETURN_GOOD,
        MovementType.RETURN_DAMAGED,
        MovementType.DAMAGE_CLIENT,
    }
)

# Movements that may optionally name one (loss of allocated stock)
_ALLOWS_ALLOCATION_REFERENCE = _REQUIRES_ALLOCATION_REFERENCE | {MovementType.LOSS}

_NOTES_REQUIRED = frozenset({MovementCategory.WRITEOFF, MovementCategory.ADJUSTMENT})


def default_reason(movement_type: MovementType, reference_type: ReferenceType | None = None) -> str | None:
    if movement_type == MovementType.ALLOCATION:
        return "event_dispatch" if reference_type == ReferenceType.EVENT else "subscription_start"
    return _DEFAULT_REASONS.get(movement_type)


def resolve_type(movement_type, category=None) -> tuple[MovementType, MovementCategory]:
    """Parse a movement type (and optional category) into enums.

    The category is derived from the type; a caller-supplied category must
    agree with it.
    """
    try:
        mtype = MovementType(movement_type)
    except ValueError:
        raise ValidationError({"movement_type": [f"Unknown movement type: {movement_type}"]}) from None

    derived = CATEGORY_OF[mtype]
    if category is not None and category != derived.value and category != derived:
        raise ValidationError(
            {"movement_category": [f"Movement type {mtype.value} belongs to category {derived.value}, not {category}"]}
        )
    return mtype, derived


def resolve_reference(reference_type, reference_id) -> ReferenceType | None:
    if reference_type is None and reference_id is None:
        return None
    if not reference_type or not reference_id:
        raise ValidationError({"reference": ["reference_type and reference_id must be supplied together"]})
    try:
        return ReferenceType(reference_type)
    except ValueError:
        raise ValidationError({"reference_type": [f"Unknown reference type: {reference_type}"]}) from None


def validate_shape(
    movement_type: MovementType,
    category: MovementCategory,
    quantity,
    reference_type: ReferenceType | None,
    reason_code: str | None,
    notes: str | None,
) -> None:
    """Check everything about a movement that does not depend on item state."""
    if quantity is None or quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be greater than 0"]})

    if not reason_code:
        raise ValidationError({"reason_code": [f"A reason code is required for {movement_type.value} movements"]})
    if reason_code not in REASON_CODES[movement_type]:
        allowed = ", ".join(sorted(REASON_CODES[movement_type]))
        raise ValidationError(
            {"reason_code": [f"Invalid reason code {reason_code} for {movement_type.value}. Allowed: {allowed}"]}
        )

    if category in _NOTES_REQUIRED and not (notes and notes.strip()):
        raise ValidationError({"notes": [f"Notes are required for {category.value} movements"]})

    linked = reference_type in ALLOCATION_REFERENCES
    if movement_type in _REQUIRES_ALLOCATION_REFERENCE and not linked:
        raise ValidationError({"reference": [f"{movement_type.value} must reference a subscription or event"]})
    if linked and movement_type not in _ALLOWS_ALLOCATION_REFERENCE:
        raise ValidationError({"reference": [f"{movement_type.value} cannot reference a subscription or event"]})
    if reference_type == ReferenceType.AUDIT and category != MovementCategory.ADJUSTMENT:
        raise ValidationError({"reference": ["Only adjustments may reference an audit"]})
