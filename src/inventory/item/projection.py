"""Stock projector: movement -> counter deltas.

Counters are plain dicts keyed by ``COUNTERS``. Everything here is a pure
function of its inputs, so the aggregate's replay, the read models and the
tests all fold movements through the same code.

Balance: ``total == available + allocated + damaged + in_repair``. ``lost`` is
a cumulative tally outside the balance.
"""

from inventory.errors import InsufficientStockError
from inventory.item.movements import MovementType

COUNTERS = ("available", "allocated", "damaged", "in_repair", "lost", "total")
BALANCED = ("available", "allocated", "damaged", "in_repair")

_DELTAS = {
    MovementType.OPENING_STOCK: {"available": 1, "total": 1},
    MovementType.PURCHASE: {"available": 1, "total": 1},
    MovementType.ALLOCATION: {"available": -1, "allocated": 1},
    MovementType.RETURN_GOOD: {"available": 1, "allocated": -1},
    MovementType.RETURN_DAMAGED: {"damaged": 1, "allocated": -1},
    MovementType.DAMAGE_WAREHOUSE: {"damaged": 1, "available": -1},
    MovementType.DAMAGE_CLIENT: {"damaged": 1, "allocated": -1},
    MovementType.DISPOSAL: {"damaged": -1, "total": -1},
    MovementType.ADJUSTMENT_POSITIVE: {"available": 1, "total": 1},
    MovementType.ADJUSTMENT_NEGATIVE: {"available": -1, "total": -1},
    MovementType.SEND_TO_REPAIR: {"in_repair": 1, "damaged": -1},
}

_LOSS_FROM_ALLOCATED = {"lost": 1, "allocated": -1, "total": -1}
_LOSS_FROM_AVAILABLE = {"lost": 1, "available": -1, "total": -1}
_REPAIRED = {"available": 1, "in_repair": -1}
_IRREPARABLE = {"in_repair": -1, "total": -1}


def empty_counters() -> dict:
    return dict.fromkeys(COUNTERS, 0)


def deltas_for(movement_type: MovementType, quantity: int, reason_code=None, from_allocated=False) -> dict:
    """Signed counter changes for one movement of ``quantity`` units."""
    if movement_type == MovementType.LOSS:
        unit = _LOSS_FROM_ALLOCATED if from_allocated else _LOSS_FROM_AVAILABLE
    elif movement_type == MovementType.RETURN_FROM_REPAIR:
        unit = _IRREPARABLE if reason_code == "irreparable" else _REPAIRED
    else:
        unit = _DELTAS[movement_type]
    return {counter: sign * quantity for counter, sign in unit.items()}


def apply_movement(counters: dict, movement_type: MovementType, quantity: int, reason_code=None, from_allocated=False):
    """Return new counters after the movement, rejecting any negative result.

    The input dict is left untouched.
    """
    result = {counter: counters.get(counter, 0) or 0 for counter in COUNTERS}
    for counter, delta in deltas_for(movement_type, quantity, reason_code, from_allocated).items():
        result[counter] += delta

    short = [counter for counter in COUNTERS if result[counter] < 0]
    if short:
        counter = short[0]
        have = counters.get(counter, 0) or 0
        raise InsufficientStockError(
            {"quantity": [f"Insufficient {counter} stock: {have} on record, {movement_type.value} needs {quantity}"]}
        )
    return result


def is_balanced(counters: dict) -> bool:
    return counters["total"] == sum(counters[counter] for counter in BALANCED)


def fold(movements) -> dict:
    """Replay a sequence of movements from zero.

    Each movement is a mapping (or object) with ``movement_type``,
    ``quantity``, ``reason_code`` and ``from_allocated``.
    """
    counters = empty_counters()
    for movement in movements:
        counters = apply_movement(
            counters,
            MovementType(_field(movement, "movement_type")),
            _field(movement, "quantity"),
            reason_code=_field(movement, "reason_code"),
            from_allocated=bool(_field(movement, "from_allocated")),
        )
    return counters


def _field(movement, name):
    if isinstance(movement, dict):
        return movement.get(name)
    return getattr(movement, name, None)
