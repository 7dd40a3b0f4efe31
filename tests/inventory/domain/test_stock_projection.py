"""Tests for the stock projector: movement -> counter deltas."""

import pytest
from inventory.errors import InsufficientStockError
from inventory.item.movements import MovementType
from inventory.item.projection import apply_movement, deltas_for, empty_counters, fold, is_balanced


def _counters(**values):
    counters = empty_counters()
    counters.update(values)
    return counters


class TestDeltas:
    @pytest.mark.parametrize(
        "movement_type, expected",
        [
            (MovementType.OPENING_STOCK, {"available": 5, "total": 5}),
            (MovementType.PURCHASE, {"available": 5, "total": 5}),
            (MovementType.ALLOCATION, {"available": -5, "allocated": 5}),
            (MovementType.RETURN_GOOD, {"available": 5, "allocated": -5}),
            (MovementType.RETURN_DAMAGED, {"damaged": 5, "allocated": -5}),
            (MovementType.DAMAGE_WAREHOUSE, {"damaged": 5, "available": -5}),
            (MovementType.DAMAGE_CLIENT, {"damaged": 5, "allocated": -5}),
            (MovementType.DISPOSAL, {"damaged": -5, "total": -5}),
            (MovementType.ADJUSTMENT_POSITIVE, {"available": 5, "total": 5}),
            (MovementType.ADJUSTMENT_NEGATIVE, {"available": -5, "total": -5}),
            (MovementType.SEND_TO_REPAIR, {"in_repair": 5, "damaged": -5}),
        ],
    )
    def test_fixed_deltas(self, movement_type, expected):
        assert deltas_for(movement_type, 5) == expected

    def test_loss_of_allocated_stock(self):
        assert deltas_for(MovementType.LOSS, 2, from_allocated=True) == {"lost": 2, "allocated": -2, "total": -2}

    def test_loss_from_the_shelf(self):
        assert deltas_for(MovementType.LOSS, 2) == {"lost": 2, "available": -2, "total": -2}

    def test_repaired_units_go_back_on_the_shelf(self):
        assert deltas_for(MovementType.RETURN_FROM_REPAIR, 3, reason_code="repaired") == {
            "available": 3,
            "in_repair": -3,
        }

    def test_irreparable_units_leave_the_total(self):
        assert deltas_for(MovementType.RETURN_FROM_REPAIR, 3, reason_code="irreparable") == {
            "in_repair": -3,
            "total": -3,
        }


class TestApplyMovement:
    def test_returns_new_counters(self):
        before = _counters(available=10, total=10)
        after = apply_movement(before, MovementType.ALLOCATION, 4)
        assert after["available"] == 6
        assert after["allocated"] == 4
        assert after["total"] == 10

    def test_input_is_not_mutated(self):
        before = _counters(available=10, total=10)
        apply_movement(before, MovementType.ALLOCATION, 4)
        assert before["available"] == 10

    def test_allocating_more_than_available_is_rejected(self):
        with pytest.raises(InsufficientStockError) as exc:
            apply_movement(_counters(available=3, total=3), MovementType.ALLOCATION, 4)
        assert "Insufficient available stock" in exc.value.messages["quantity"][0]

    def test_disposing_undamaged_stock_is_rejected(self):
        with pytest.raises(InsufficientStockError):
            apply_movement(_counters(available=5, total=5), MovementType.DISPOSAL, 1)

    def test_none_counters_are_treated_as_zero(self):
        after = apply_movement({"available": None}, MovementType.PURCHASE, 2)
        assert after == _counters(available=2, total=2)


class TestFold:
    def test_empty_ledger_is_all_zero(self):
        assert fold([]) == empty_counters()

    def test_full_rental_cycle(self):
        counters = fold(
            [
                {"movement_type": "opening_stock", "quantity": 100},
                {"movement_type": "allocation", "quantity": 40},
                {"movement_type": "return_good", "quantity": 30},
                {"movement_type": "return_damaged", "quantity": 5},
                {"movement_type": "loss", "quantity": 5, "from_allocated": True},
                {"movement_type": "send_to_repair", "quantity": 5},
                {"movement_type": "return_from_repair", "quantity": 3, "reason_code": "repaired"},
                {"movement_type": "return_from_repair", "quantity": 2, "reason_code": "irreparable"},
            ]
        )
        assert counters == {
            "available": 93,
            "allocated": 0,
            "damaged": 0,
            "in_repair": 0,
            "lost": 5,
            "total": 93,
        }
        assert is_balanced(counters)

    def test_accepts_objects_with_attributes(self):
        class Row:
            def __init__(self, movement_type, quantity):
                self.movement_type = movement_type
                self.quantity = quantity

        assert fold([Row("purchase", 4), Row("damage_warehouse", 1)])["damaged"] == 1

    def test_every_step_stays_balanced(self):
        counters = empty_counters()
        for movement_type, quantity in [
            (MovementType.PURCHASE, 20),
            (MovementType.DAMAGE_WAREHOUSE, 4),
            (MovementType.DISPOSAL, 1),
            (MovementType.ADJUSTMENT_NEGATIVE, 2),
        ]:
            counters = apply_movement(counters, movement_type, quantity)
            assert is_balanced(counters)
