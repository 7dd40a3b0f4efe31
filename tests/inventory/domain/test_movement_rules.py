"""Tests for the movement taxonomy: types, reasons and reference rules."""

import pytest
from inventory.item.movements import (
    MovementCategory,
    MovementType,
    ReferenceType,
    default_reason,
    resolve_reference,
    resolve_type,
    validate_shape,
)
from protean.exceptions import ValidationError


class TestResolveType:
    def test_category_is_derived(self):
        assert resolve_type("allocation") == (MovementType.ALLOCATION, MovementCategory.OUTFLOW)

    def test_matching_category_is_accepted(self):
        assert resolve_type("loss", "writeoff")[1] == MovementCategory.WRITEOFF

    def test_mismatched_category_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_type("purchase", "outflow")
        assert "movement_category" in exc.value.messages

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_type("borrowed")
        assert "Unknown movement type" in exc.value.messages["movement_type"][0]


class TestResolveReference:
    def test_no_reference(self):
        assert resolve_reference(None, None) is None

    def test_type_without_id_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_reference("event", None)

    def test_id_without_type_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_reference(None, "evt-1")

    def test_unknown_reference_type(self):
        with pytest.raises(ValidationError):
            resolve_reference("invoice", "inv-1")

    def test_known_reference_type(self):
        assert resolve_reference("subscription", "sub-1") == ReferenceType.SUBSCRIPTION


class TestDefaultReason:
    def test_allocation_to_event(self):
        assert default_reason(MovementType.ALLOCATION, ReferenceType.EVENT) == "event_dispatch"

    def test_allocation_to_subscription(self):
        assert default_reason(MovementType.ALLOCATION, ReferenceType.SUBSCRIPTION) == "subscription_start"

    def test_adjustments_have_no_default(self):
        assert default_reason(MovementType.ADJUSTMENT_POSITIVE) is None

    def test_loss_has_no_default(self):
        assert default_reason(MovementType.LOSS) is None


class TestValidateShape:
    def _validate(self, movement_type, quantity=1, reference_type=None, reason_code=None, notes=None):
        mtype, category = resolve_type(movement_type)
        validate_shape(mtype, category, quantity, reference_type, reason_code or default_reason(mtype), notes)

    @pytest.mark.parametrize("quantity", [0, -3, None])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError) as exc:
            self._validate("purchase", quantity=quantity)
        assert "quantity" in exc.value.messages

    def test_reason_must_fit_the_type(self):
        with pytest.raises(ValidationError) as exc:
            self._validate("purchase", reason_code="theft")
        assert "Invalid reason code" in exc.value.messages["reason_code"][0]

    def test_loss_needs_a_reason(self):
        with pytest.raises(ValidationError) as exc:
            self._validate("loss", notes="gone")
        assert "reason_code" in exc.value.messages

    def test_writeoff_needs_notes(self):
        with pytest.raises(ValidationError) as exc:
            self._validate("damage_warehouse", notes="   ")
        assert "notes" in exc.value.messages

    def test_adjustment_needs_notes(self):
        with pytest.raises(ValidationError):
            self._validate("adjustment_positive", reason_code="found_stock")

    def test_allocation_needs_a_rental_reference(self):
        with pytest.raises(ValidationError) as exc:
            self._validate("allocation", reason_code="subscription_start")
        assert "reference" in exc.value.messages

    def test_manual_reference_does_not_count_for_returns(self):
        with pytest.raises(ValidationError):
            self._validate("return_good", reference_type=ReferenceType.MANUAL)

    def test_purchase_cannot_reference_a_rental(self):
        with pytest.raises(ValidationError):
            self._validate("purchase", reference_type=ReferenceType.EVENT)

    def test_loss_may_reference_a_rental(self):
        self._validate("loss", reference_type=ReferenceType.EVENT, reason_code="client_lost", notes="not returned")

    def test_only_adjustments_reference_audits(self):
        with pytest.raises(ValidationError):
            self._validate("damage_warehouse", reference_type=ReferenceType.AUDIT, notes="found broken")

    def test_valid_adjustment(self):
        self._validate(
            "adjustment_negative",
            reference_type=ReferenceType.AUDIT,
            reason_code="audit_shortage",
            notes="short on count",
        )
