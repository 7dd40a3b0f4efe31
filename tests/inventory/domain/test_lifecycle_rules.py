"""Tests for the item lifecycle state machine."""

import pytest
from inventory.errors import StateError
from inventory.item.lifecycle import LifecycleStatus, check_admissible, check_transition, parse_status
from inventory.item.movements import MovementCategory
from protean.exceptions import ValidationError

S = LifecycleStatus


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (S.DRAFT, S.ACTIVE),
            (S.DRAFT, S.DELETED),
            (S.ACTIVE, S.DISCONTINUED),
            (S.ACTIVE, S.DELETED),
            (S.DISCONTINUED, S.ACTIVE),
            (S.DISCONTINUED, S.ARCHIVED),
        ],
    )
    def test_legal_transitions(self, current, target):
        check_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (S.DRAFT, S.DISCONTINUED),
            (S.DRAFT, S.ARCHIVED),
            (S.ACTIVE, S.ARCHIVED),
            (S.ACTIVE, S.ACTIVE),
            (S.DISCONTINUED, S.DELETED),
            (S.ARCHIVED, S.ACTIVE),
            (S.DELETED, S.DRAFT),
        ],
    )
    def test_illegal_transitions(self, current, target):
        with pytest.raises(StateError):
            check_transition(current, target)

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_status("retired")
        assert "Unknown lifecycle status" in exc.value.messages["target"][0]


class TestAdmissibility:
    def test_active_admits_everything(self):
        for category in MovementCategory:
            check_admissible(S.ACTIVE, category)

    @pytest.mark.parametrize(
        "category",
        [MovementCategory.INFLOW, MovementCategory.ADJUSTMENT, MovementCategory.WRITEOFF, MovementCategory.REPAIR],
    )
    def test_draft_admits_stock_setup(self, category):
        check_admissible(S.DRAFT, category)

    @pytest.mark.parametrize("category", [MovementCategory.OUTFLOW, MovementCategory.RETURN])
    def test_draft_refuses_rentals(self, category):
        with pytest.raises(ValidationError):
            check_admissible(S.DRAFT, category)

    def test_discontinued_only_winds_down(self):
        check_admissible(S.DISCONTINUED, MovementCategory.RETURN)
        check_admissible(S.DISCONTINUED, MovementCategory.WRITEOFF)
        for category in (MovementCategory.INFLOW, MovementCategory.OUTFLOW, MovementCategory.ADJUSTMENT):
            with pytest.raises(ValidationError):
                check_admissible(S.DISCONTINUED, category)

    def test_archived_is_read_only(self):
        with pytest.raises(ValidationError) as exc:
            check_admissible(S.ARCHIVED, MovementCategory.INFLOW)
        assert "read-only" in exc.value.messages["lifecycle_status"][0]
