"""InventoryItem aggregate (Event Sourced): the per-item stock ledger.

Every quantity change is one ``MovementRecorded`` event. Counters and
allocations are never written directly; the ``@apply`` handlers fold each
movement through the pure stock projector, so replaying the stream always
reproduces the current state.

Appending a movement runs a fixed pipeline over the current state:
shape -> lifecycle admissibility -> authorization -> allocation checks ->
projection. Nothing is raised until every step has passed, and the event,
its counters and its allocation update are persisted together in one
stream append.

Stock Level Model:
    available:  on the shelf, free to allocate
    allocated:  out with a subscription or event
    damaged:    broken, awaiting repair or disposal
    in_repair:  with a repairer
    lost:       cumulative losses (outside the balance)
    total:      available + allocated + damaged + in_repair
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from inventory.config import get_settings
from inventory.domain import inventory
from inventory.errors import ConflictError, OverReturnError, StateError
from inventory.item.events import (
    ItemDeleted,
    ItemDetailsUpdated,
    ItemRegistered,
    LifecycleTransitioned,
    MovementRecorded,
    OpeningBalanceConfirmed,
)
from inventory.item.lifecycle import (
    LifecycleStatus,
    check_admissible,
    check_transition,
    parse_status,
)
from inventory.item.movements import (
    ALLOCATION_REFERENCES,
    MovementCategory,
    MovementType,
    ReferenceType,
    default_reason,
    resolve_reference,
    resolve_type,
    validate_shape,
)
from inventory.item.policy import TRANSITION_ACTIONS, Action, authorize
from inventory.item.projection import BALANCED, COUNTERS, apply_movement


def as_utc(value):
    """Normalise a datetime to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class AllocationStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@inventory.value_object(part_of="InventoryItem")
class StockLevels:
    """All stock counters of one item.

    Replaced as a whole on every movement so the balance is checked on a
    complete set of numbers.
    """

    available = Integer(default=0, min_value=0)
    allocated = Integer(default=0, min_value=0)
    damaged = Integer(default=0, min_value=0)
    in_repair = Integer(default=0, min_value=0)
    lost = Integer(default=0, min_value=0)
    total = Integer(default=0, min_value=0)

    @invariant.post
    def total_must_balance(self):
        if self.total != sum(getattr(self, counter) for counter in BALANCED):
            raise ValidationError({"total": ["Total must equal available + allocated + damaged + in_repair"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@inventory.entity(part_of="InventoryItem")
class Allocation:
    """Stock handed out against one subscription or event.

    Closes by itself when everything has come back or been written off.
    """

    reference_type = String(required=True, max_length=20)
    reference_id = Identifier(required=True)
    allocated_quantity = Integer(required=True, min_value=1)
    returned_quantity = Integer(default=0, min_value=0)
    damaged_quantity = Integer(default=0, min_value=0)
    lost_quantity = Integer(default=0, min_value=0)
    status = String(choices=AllocationStatus, default=AllocationStatus.OPEN.value)
    opened_at = DateTime(required=True)
    closed_at = DateTime()
    closure_reason = String()

    @property
    def outstanding(self):
        return self.allocated_quantity - self.returned_quantity - self.damaged_quantity - self.lost_quantity

    @property
    def is_open(self):
        return self.status == AllocationStatus.OPEN.value


@dataclass(frozen=True)
class ItemSnapshot:
    """Read-only view of an item's state at one point in its ledger."""

    inventory_item_id: str
    outlet_id: str | None
    name: str
    category: str | None
    material: str | None
    unit: str
    lifecycle_status: str
    opening_balance_confirmed: bool
    available: int
    allocated: int
    damaged: int
    in_repair: int
    lost: int
    total: int
    open_allocations: int
    movement_count: int
    last_movement_at: datetime | None
    version: int


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@inventory.aggregate(is_event_sourced=True)
class InventoryItem:
    """A trackable dishware type held by one outlet."""

    outlet_id = Identifier()
    name = String(required=True, max_length=200)
    category = String(max_length=100)
    material = String(max_length=100)
    unit = String(default="piece", max_length=30)
    lifecycle_status = String(choices=LifecycleStatus, default=LifecycleStatus.DRAFT.value)
    opening_balance_confirmed = Boolean(default=False)
    opening_balance_confirmed_at = DateTime()
    levels = ValueObject(StockLevels)
    allocations = HasMany(Allocation)
    movement_count = Integer(default=0)
    has_customer_history = Boolean(default=False)
    registered_at = DateTime()
    last_movement_at = DateTime()
    deleted_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        name,
        registered_by,
        outlet_id=None,
        category=None,
        material=None,
        unit="piece",
        registered_at=None,
    ):
        """Register a new item in draft.

        Opening stock is recorded separately as an ``opening_stock``
        movement so the ledger alone explains every unit.
        """
        if not name or not name.strip():
            raise ValidationError({"name": ["Name is required"]})

        item = cls._create_new()
        item.raise_(
            ItemRegistered(
                inventory_item_id=str(item.id),
                outlet_id=str(outlet_id) if outlet_id else None,
                name=name.strip(),
                category=category,
                material=material,
                unit=unit or "piece",
                registered_by=str(registered_by),
                registered_at=registered_at or datetime.now(UTC),
            )
        )
        return item

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def status(self) -> LifecycleStatus:
        return LifecycleStatus(self.lifecycle_status)

    def counters(self) -> dict:
        levels = self.levels or StockLevels()
        return {counter: getattr(levels, counter) or 0 for counter in COUNTERS}

    def allocation_for(self, reference_type, reference_id):
        """The allocation for one subscription or event, or None."""
        ref_type = reference_type.value if isinstance(reference_type, ReferenceType) else reference_type
        return next(
            (
                a
                for a in (self.allocations or [])
                if a.reference_type == ref_type and str(a.reference_id) == str(reference_id)
            ),
            None,
        )

    def snapshot(self) -> ItemSnapshot:
        counters = self.counters()
        return ItemSnapshot(
            inventory_item_id=str(self.id),
            outlet_id=str(self.outlet_id) if self.outlet_id else None,
            name=self.name,
            category=self.category,
            material=self.material,
            unit=self.unit,
            lifecycle_status=self.lifecycle_status,
            opening_balance_confirmed=bool(self.opening_balance_confirmed),
            open_allocations=sum(1 for a in (self.allocations or []) if a.is_open),
            movement_count=self.movement_count or 0,
            last_movement_at=self.last_movement_at,
            version=self._version,
            **counters,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _ensure_not_deleted(self):
        if self.status == LifecycleStatus.DELETED:
            raise StateError({"inventory_item_id": ["Item has been deleted"]})

    def _auto_confirm_due(self, now) -> bool:
        if self.opening_balance_confirmed or self.registered_at is None:
            return False
        window = timedelta(days=get_settings().opening_balance_auto_confirm_days)
        return as_utc(now) - as_utc(self.registered_at) >= window

    def is_balance_locked(self, as_of=None) -> bool:
        """True once adjustments need an admin: confirmed, or past the auto-confirm window."""
        return bool(self.opening_balance_confirmed) or self._auto_confirm_due(as_of or datetime.now(UTC))

    def _ensure_in_order(self, occurred_at):
        # Movements replay in timestamp order, so the ledger only moves forward
        floor = self.last_movement_at or self.registered_at
        if floor is not None and as_utc(occurred_at) < as_utc(floor):
            raise ValidationError(
                {"as_of": [f"Movement time {as_utc(occurred_at).isoformat()} is before {as_utc(floor).isoformat()}"]}
            )

    def _check_allocation(self, mtype, ref_type, reference_id, quantity, reason_code):
        """Return (allocation_id, from_allocated) for a movement, or raise.

        Allocation-linked movements are checked against the reference's
        outstanding balance. A new outflow reference gets a fresh id.
        """
        if ref_type not in ALLOCATION_REFERENCES:
            return None, False

        allocation = self.allocation_for(ref_type, reference_id)
        label = f"{ref_type.value} {reference_id}"

        if mtype == MovementType.ALLOCATION:
            if allocation is None:
                return str(uuid4()), False
            if not allocation.is_open:
                raise ConflictError({"reference": [f"Allocation for {label} is closed"]})
            if reason_code != "additional_dispatch":
                raise ConflictError(
                    {
                        "reference": [
                            f"Item is already allocated to {label}; use reason additional_dispatch to send more"
                        ]
                    }
                )
            return str(allocation.id), False

        if allocation is None:
            raise ValidationError({"reference": [f"No allocation found for {label}"]})
        if quantity > allocation.outstanding:
            raise OverReturnError(
                {
                    "quantity": [
                        f"Quantity {quantity} exceeds outstanding {allocation.outstanding} for {label}"
                    ]
                }
            )
        return str(allocation.id), mtype == MovementType.LOSS

    def _append(
        self,
        action,
        movement_type,
        quantity,
        actor,
        role,
        movement_category=None,
        reference_type=None,
        reference_id=None,
        reason_code=None,
        notes=None,
        as_of=None,
    ):
        occurred_at = as_of or datetime.now(UTC)
        self._ensure_not_deleted()
        self._ensure_in_order(occurred_at)

        mtype, category = resolve_type(movement_type, movement_category)
        ref_type = resolve_reference(reference_type, reference_id)
        reason_code = reason_code or default_reason(mtype, ref_type)
        validate_shape(mtype, category, quantity, ref_type, reason_code, notes)
        if ref_type == ReferenceType.AUDIT and action != Action.RECONCILE:
            raise ValidationError({"reference": ["Audit adjustments are recorded by the reconciliation workflow"]})

        check_admissible(self.status, category)

        authorize(action, role, self.status)
        auto_confirm = self._auto_confirm_due(occurred_at)
        if category == MovementCategory.ADJUSTMENT and (self.opening_balance_confirmed or auto_confirm):
            authorize(Action.ADJUST_LOCKED, role, self.status)

        allocation_id, from_allocated = self._check_allocation(mtype, ref_type, reference_id, quantity, reason_code)

        # Raises InsufficientStockError; the result is recomputed in @apply
        apply_movement(self.counters(), mtype, quantity, reason_code, from_allocated)

        if auto_confirm:
            self.raise_(
                OpeningBalanceConfirmed(
                    inventory_item_id=str(self.id),
                    trigger="auto",
                    confirmed_at=occurred_at,
                )
            )

        movement_id = str(uuid4())
        self.raise_(
            MovementRecorded(
                inventory_item_id=str(self.id),
                movement_id=movement_id,
                movement_category=category.value,
                movement_type=mtype.value,
                quantity=quantity,
                reference_type=ref_type.value if ref_type else None,
                reference_id=str(reference_id) if reference_id else None,
                allocation_id=allocation_id,
                from_allocated=from_allocated,
                reason_code=reason_code,
                notes=notes,
                actor=str(actor),
                actor_role=role.value if isinstance(role, Enum) else str(role),
                occurred_at=occurred_at,
            )
        )
        return movement_id

    # -------------------------------------------------------------------
    # Movements
    # -------------------------------------------------------------------
    def record_movement(
        self,
        movement_type,
        quantity,
        actor,
        role,
        movement_category=None,
        reference_type=None,
        reference_id=None,
        reason_code=None,
        notes=None,
        as_of=None,
    ):
        """Append one stock movement to the ledger and return its id."""
        return self._append(
            Action.RECORD_MOVEMENT,
            movement_type,
            quantity,
            actor,
            role,
            movement_category=movement_category,
            reference_type=reference_type,
            reference_id=reference_id,
            reason_code=reason_code,
            notes=notes,
            as_of=as_of,
        )

    def reconcile(self, variance, audit_id, reason_code, notes, actor, role, as_of=None):
        """Record the adjustment for one approved audit line.

        The sign of ``variance`` picks ``adjustment_positive`` or
        ``adjustment_negative``.
        """
        if not variance:
            raise ValidationError({"variance": ["Only nonzero variances produce adjustments"]})
        movement_type = MovementType.ADJUSTMENT_POSITIVE if variance > 0 else MovementType.ADJUSTMENT_NEGATIVE
        return self._append(
            Action.RECONCILE,
            movement_type.value,
            abs(variance),
            actor,
            role,
            reference_type=ReferenceType.AUDIT.value,
            reference_id=audit_id,
            reason_code=reason_code,
            notes=notes,
            as_of=as_of,
        )

    def confirm_opening_balance(self, actor, role, as_of=None):
        """Lock the opening balance by hand."""
        self._ensure_not_deleted()
        if self.opening_balance_confirmed:
            raise StateError({"opening_balance_confirmed": ["Opening balance is already confirmed"]})
        authorize(Action.CONFIRM_OPENING_BALANCE, role, self.status)
        self.raise_(
            OpeningBalanceConfirmed(
                inventory_item_id=str(self.id),
                trigger="manual",
                confirmed_by=str(actor),
                confirmed_at=as_of or datetime.now(UTC),
            )
        )

    def check_reference_settled(self, reference_type, reference_id):
        """Return the item's allocations for a reference, all settled.

        A subscription or event may only be cancelled once nothing is
        outstanding against it; otherwise ``StateError``.
        """
        ref_type = resolve_reference(reference_type, reference_id)
        if ref_type not in ALLOCATION_REFERENCES:
            raise ValidationError({"reference_type": ["Only subscriptions and events carry allocations"]})

        matching = [
            a
            for a in (self.allocations or [])
            if a.reference_type == ref_type.value and str(a.reference_id) == str(reference_id)
        ]
        outstanding = sum(a.outstanding for a in matching)
        if outstanding > 0:
            raise StateError(
                {
                    "allocations": [
                        f"{outstanding} units of {self.name} are still outstanding for "
                        f"{ref_type.value} {reference_id}; return or write them off first"
                    ]
                }
            )
        return matching

    # -------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------
    def update_details(
        self, updated_by, role, name=None, category=None, material=None, unit=None, outlet_id=None, as_of=None
    ):
        self._ensure_not_deleted()
        if self.status == LifecycleStatus.ARCHIVED:
            raise StateError({"lifecycle_status": ["Archived items are read-only"]})
        authorize(Action.EDIT_DETAILS, role, self.status)
        if name is not None and not name.strip():
            raise ValidationError({"name": ["Name cannot be blank"]})

        self.raise_(
            ItemDetailsUpdated(
                inventory_item_id=str(self.id),
                outlet_id=str(outlet_id) if outlet_id else (str(self.outlet_id) if self.outlet_id else None),
                name=name.strip() if name else self.name,
                category=category if category is not None else self.category,
                material=material if material is not None else self.material,
                unit=unit or self.unit,
                updated_by=str(updated_by),
                updated_at=as_of or datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_lifecycle(self, target, actor, role, as_of=None):
        """Move the item to ``target``: legality, then role, then guards."""
        now = as_of or datetime.now(UTC)
        current = self.status
        target = target if isinstance(target, LifecycleStatus) else parse_status(target)

        check_transition(current, target)
        authorize(TRANSITION_ACTIONS[(current, target)], role, current)
        self._check_transition_guards(current, target, now)

        if target == LifecycleStatus.DELETED:
            self.raise_(
                ItemDeleted(
                    inventory_item_id=str(self.id),
                    previous_status=current.value,
                    deleted_by=str(actor),
                    deleted_at=now,
                )
            )
            return

        self.raise_(
            LifecycleTransitioned(
                inventory_item_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                transitioned_by=str(actor),
                transitioned_at=now,
            )
        )

    def _check_transition_guards(self, current, target, now):
        counters = self.counters()

        if target == LifecycleStatus.ACTIVE and current == LifecycleStatus.DRAFT:
            missing = [field for field in ("name", "category", "outlet_id") if not getattr(self, field)]
            if missing:
                raise StateError({"lifecycle_status": [f"Cannot activate without {', '.join(missing)}"]})

        elif target == LifecycleStatus.DELETED and current == LifecycleStatus.DRAFT:
            if self.movement_count:
                raise StateError({"lifecycle_status": ["Cannot delete a draft item that has ledger movements"]})

        elif target == LifecycleStatus.DISCONTINUED:
            if counters["allocated"] > 0:
                raise StateError(
                    {"lifecycle_status": [f"Cannot discontinue while {counters['allocated']} units are allocated"]}
                )

        elif target == LifecycleStatus.DELETED:
            if self.has_customer_history:
                raise StateError(
                    {"lifecycle_status": ["Items with subscription or event history cannot be deleted; discontinue it"]}
                )
            if counters["total"] > 0:
                raise StateError(
                    {"lifecycle_status": [f"Cannot delete an item with {counters['total']} units in stock"]}
                )

        elif target == LifecycleStatus.ARCHIVED:
            if counters["total"] > 0:
                raise StateError(
                    {"lifecycle_status": [f"Cannot archive an item with {counters['total']} units in stock"]}
                )
            window = timedelta(days=get_settings().archive_inactivity_days)
            if self.last_movement_at and as_utc(now) - as_utc(self.last_movement_at) < window:
                raise StateError(
                    {"lifecycle_status": [f"Cannot archive an item with movements in the last {window.days} days"]}
                )

    def activate(self, actor, role, as_of=None):
        self.transition_lifecycle(LifecycleStatus.ACTIVE, actor, role, as_of)

    def discontinue(self, actor, role, as_of=None):
        self.transition_lifecycle(LifecycleStatus.DISCONTINUED, actor, role, as_of)

    def archive(self, actor, role, as_of=None):
        self.transition_lifecycle(LifecycleStatus.ARCHIVED, actor, role, as_of)

    def delete(self, actor, role, as_of=None):
        self.transition_lifecycle(LifecycleStatus.DELETED, actor, role, as_of)

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_item_registered(self, event: ItemRegistered):
        self.id = event.inventory_item_id
        self.outlet_id = event.outlet_id
        self.name = event.name
        self.category = event.category
        self.material = event.material
        self.unit = event.unit
        self.lifecycle_status = LifecycleStatus.DRAFT.value
        self.opening_balance_confirmed = False
        self.levels = StockLevels()
        self.movement_count = 0
        self.has_customer_history = False
        self.registered_at = event.registered_at
        self.updated_at = event.registered_at

    @apply
    def _on_item_details_updated(self, event: ItemDetailsUpdated):
        self.outlet_id = event.outlet_id
        self.name = event.name
        self.category = event.category
        self.material = event.material
        self.unit = event.unit
        self.updated_at = event.updated_at

    @apply
    def _on_movement_recorded(self, event: MovementRecorded):
        mtype = MovementType(event.movement_type)
        self.levels = StockLevels(
            **apply_movement(
                self.counters(),
                mtype,
                event.quantity,
                reason_code=event.reason_code,
                from_allocated=bool(event.from_allocated),
            )
        )

        if event.allocation_id:
            self._fold_allocation(event, mtype)
            self.has_customer_history = True

        # The first outflow locks the opening balance
        if mtype == MovementType.ALLOCATION and not self.opening_balance_confirmed:
            self.opening_balance_confirmed = True
            self.opening_balance_confirmed_at = event.occurred_at

        self.movement_count = (self.movement_count or 0) + 1
        self.last_movement_at = event.occurred_at
        self.updated_at = event.occurred_at

    def _fold_allocation(self, event, mtype):
        allocation = next(
            (a for a in (self.allocations or []) if str(a.id) == str(event.allocation_id)),
            None,
        )
        if mtype == MovementType.ALLOCATION:
            if allocation is None:
                self.add_allocations(
                    Allocation(
                        id=event.allocation_id,
                        reference_type=event.reference_type,
                        reference_id=event.reference_id,
                        allocated_quantity=event.quantity,
                        opened_at=event.occurred_at,
                    )
                )
            else:
                allocation.allocated_quantity = allocation.allocated_quantity + event.quantity
            return

        if mtype == MovementType.RETURN_GOOD:
            allocation.returned_quantity = allocation.returned_quantity + event.quantity
        elif mtype == MovementType.LOSS:
            allocation.lost_quantity = allocation.lost_quantity + event.quantity
        else:
            allocation.damaged_quantity = allocation.damaged_quantity + event.quantity

        if allocation.outstanding == 0:
            allocation.status = AllocationStatus.CLOSED.value
            allocation.closed_at = event.occurred_at
            allocation.closure_reason = "settled"

    @apply
    def _on_opening_balance_confirmed(self, event: OpeningBalanceConfirmed):
        self.opening_balance_confirmed = True
        self.opening_balance_confirmed_at = event.confirmed_at

    @apply
    def _on_lifecycle_transitioned(self, event: LifecycleTransitioned):
        self.lifecycle_status = event.to_status
        self.updated_at = event.transitioned_at

    @apply
    def _on_item_deleted(self, event: ItemDeleted):
        self.lifecycle_status = LifecycleStatus.DELETED.value
        self.deleted_at = event.deleted_at
        self.updated_at = event.deleted_at
