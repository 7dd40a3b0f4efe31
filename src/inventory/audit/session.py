"""AuditSession aggregate (CQRS): a physical stock count for one outlet.

Each line snapshots an item's available quantity when the audit opens and
records what was physically found. Surplus-only audits approve themselves;
any shortage waits for an admin. Approved lines are turned into adjustment
movements by the handler, through the same ledger path as every other
movement.

    draft -> counting -> review -> approved | pending_approval
    pending_approval -> approved | rejected
    approved | rejected -> closed
    draft | counting | review -> cancelled
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from inventory.audit.events import (
    AuditApproved,
    AuditCancelled,
    AuditClosed,
    AuditCountingStarted,
    AuditLineCounted,
    AuditOpened,
    AuditRejected,
    AuditReviewStarted,
    AuditSubmitted,
)
from inventory.domain import inventory
from inventory.errors import StateError
from inventory.item.movements import NEGATIVE_ADJUSTMENT_REASONS, POSITIVE_ADJUSTMENT_REASONS

_PERIOD = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class AuditStatus(Enum):
    DRAFT = "draft"
    COUNTING = "counting"
    REVIEW = "review"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CLOSED = "closed"


# An outlet may have only one audit in these states at a time
ACTIVE_STATUSES = frozenset({AuditStatus.COUNTING, AuditStatus.REVIEW, AuditStatus.PENDING_APPROVAL})

_VALID_TRANSITIONS = {
    AuditStatus.DRAFT: {AuditStatus.COUNTING, AuditStatus.CANCELLED},
    AuditStatus.COUNTING: {AuditStatus.REVIEW, AuditStatus.CANCELLED},
    AuditStatus.REVIEW: {AuditStatus.APPROVED, AuditStatus.PENDING_APPROVAL, AuditStatus.CANCELLED},
    AuditStatus.PENDING_APPROVAL: {AuditStatus.APPROVED, AuditStatus.REJECTED},
    AuditStatus.APPROVED: {AuditStatus.CLOSED},
    AuditStatus.REJECTED: {AuditStatus.CLOSED},
    AuditStatus.CANCELLED: set(),
    AuditStatus.CLOSED: set(),
}


class LineStatus(Enum):
    PENDING = "pending"
    COUNTED = "counted"


def is_large_variance(system_quantity, variance, ratio) -> bool:
    """True when the variance exceeds ``ratio`` of the book quantity."""
    if not variance:
        return False
    if not system_quantity:
        return True
    return abs(variance) > ratio * system_quantity


@inventory.entity(part_of="AuditSession")
class AuditLine:
    inventory_item_id = Identifier(required=True)
    item_name = String(max_length=200)
    system_quantity = Integer(default=0, min_value=0)
    physical_quantity = Integer(min_value=0)
    variance = Integer(default=0)
    reason_code = String(max_length=50)
    notes = Text()
    status = String(choices=LineStatus, default=LineStatus.PENDING.value)
    requires_scrutiny = Boolean(default=False)
    counted_at = DateTime()


@inventory.aggregate
class AuditSession:
    outlet_id = Identifier(required=True)
    period = String(required=True, max_length=7)
    status = String(choices=AuditStatus, default=AuditStatus.DRAFT.value)
    lines = HasMany(AuditLine)
    items_total = Integer(default=0)
    items_counted = Integer(default=0)
    variance_positive = Integer(default=0)
    variance_negative = Integer(default=0)
    notes = Text()
    created_by = Identifier(required=True)
    submitted_by = Identifier()
    approved_by = Identifier()
    rejected_by = Identifier()
    rejection_reason = Text()
    auto_approved = Boolean(default=False)
    created_at = DateTime()
    submitted_at = DateTime()
    approved_at = DateTime()
    closed_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, outlet_id, period, items, created_by, notes=None, as_of=None):
        """Open an audit with one line per ``(item_id, name, available)``."""
        if not period or not _PERIOD.match(period):
            raise ValidationError({"period": ["Period must be in YYYY-MM format"]})
        if not items:
            raise ValidationError({"outlet_id": ["Outlet has no draft or active items to count"]})

        now = as_of or datetime.now(UTC)
        session = cls(
            outlet_id=str(outlet_id),
            period=period,
            created_by=str(created_by),
            notes=notes,
            items_total=len(items),
            created_at=now,
            updated_at=now,
        )
        for item_id, name, available in items:
            session.add_lines(
                AuditLine(
                    inventory_item_id=str(item_id),
                    item_name=name,
                    system_quantity=available or 0,
                )
            )

        session.raise_(
            AuditOpened(
                audit_id=str(session.id),
                outlet_id=str(outlet_id),
                period=period,
                items_total=len(items),
                created_by=str(created_by),
                opened_at=now,
            )
        )
        return session

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _transition(self, target):
        current = AuditStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise StateError({"status": [f"Cannot move audit from {current.value} to {target.value}"]})
        self.status = target.value

    def _line(self, inventory_item_id):
        line = next((line for line in self.lines if str(line.inventory_item_id) == str(inventory_item_id)), None)
        if line is None:
            raise ValidationError({"inventory_item_id": [f"Item {inventory_item_id} is not part of this audit"]})
        return line

    def adjustment_lines(self):
        """Lines whose variance has to be booked."""
        return [line for line in self.lines if line.variance]

    # -------------------------------------------------------------------
    # Counting
    # -------------------------------------------------------------------
    def start_counting(self, as_of=None):
        self._transition(AuditStatus.COUNTING)
        self.updated_at = as_of or datetime.now(UTC)
        self.raise_(AuditCountingStarted(audit_id=str(self.id), started_at=self.updated_at))

    def record_count(self, inventory_item_id, physical_quantity, large_variance_ratio, reason_code=None, notes=None):
        if self.status != AuditStatus.COUNTING.value:
            raise StateError({"status": [f"Counts can only be recorded while counting, audit is {self.status}"]})
        if physical_quantity is None or physical_quantity < 0:
            raise ValidationError({"physical_quantity": ["Physical quantity must be zero or more"]})

        line = self._line(inventory_item_id)
        was_counted = line.status == LineStatus.COUNTED.value
        now = datetime.now(UTC)

        line.physical_quantity = physical_quantity
        line.variance = physical_quantity - line.system_quantity
        line.requires_scrutiny = is_large_variance(line.system_quantity, line.variance, large_variance_ratio)
        line.reason_code = reason_code if line.variance else None
        line.notes = notes
        line.status = LineStatus.COUNTED.value
        line.counted_at = now

        if not was_counted:
            self.items_counted = (self.items_counted or 0) + 1
        self.updated_at = now

        self.raise_(
            AuditLineCounted(
                audit_id=str(self.id),
                inventory_item_id=str(inventory_item_id),
                system_quantity=line.system_quantity,
                physical_quantity=physical_quantity,
                variance=line.variance,
                requires_scrutiny=line.requires_scrutiny,
                counted_at=now,
            )
        )

    def begin_review(self, as_of=None):
        if self.status == AuditStatus.COUNTING.value:
            pending = [line for line in self.lines if line.status != LineStatus.COUNTED.value]
            if pending:
                raise StateError({"lines": [f"{len(pending)} items have not been counted yet"]})
        self._transition(AuditStatus.REVIEW)
        self.updated_at = as_of or datetime.now(UTC)
        self.raise_(AuditReviewStarted(audit_id=str(self.id), started_at=self.updated_at))

    # -------------------------------------------------------------------
    # Submission and approval
    # -------------------------------------------------------------------
    def submit(self, submitted_by, require_scrutiny_notes=True, require_approval=False, as_of=None):
        """Submit the reviewed counts. Returns True when auto-approved.

        A surplus-only audit approves itself unless ``require_approval`` is
        set, which holds it for an admin like any audit with a shortage.
        """
        if self.status != AuditStatus.REVIEW.value:
            raise StateError({"status": [f"Only audits in review can be submitted, audit is {self.status}"]})

        errors = []
        for line in self.adjustment_lines():
            allowed = POSITIVE_ADJUSTMENT_REASONS if line.variance > 0 else NEGATIVE_ADJUSTMENT_REASONS
            if not line.reason_code:
                errors.append(f"{line.item_name or line.inventory_item_id}: variance {line.variance} needs a reason")
            elif line.reason_code not in allowed:
                errors.append(
                    f"{line.item_name or line.inventory_item_id}: reason {line.reason_code} "
                    f"does not fit a variance of {line.variance}"
                )
            elif require_scrutiny_notes and line.requires_scrutiny and not (line.notes and line.notes.strip()):
                errors.append(f"{line.item_name or line.inventory_item_id}: large variance needs notes")
        if errors:
            raise ValidationError({"lines": errors})

        now = as_of or datetime.now(UTC)
        self.variance_positive = sum(line.variance for line in self.lines if line.variance > 0)
        self.variance_negative = sum(-line.variance for line in self.lines if line.variance < 0)
        self.submitted_by = str(submitted_by)
        self.submitted_at = now
        self.updated_at = now

        auto_approved = self.variance_negative == 0 and not require_approval
        if auto_approved:
            self._transition(AuditStatus.APPROVED)
            self.auto_approved = True
            self.approved_by = str(submitted_by)
            self.approved_at = now
        else:
            self._transition(AuditStatus.PENDING_APPROVAL)

        self.raise_(
            AuditSubmitted(
                audit_id=str(self.id),
                variance_positive=self.variance_positive,
                variance_negative=self.variance_negative,
                auto_approved=auto_approved,
                submitted_by=str(submitted_by),
                submitted_at=now,
            )
        )
        if auto_approved:
            self._raise_approved(submitted_by, now)
        return auto_approved

    def _raise_approved(self, approved_by, now):
        self.raise_(
            AuditApproved(
                audit_id=str(self.id),
                outlet_id=str(self.outlet_id),
                period=self.period,
                adjusted_lines=len(self.adjustment_lines()),
                approved_by=str(approved_by),
                approved_at=now,
            )
        )

    def approve(self, approved_by, as_of=None):
        if self.status != AuditStatus.PENDING_APPROVAL.value:
            raise StateError({"status": [f"Only audits pending approval can be approved, audit is {self.status}"]})
        now = as_of or datetime.now(UTC)
        self._transition(AuditStatus.APPROVED)
        self.approved_by = str(approved_by)
        self.approved_at = now
        self.updated_at = now
        self._raise_approved(approved_by, now)

    def reject(self, rejected_by, reason, as_of=None):
        if self.status != AuditStatus.PENDING_APPROVAL.value:
            raise StateError({"status": [f"Only audits pending approval can be rejected, audit is {self.status}"]})
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A rejection reason is required"]})
        now = as_of or datetime.now(UTC)
        self._transition(AuditStatus.REJECTED)
        self.rejected_by = str(rejected_by)
        self.rejection_reason = reason
        self.updated_at = now
        self.raise_(AuditRejected(audit_id=str(self.id), reason=reason, rejected_by=str(rejected_by), rejected_at=now))

    def cancel(self, cancelled_by, as_of=None):
        self._transition(AuditStatus.CANCELLED)
        self.updated_at = as_of or datetime.now(UTC)
        self.raise_(AuditCancelled(audit_id=str(self.id), cancelled_by=str(cancelled_by), cancelled_at=self.updated_at))

    def close(self, as_of=None):
        final_status = self.status
        self._transition(AuditStatus.CLOSED)
        self.closed_at = as_of or datetime.now(UTC)
        self.updated_at = self.closed_at
        self.raise_(AuditClosed(audit_id=str(self.id), final_status=final_status, closed_at=self.closed_at))
