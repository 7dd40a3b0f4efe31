"""Pydantic request/response schemas for the Inventory API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Quantities are passed through unvalidated so the
ledger's own rules produce the error.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Item Request Schemas
# ---------------------------------------------------------------------------
class RegisterItemRequest(BaseModel):
    name: str
    outlet_id: str | None = None
    category: str | None = None
    material: str | None = None
    unit: str | None = None
    opening_stock: int = Field(ge=0, default=0)
    performed_by: str


class UpdateItemDetailsRequest(BaseModel):
    name: str | None = None
    outlet_id: str | None = None
    category: str | None = None
    material: str | None = None
    unit: str | None = None
    performed_by: str


class AppendMovementRequest(BaseModel):
    movement_type: str
    movement_category: str | None = None
    quantity: int
    reference_type: str | None = None
    reference_id: str | None = None
    reason_code: str | None = None
    notes: str | None = None
    performed_by: str


class TransitionLifecycleRequest(BaseModel):
    target: str
    performed_by: str


class ActorRequest(BaseModel):
    performed_by: str


# ---------------------------------------------------------------------------
# Audit Request Schemas
# ---------------------------------------------------------------------------
class OpenAuditRequest(BaseModel):
    outlet_id: str
    period: str = Field(description="YYYY-MM")
    notes: str | None = None
    performed_by: str


class RecordCountRequest(BaseModel):
    physical_quantity: int
    reason_code: str | None = None
    notes: str | None = None
    performed_by: str


class RejectAuditRequest(BaseModel):
    reason: str
    performed_by: str


# ---------------------------------------------------------------------------
# Staff Request Schemas
# ---------------------------------------------------------------------------
class RegisterStaffRequest(BaseModel):
    user_id: str
    full_name: str
    role: str
    performed_by: str | None = None


class ChangeStaffRoleRequest(BaseModel):
    role: str
    performed_by: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class InventoryItemIdResponse(BaseModel):
    inventory_item_id: str


class MovementIdResponse(BaseModel):
    movement_id: str


class AuditIdResponse(BaseModel):
    audit_id: str


class StaffIdResponse(BaseModel):
    user_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class ItemStateResponse(BaseModel):
    inventory_item_id: str
    outlet_id: str | None = None
    name: str
    category: str | None = None
    material: str | None = None
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
    last_movement_at: datetime | None = None
    version: int


class AllocationResponse(BaseModel):
    allocation_id: str
    inventory_item_id: str
    reference_type: str
    reference_id: str
    allocated_quantity: int
    returned_quantity: int
    damaged_quantity: int
    lost_quantity: int
    outstanding: int
    status: str


class MovementResponse(BaseModel):
    movement_id: str
    movement_category: str
    movement_type: str
    quantity: int
    reference_type: str | None = None
    reference_id: str | None = None
    reason_code: str
    notes: str | None = None
    actor: str
    occurred_at: datetime


class AuditLineResponse(BaseModel):
    inventory_item_id: str
    item_name: str | None = None
    system_quantity: int
    physical_quantity: int | None = None
    variance: int
    reason_code: str | None = None
    status: str
    requires_scrutiny: bool


class AuditResponse(BaseModel):
    audit_id: str
    outlet_id: str
    period: str
    status: str
    items_total: int
    items_counted: int
    variance_positive: int
    variance_negative: int
    rejection_reason: str | None = None
    lines: list[AuditLineResponse]
