"""FastAPI routes for the Inventory domain: items, allocations, audits, staff."""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from inventory.api.schemas import (
    ActorRequest,
    AllocationResponse,
    AppendMovementRequest,
    AuditIdResponse,
    AuditLineResponse,
    AuditResponse,
    ChangeStaffRoleRequest,
    InventoryItemIdResponse,
    ItemStateResponse,
    MovementIdResponse,
    MovementResponse,
    OpenAuditRequest,
    RecordCountRequest,
    RegisterItemRequest,
    RegisterStaffRequest,
    RejectAuditRequest,
    StaffIdResponse,
    StatusResponse,
    TransitionLifecycleRequest,
    UpdateItemDetailsRequest,
)
from inventory.audit.reconciliation import (
    ApproveAudit,
    BeginReview,
    CancelAudit,
    CloseAudit,
    OpenAudit,
    RecordCount,
    RejectAudit,
    StartCounting,
    SubmitAudit,
)
from inventory.audit.session import AuditSession
from inventory.item.allocation import SettleReference
from inventory.item.queries import get_allocation, get_item_state, list_movements, list_reference_allocations
from inventory.item.recording import RecordMovement
from inventory.item.registration import RegisterItem, UpdateItemDetails
from inventory.item.transitions import ConfirmOpeningBalance, TransitionLifecycle
from inventory.staff.management import ChangeStaffRole, DeactivateStaff, RegisterStaff

# ---------------------------------------------------------------------------
# Item Router
# ---------------------------------------------------------------------------
item_router = APIRouter(prefix="/items", tags=["items"])


@item_router.post("", status_code=201, response_model=InventoryItemIdResponse)
async def register_item(body: RegisterItemRequest) -> InventoryItemIdResponse:
    command = RegisterItem(
        name=body.name,
        outlet_id=body.outlet_id,
        category=body.category,
        material=body.material,
        unit=body.unit,
        opening_stock=body.opening_stock,
        performed_by=body.performed_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return InventoryItemIdResponse(inventory_item_id=result)


@item_router.get("/{inventory_item_id}", response_model=ItemStateResponse)
async def item_state(inventory_item_id: str) -> ItemStateResponse:
    return ItemStateResponse(**asdict(get_item_state(inventory_item_id)))


@item_router.put("/{inventory_item_id}", response_model=StatusResponse)
async def update_item_details(inventory_item_id: str, body: UpdateItemDetailsRequest) -> StatusResponse:
    command = UpdateItemDetails(
        inventory_item_id=inventory_item_id,
        name=body.name,
        outlet_id=body.outlet_id,
        category=body.category,
        material=body.material,
        unit=body.unit,
        performed_by=body.performed_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@item_router.post("/{inventory_item_id}/movements", status_code=201, response_model=MovementIdResponse)
async def append_movement(inventory_item_id: str, body: AppendMovementRequest) -> MovementIdResponse:
    command = RecordMovement(
        inventory_item_id=inventory_item_id,
        movement_type=body.movement_type,
        movement_category=body.movement_category,
        quantity=body.quantity,
        reference_type=body.reference_type,
        reference_id=body.reference_id,
        reason_code=body.reason_code,
        notes=body.notes,
        performed_by=body.performed_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return MovementIdResponse(movement_id=result)


@item_router.get("/{inventory_item_id}/movements", response_model=list[MovementResponse])
async def item_movements(inventory_item_id: str, limit: int = 100) -> list[MovementResponse]:
    return [
        MovementResponse(
            movement_id=str(row.movement_id),
            movement_category=row.movement_category,
            movement_type=row.movement_type,
            quantity=row.quantity,
            reference_type=row.reference_type,
            reference_id=str(row.reference_id) if row.reference_id else None,
            reason_code=row.reason_code,
            notes=row.notes,
            actor=str(row.actor),
            occurred_at=row.occurred_at,
        )
        for row in list_movements(inventory_item_id, limit=limit)
    ]


@item_router.put("/{inventory_item_id}/lifecycle", response_model=StatusResponse)
async def transition_lifecycle(inventory_item_id: str, body: TransitionLifecycleRequest) -> StatusResponse:
    command = TransitionLifecycle(
        inventory_item_id=inventory_item_id,
        target=body.target,
        performed_by=body.performed_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@item_router.put("/{inventory_item_id}/opening-balance/confirm", response_model=StatusResponse)
async def confirm_opening_balance(inventory_item_id: str, body: ActorRequest) -> StatusResponse:
    command = ConfirmOpeningBalance(inventory_item_id=inventory_item_id, performed_by=body.performed_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@item_router.get(
    "/{inventory_item_id}/allocations/{reference_type}/{reference_id}",
    response_model=AllocationResponse,
)
async def item_allocation(inventory_item_id: str, reference_type: str, reference_id: str) -> AllocationResponse:
    allocation = get_allocation(inventory_item_id, reference_type, reference_id)
    if allocation is None:
        raise HTTPException(status_code=404, detail="No allocation for this reference")
    return AllocationResponse(
        allocation_id=str(allocation.id),
        inventory_item_id=inventory_item_id,
        reference_type=allocation.reference_type,
        reference_id=str(allocation.reference_id),
        allocated_quantity=allocation.allocated_quantity,
        returned_quantity=allocation.returned_quantity,
        damaged_quantity=allocation.damaged_quantity,
        lost_quantity=allocation.lost_quantity,
        outstanding=allocation.outstanding,
        status=allocation.status,
    )


# ---------------------------------------------------------------------------
# Allocation Router
# ---------------------------------------------------------------------------
allocation_router = APIRouter(prefix="/allocations", tags=["allocations"])


@allocation_router.get("/{reference_type}/{reference_id}", response_model=list[AllocationResponse])
async def reference_allocations(reference_type: str, reference_id: str) -> list[AllocationResponse]:
    return [
        AllocationResponse(
            allocation_id=str(row.allocation_id),
            inventory_item_id=str(row.inventory_item_id),
            reference_type=row.reference_type,
            reference_id=str(row.reference_id),
            allocated_quantity=row.allocated_quantity,
            returned_quantity=row.returned_quantity,
            damaged_quantity=row.damaged_quantity,
            lost_quantity=row.lost_quantity,
            outstanding=row.outstanding,
            status=row.status,
        )
        for row in list_reference_allocations(reference_type, reference_id)
    ]


@allocation_router.put("/{reference_type}/{reference_id}/settle", response_model=StatusResponse)
async def settle_reference(reference_type: str, reference_id: str) -> StatusResponse:
    command = SettleReference(reference_type=reference_type, reference_id=reference_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Audit Router
# ---------------------------------------------------------------------------
audit_router = APIRouter(prefix="/audits", tags=["audits"])


@audit_router.post("", status_code=201, response_model=AuditIdResponse)
async def open_audit(body: OpenAuditRequest) -> AuditIdResponse:
    command = OpenAudit(
        outlet_id=body.outlet_id,
        period=body.period,
        notes=body.notes,
        performed_by=body.performed_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return AuditIdResponse(audit_id=result)


@audit_router.get("/{audit_id}", response_model=AuditResponse)
async def audit_details(audit_id: str) -> AuditResponse:
    session = current_domain.repository_for(AuditSession).get(audit_id)
    return AuditResponse(
        audit_id=str(session.id),
        outlet_id=str(session.outlet_id),
        period=session.period,
        status=session.status,
        items_total=session.items_total,
        items_counted=session.items_counted,
        variance_positive=session.variance_positive,
        variance_negative=session.variance_negative,
        rejection_reason=session.rejection_reason,
        lines=[
            AuditLineResponse(
                inventory_item_id=str(line.inventory_item_id),
                item_name=line.item_name,
                system_quantity=line.system_quantity,
                physical_quantity=line.physical_quantity,
                variance=line.variance,
                reason_code=line.reason_code,
                status=line.status,
                requires_scrutiny=bool(line.requires_scrutiny),
            )
            for line in session.lines
        ],
    )


@audit_router.put("/{audit_id}/start", response_model=StatusResponse)
async def start_counting(audit_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(StartCounting(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/lines/{inventory_item_id}", response_model=StatusResponse)
async def record_count(audit_id: str, inventory_item_id: str, body: RecordCountRequest) -> StatusResponse:
    command = RecordCount(
        audit_id=audit_id,
        inventory_item_id=inventory_item_id,
        physical_quantity=body.physical_quantity,
        reason_code=body.reason_code,
        notes=body.notes,
        performed_by=body.performed_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/review", response_model=StatusResponse)
async def begin_review(audit_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(BeginReview(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/submit", response_model=StatusResponse)
async def submit_audit(audit_id: str, body: ActorRequest) -> StatusResponse:
    status = current_domain.process(SubmitAudit(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse(status=status)


@audit_router.put("/{audit_id}/approve", response_model=StatusResponse)
async def approve_audit(audit_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(ApproveAudit(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/reject", response_model=StatusResponse)
async def reject_audit(audit_id: str, body: RejectAuditRequest) -> StatusResponse:
    command = RejectAudit(audit_id=audit_id, reason=body.reason, performed_by=body.performed_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/cancel", response_model=StatusResponse)
async def cancel_audit(audit_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(CancelAudit(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()


@audit_router.put("/{audit_id}/close", response_model=StatusResponse)
async def close_audit(audit_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(CloseAudit(audit_id=audit_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Staff Router
# ---------------------------------------------------------------------------
staff_router = APIRouter(prefix="/staff", tags=["staff"])


@staff_router.post("", status_code=201, response_model=StaffIdResponse)
async def register_staff(body: RegisterStaffRequest) -> StaffIdResponse:
    command = RegisterStaff(
        user_id=body.user_id,
        full_name=body.full_name,
        role=body.role,
        performed_by=body.performed_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return StaffIdResponse(user_id=result)


@staff_router.put("/{user_id}/role", response_model=StatusResponse)
async def change_staff_role(user_id: str, body: ChangeStaffRoleRequest) -> StatusResponse:
    command = ChangeStaffRole(user_id=user_id, role=body.role, performed_by=body.performed_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@staff_router.put("/{user_id}/deactivate", response_model=StatusResponse)
async def deactivate_staff(user_id: str, body: ActorRequest) -> StatusResponse:
    current_domain.process(DeactivateStaff(user_id=user_id, performed_by=body.performed_by), asynchronous=False)
    return StatusResponse()
