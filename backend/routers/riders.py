"""
Router rider: rider applications and availability.
Workflow: user applies -> admin approves or rejects -> approved rider can be activated and assigned.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from core.dependencies import (
    AuthContext, Identity, get_identity, require_admin, require_rider, require_rider_or_admin,
)
from core.exceptions import forbidden_exception
from core.responses import success_response
from core.utils import normalize_email
from models.common import ApplicationStatus
from models.rider import ActiveToggle, ApplicationDecision, RiderApplicationCreate, WorkStatusUpdate
from services import rider_service

router = APIRouter()


# ── User endpoints ────────────────────────────────────────────────────────────

@router.post("", summary="Submit a rider application")
async def apply_rider(
    body: RiderApplicationCreate,
    identity: Identity = Depends(get_identity),
):
    rider = await rider_service.submit_application(body, identity)
    return success_response("Rider application submitted successfully!", rider, 201)


# ── Admin endpoints ───────────────────────────────────────────────────────────

@router.get("/pending", summary="Pending rider applications (admin)")
async def pending_riders(_admin: AuthContext = Depends(require_admin)):
    riders = await rider_service.list_riders_by_status(ApplicationStatus.PENDING)
    message = "Pending rider applications retrieved successfully" if riders else "No pending rider applications found"
    return success_response(message, riders)


@router.get("/approved", summary="Approved riders (admin)")
async def approved_riders(_admin: AuthContext = Depends(require_admin)):
    riders = await rider_service.list_riders_by_status(ApplicationStatus.APPROVED)
    message = "Approved riders retrieved successfully" if riders else "No approved riders found"
    return success_response(message, riders)


@router.patch("/status/{rider_id}", summary="Approve or reject an application (admin)")
async def decide_application(
    rider_id: str,
    body: ApplicationDecision,
    _admin: AuthContext = Depends(require_admin),
):
    rider = await rider_service.decide_application(rider_id, ApplicationStatus(body.status))
    return success_response(f"Rider {body.status} successfully", rider)


@router.patch("/active/{rider_id}", summary="Activate or deactivate a rider (admin)")
async def set_rider_active(
    rider_id: str,
    body: ActiveToggle,
    _admin: AuthContext = Depends(require_admin),
):
    rider = await rider_service.set_active(rider_id, body.is_active)
    message = "Rider activated successfully" if body.is_active else "Rider deactivated successfully"
    return success_response(message, rider)


@router.get("/available", summary="Idle riders of a region (admin)")
async def available_riders(
    region: Optional[str] = None,
    _admin: AuthContext = Depends(require_admin),
):
    riders = await rider_service.available_riders(region)
    message = "Available riders fetched successfully" if riders else "No available riders found"
    return success_response(message, riders)


# ── Rider endpoints ───────────────────────────────────────────────────────────

@router.get("/approved/{email}", summary="Approved rider profile")
async def approved_rider(email: str, ctx: AuthContext = Depends(require_rider_or_admin)):
    if not ctx.is_admin and normalize_email(email) != ctx.email:
        raise forbidden_exception()
    rider = await rider_service.get_approved_rider_by_email(email)
    return success_response("Rider fetched successfully", rider)


@router.patch("/work-status/{email}", summary="Update own work status (rider)")
async def update_work_status(
    email: str,
    body: WorkStatusUpdate,
    ctx: AuthContext = Depends(require_rider),
):
    if normalize_email(email) != ctx.email:
        raise forbidden_exception()
    rider = await rider_service.update_work_status(email, body.work_status)
    return success_response(f'Work status updated to "{body.work_status.value}"', rider)
