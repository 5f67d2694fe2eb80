"""
Router parcels: orders, rider assignment and every delivery lifecycle action.
"""
from fastapi import APIRouter, Depends, Request

from core.dependencies import (
    AuthContext, Identity, get_auth_context, get_identity, require_admin, require_rider_or_admin,
)
from core.exceptions import forbidden_exception
from core.rate_limit import WRITE_LIMIT, limiter
from core.responses import success_response
from core.utils import normalize_email
from models.common import COMPLETED_DELIVERY_STATUSES, PENDING_DELIVERY_STATUSES, UserRole
from models.parcel import AssignRiderRequest, DeliveryStatusUpdate, ParcelCreate, TrackingUpdate
from services import parcel_service
from services.rider_service import get_rider_by_email

router = APIRouter()


async def _is_assigned_rider(ctx: AuthContext, parcel: dict) -> bool:
    if ctx.role != UserRole.RIDER or not parcel.get("assigned_rider_id"):
        return False
    rider = await get_rider_by_email(ctx.email)
    return bool(rider) and rider["rider_id"] == parcel["assigned_rider_id"]


async def _ensure_can_view(ctx: AuthContext, parcel: dict) -> None:
    """Owner, assigned rider or admin."""
    if ctx.is_admin or parcel["created_by"] == ctx.email:
        return
    if not await _is_assigned_rider(ctx, parcel):
        raise forbidden_exception()


async def _ensure_can_deliver(ctx: AuthContext, parcel_id: str) -> None:
    """Riders only act on parcels assigned to them; admins on any."""
    if ctx.is_admin:
        return
    parcel = await parcel_service.get_parcel(parcel_id)
    if not await _is_assigned_rider(ctx, parcel):
        raise forbidden_exception("Access denied: parcel is not assigned to you")


def _ensure_self_or_admin(ctx: AuthContext, email: str) -> None:
    if not ctx.is_admin and normalize_email(email) != ctx.email:
        raise forbidden_exception()


@router.post("", summary="Create a parcel order")
@limiter.limit(WRITE_LIMIT)
async def create_parcel_endpoint(
    request: Request,
    body: ParcelCreate,
    identity: Identity = Depends(get_identity),
):
    parcel = await parcel_service.create_parcel(body, owner_email=identity.email)
    return success_response("Parcel created successfully", parcel, 201)


@router.get("/user/{user_email}", summary="Parcels of the logged-in user")
async def my_parcels(user_email: str, identity: Identity = Depends(get_identity)):
    if normalize_email(user_email) != identity.email:
        raise forbidden_exception()
    parcels = await parcel_service.list_parcels_by_owner(identity.email)
    return success_response("Your parcels retrieved successfully", parcels)


@router.get("/id/{parcel_id}", summary="Parcel details")
async def get_parcel(parcel_id: str, ctx: AuthContext = Depends(get_auth_context)):
    parcel = await parcel_service.get_parcel(parcel_id)
    await _ensure_can_view(ctx, parcel)
    return success_response("Parcel found successfully", parcel)


@router.delete("/{parcel_id}", summary="Delete a parcel (owner or admin)")
async def delete_parcel(parcel_id: str, ctx: AuthContext = Depends(get_auth_context)):
    parcel = await parcel_service.get_parcel(parcel_id)
    if not ctx.is_admin and parcel["created_by"] != ctx.email:
        raise forbidden_exception()
    deleted = await parcel_service.delete_parcel(parcel_id)
    return success_response("Parcel deleted successfully", deleted)


@router.get("/assign-rider", summary="Parcels waiting for a rider (admin)")
async def assignable_parcels(_admin: AuthContext = Depends(require_admin)):
    parcels = await parcel_service.list_assignable_parcels()
    return success_response("Available parcels for rider assignment", parcels)


@router.patch("/assign/{parcel_id}", summary="Assign an idle rider (admin)")
async def assign_rider(
    parcel_id: str,
    body: AssignRiderRequest,
    _admin: AuthContext = Depends(require_admin),
):
    result = await parcel_service.assign_rider(parcel_id, body.rider_id)
    return success_response("Rider assigned successfully", result)


@router.get("/pending-deliveries/{email}", summary="Rider deliveries in progress")
async def pending_deliveries(email: str, ctx: AuthContext = Depends(require_rider_or_admin)):
    _ensure_self_or_admin(ctx, email)
    parcels = await parcel_service.list_rider_deliveries(email, PENDING_DELIVERY_STATUSES)
    return success_response("Pending deliveries fetched successfully", parcels)


@router.get("/completed-deliveries/{email}", summary="Rider completed deliveries")
async def completed_deliveries(email: str, ctx: AuthContext = Depends(require_rider_or_admin)):
    _ensure_self_or_admin(ctx, email)
    parcels = await parcel_service.list_rider_deliveries(email, COMPLETED_DELIVERY_STATUSES)
    return success_response("Completed deliveries fetched successfully", parcels)


@router.patch("/update-status/{parcel_id}", summary="Update delivery status")
async def update_delivery_status(
    parcel_id: str,
    body: DeliveryStatusUpdate,
    ctx: AuthContext = Depends(require_rider_or_admin),
):
    await _ensure_can_deliver(ctx, parcel_id)
    parcel = await parcel_service.advance_delivery_status(parcel_id, body.status)
    return success_response("Delivery status updated!", parcel)


@router.patch("/cash-out/{parcel_id}", summary="Cash out a delivered parcel")
async def cash_out(parcel_id: str, ctx: AuthContext = Depends(require_rider_or_admin)):
    await _ensure_can_deliver(ctx, parcel_id)
    parcel = await parcel_service.cash_out(parcel_id)
    return success_response("Cash out successful", parcel)


@router.patch("/tracking/{parcel_id}", summary="Append a tracking update")
async def add_tracking_update(
    parcel_id: str,
    body: TrackingUpdate,
    ctx: AuthContext = Depends(get_auth_context),
):
    parcel = await parcel_service.get_parcel(parcel_id)
    await _ensure_can_view(ctx, parcel)
    parcel = await parcel_service.append_tracking(parcel_id, body.status, body.message)
    return success_response("Tracking update added successfully.", parcel)


@router.get("/tracking/{tracking_code}", summary="Find a parcel by tracking code")
async def track_parcel(tracking_code: str, _identity: Identity = Depends(get_identity)):
    parcel = await parcel_service.get_parcel_by_tracking_code(tracking_code)
    return success_response("Parcel found successfully", parcel)


@router.get("/summary/status", summary="Parcel count per delivery status (admin)")
async def status_summary(_admin: AuthContext = Depends(require_admin)):
    summary = await parcel_service.status_summary()
    return success_response("Parcel status summary", summary)
