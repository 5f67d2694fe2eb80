"""
Rider service: onboarding workflow and the idle-only assignment policy.

A rider carries at most one active parcel: `work_status` goes
idle -> in_delivery on assignment and back to idle when the parcel is
delivered. The rider document does not record which parcel it holds.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from core.dependencies import Identity
from core.exceptions import (
    bad_request_exception, conflict_exception, not_found_exception,
)
from core.security import new_id
from core.utils import iexact, normalize_email
from database import db
from models.common import (
    ApplicationStatus, DeliveryStatus, SELF_SERVICE_WORK_STATUSES, UserRole, WorkStatus,
)
from models.rider import Rider, RiderApplicationCreate

logger = logging.getLogger(__name__)


async def get_rider(rider_id: str) -> dict:
    rider = await db.riders.find_one({"rider_id": rider_id}, {"_id": 0})
    if not rider:
        raise not_found_exception("Rider")
    return rider


async def get_rider_by_email(email: str) -> Optional[dict]:
    return await db.riders.find_one({"email": normalize_email(email)}, {"_id": 0})


# ── Assignment policy ─────────────────────────────────────────────────────────
async def claim_rider(rider_id: str) -> Optional[dict]:
    """Flips an idle rider to in_delivery in one conditional update. None if not idle."""
    # no projection: the filter matches on the field being changed
    claimed = await db.riders.find_one_and_update(
        {"rider_id": rider_id, "work_status": WorkStatus.IDLE.value},
        {"$set": {"work_status": WorkStatus.IN_DELIVERY.value}},
        return_document=ReturnDocument.AFTER,
    )
    if claimed is None:
        return None
    return {k: v for k, v in claimed.items() if k != "_id"}


async def release_rider(rider_id: str) -> None:
    await db.riders.update_one(
        {"rider_id": rider_id},
        {"$set": {"work_status": WorkStatus.IDLE.value}},
    )
    logger.info(f"Rider {rider_id} released (idle)")


async def try_assign(rider: dict, parcel: dict) -> tuple:
    """
    Binds `rider` to `parcel`. The rider is claimed first; if the parcel
    write then fails, the claim is undone so neither document changes.
    A parcel still carried by another rider cannot be rebound.
    Returns (parcel, rider) as stored after the update.
    """
    rider_id = rider["rider_id"]
    bound_to = parcel.get("assigned_rider_id")
    if bound_to and parcel.get("delivery_status") != DeliveryStatus.DELIVERED.value:
        raise conflict_exception("Parcel already has a rider on delivery")
    if rider.get("work_status") != WorkStatus.IDLE.value:
        raise conflict_exception("Rider is currently busy")

    claimed = await claim_rider(rider_id)
    if not claimed:
        # lost the race against another assignment
        raise conflict_exception("Rider is currently busy")

    try:
        bound = await db.parcels.find_one_and_update(
            {"parcel_id": parcel["parcel_id"]},
            {"$set": {
                "assigned_rider_id": rider_id,
                "delivery_status":   DeliveryStatus.RIDER_ASSIGNED.value,
                "updated_at":        datetime.now(timezone.utc),
            }},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Binding parcel {parcel['parcel_id']} failed, releasing rider {rider_id}: {e}")
        await release_rider(rider_id)
        raise

    if bound is None:
        logger.warning(f"Parcel {parcel['parcel_id']} vanished during assignment, releasing rider {rider_id}")
        await release_rider(rider_id)
        raise not_found_exception("Parcel")

    return bound, claimed


# ── Onboarding ────────────────────────────────────────────────────────────────
async def submit_application(body: RiderApplicationCreate, identity: Identity) -> dict:
    if normalize_email(body.email) != identity.email:
        raise conflict_exception("You have to enter your login email!")

    existing = await db.riders.find_one({"uid": identity.uid}, {"_id": 0, "rider_id": 1})
    if existing:
        raise conflict_exception("You already have an active application with this account.")

    doc = Rider(
        rider_id=new_id("rdr"),
        uid=identity.uid,
        email=identity.email,
        application_at=datetime.now(timezone.utc),
        **body.model_dump(exclude={"email"}),
    ).model_dump()
    await db.riders.insert_one(doc)
    logger.info(f"Rider application {doc['rider_id']} submitted by {identity.email}")
    return {k: v for k, v in doc.items() if k != "_id"}


async def list_riders_by_status(status: ApplicationStatus) -> List[dict]:
    sort_field = "approve_date" if status == ApplicationStatus.APPROVED else "application_at"
    cursor = db.riders.find(
        {"application_status": status.value},
        {"_id": 0},
        sort=[(sort_field, -1)],
    )
    return await cursor.to_list(length=500)


async def decide_application(rider_id: str, status: ApplicationStatus) -> dict:
    """One-time admin decision; approving also promotes the user to the rider role."""
    rider = await get_rider(rider_id)
    if rider["application_status"] != ApplicationStatus.PENDING.value:
        raise conflict_exception("Application already decided")

    now = datetime.now(timezone.utc)
    if status == ApplicationStatus.APPROVED:
        await db.users.update_one(
            {"email": rider["email"]},
            {"$set": {"role": UserRole.RIDER.value}},
        )
        update = {"application_status": status.value, "approve_date": now, "is_active": True}
    elif status == ApplicationStatus.REJECTED:
        update = {"application_status": status.value, "reject_date": now, "is_active": False}
    else:
        raise bad_request_exception("Invalid status value")

    updated = await db.riders.find_one_and_update(
        {"rider_id": rider_id},
        {"$set": update},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    logger.info(f"Rider {rider_id} application {status.value}")
    return updated


async def set_active(rider_id: str, is_active: bool) -> dict:
    rider = await get_rider(rider_id)
    if is_active and rider["application_status"] != ApplicationStatus.APPROVED.value:
        raise conflict_exception("Only approved riders can be activated")

    return await db.riders.find_one_and_update(
        {"rider_id": rider_id},
        {"$set": {"is_active": is_active}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )


async def available_riders(region: Optional[str]) -> List[dict]:
    """Active, approved and idle riders of a region (case-insensitive exact match)."""
    if not region or not region.strip():
        raise bad_request_exception("Region query parameter is required")
    cursor = db.riders.find(
        {
            "region":             iexact(region),
            "is_active":          True,
            "work_status":        WorkStatus.IDLE.value,
            "application_status": ApplicationStatus.APPROVED.value,
        },
        {"_id": 0},
    )
    return await cursor.to_list(length=500)


async def get_approved_rider_by_email(email: str) -> dict:
    rider = await db.riders.find_one(
        {"email": normalize_email(email), "application_status": ApplicationStatus.APPROVED.value},
        {"_id": 0},
    )
    if not rider:
        raise not_found_exception("Approved rider")
    return rider


async def update_work_status(email: str, work_status: WorkStatus) -> dict:
    if work_status not in SELF_SERVICE_WORK_STATUSES:
        raise bad_request_exception("Invalid work status value")

    rider = await get_rider_by_email(email)
    if not rider:
        raise not_found_exception("Rider")
    if rider.get("work_status") == WorkStatus.IN_DELIVERY.value:
        raise conflict_exception("Rider is on a delivery; work status follows the parcel")

    return await db.riders.find_one_and_update(
        {"rider_id": rider["rider_id"]},
        {"$set": {"work_status": work_status.value}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
