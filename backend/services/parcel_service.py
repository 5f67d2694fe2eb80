"""
Parcel service: delivery lifecycle, tracking history, rider coupling.

Lifecycle: not_collected -> rider_assigned -> in_transit -> delivered.
The status setter does not enforce the forward order, but a parcel is
bound to a rider exactly while its status has left not_collected.
"""
import logging
from datetime import datetime, timezone
from typing import List

from pydantic import EmailStr, TypeAdapter, ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from core.exceptions import (
    bad_request_exception, conflict_exception, internal_exception, not_found_exception,
)
from core.security import generate_tracking_code, new_id
from core.utils import normalize_email
from database import db
from models.common import (
    CashOutStatus, DeliveryStatus, PaymentStatus, RIDER_BOUND_STATUSES, TrackingStatus,
)
from models.parcel import Parcel, ParcelCreate, TrackingEntry
from services.rider_service import get_rider, get_rider_by_email, release_rider, try_assign

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", -1)]
TRACKING_CODE_ATTEMPTS = 5

_owner_email = TypeAdapter(EmailStr)


async def _update_parcel(parcel_id: str, fields: dict) -> dict:
    fields = {**fields, "updated_at": datetime.now(timezone.utc)}
    updated = await db.parcels.find_one_and_update(
        {"parcel_id": parcel_id},
        {"$set": fields},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise not_found_exception("Parcel")
    return updated


# ── Creation ──────────────────────────────────────────────────────────────────
async def create_parcel(data: ParcelCreate, owner_email: str) -> dict:
    """New parcel in not_collected/unpaid with a fresh tracking code and no history."""
    owner_email = normalize_email(owner_email)
    try:
        _owner_email.validate_python(owner_email)
    except ValidationError:
        raise bad_request_exception("Invalid email address")

    now = datetime.now(timezone.utc)
    for attempt in range(1, TRACKING_CODE_ATTEMPTS + 1):
        parcel_doc = Parcel(
            parcel_id=new_id("prc"),
            tracking_code=generate_tracking_code(),
            created_by=owner_email,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        ).model_dump()
        try:
            await db.parcels.insert_one(parcel_doc)
            break
        except DuplicateKeyError:
            logger.warning(f"Tracking code {parcel_doc['tracking_code']} taken (attempt {attempt})")
    else:
        raise internal_exception("Could not allocate a tracking code")
    logger.info(f"Parcel {parcel_doc['parcel_id']} created by {owner_email} ({parcel_doc['tracking_code']})")
    return {k: v for k, v in parcel_doc.items() if k != "_id"}


# ── Reads ─────────────────────────────────────────────────────────────────────
async def get_parcel(parcel_id: str) -> dict:
    parcel = await db.parcels.find_one({"parcel_id": parcel_id}, {"_id": 0})
    if not parcel:
        raise not_found_exception("Parcel")
    return parcel


async def get_parcel_by_tracking_code(tracking_code: str) -> dict:
    parcel = await db.parcels.find_one({"tracking_code": tracking_code.strip()}, {"_id": 0})
    if not parcel:
        raise not_found_exception("Parcel")
    return parcel


async def list_parcels_by_owner(email: str) -> List[dict]:
    cursor = db.parcels.find({"created_by": normalize_email(email)}, {"_id": 0}, sort=NEWEST_FIRST)
    return await cursor.to_list(length=500)


async def list_assignable_parcels() -> List[dict]:
    """Paid parcels still waiting for a rider."""
    cursor = db.parcels.find(
        {
            "payment_status":  PaymentStatus.PAID.value,
            "delivery_status": DeliveryStatus.NOT_COLLECTED.value,
        },
        {"_id": 0},
        sort=NEWEST_FIRST,
    )
    return await cursor.to_list(length=500)


async def list_rider_deliveries(email: str, statuses: List[str]) -> List[dict]:
    rider = await get_rider_by_email(email)
    if not rider:
        raise not_found_exception("Rider")
    cursor = db.parcels.find(
        {"assigned_rider_id": rider["rider_id"], "delivery_status": {"$in": statuses}},
        {"_id": 0},
        sort=NEWEST_FIRST,
    )
    return await cursor.to_list(length=500)


async def status_summary() -> List[dict]:
    """Parcel count per delivery status."""
    pipeline = [
        {"$group": {"_id": "$delivery_status", "count": {"$sum": 1}}},
        {"$project": {"_id": 0, "status": "$_id", "count": 1}},
        {"$sort": {"status": 1}},
    ]
    return await db.parcels.aggregate(pipeline).to_list(length=None)


# ── Transitions ───────────────────────────────────────────────────────────────
async def record_payment(parcel_id: str) -> dict:
    return await _update_parcel(parcel_id, {"payment_status": PaymentStatus.PAID.value})


async def assign_rider(parcel_id: str, rider_id: str) -> dict:
    parcel = await get_parcel(parcel_id)
    rider = await get_rider(rider_id)
    parcel, rider = await try_assign(rider, parcel)
    logger.info(f"Rider {rider_id} assigned to parcel {parcel_id}")
    return {"parcel": parcel, "rider": rider}


async def advance_delivery_status(parcel_id: str, new_status: DeliveryStatus) -> dict:
    """
    Sets the delivery status. in_transit stamps picked_at once and delivered
    stamps delivered_at once. Entering delivered releases the assigned rider.
    If the release fails the parcel is put back as it was.
    """
    parcel = await get_parcel(parcel_id)
    rider_id = parcel.get("assigned_rider_id")

    if new_status in RIDER_BOUND_STATUSES and not rider_id:
        raise conflict_exception(f"Parcel has no assigned rider, cannot move to {new_status.value}")
    if new_status == DeliveryStatus.NOT_COLLECTED and rider_id:
        raise conflict_exception("Parcel is bound to a rider, cannot move back to not_collected")

    now = datetime.now(timezone.utc)
    fields = {"delivery_status": new_status.value}
    if new_status == DeliveryStatus.IN_TRANSIT and not parcel.get("picked_at"):
        fields["picked_at"] = now
    entering_delivered = (
        new_status == DeliveryStatus.DELIVERED
        and parcel["delivery_status"] != DeliveryStatus.DELIVERED.value
    )
    if new_status == DeliveryStatus.DELIVERED and not parcel.get("delivered_at"):
        fields["delivered_at"] = now

    updated = await _update_parcel(parcel_id, fields)

    if entering_delivered:
        try:
            await release_rider(rider_id)
        except PyMongoError as e:
            logger.error(f"Releasing rider {rider_id} failed, reverting parcel {parcel_id}: {e}")
            await db.parcels.update_one(
                {"parcel_id": parcel_id},
                {"$set": {k: parcel.get(k) for k in (*fields, "updated_at")}},
            )
            raise

    logger.info(f"Parcel {parcel_id}: {parcel['delivery_status']} -> {new_status.value}")
    return updated


async def append_tracking(parcel_id: str, status: str, message: str) -> dict:
    """Appends one entry to the tracking history; delivery_status is untouched."""
    status = (status or "").strip()
    message = (message or "").strip()
    if not status or not message:
        raise bad_request_exception("Status and message are required.")
    try:
        tracking_status = TrackingStatus(status)
    except ValueError:
        raise bad_request_exception(f"Invalid tracking status: {status}")

    entry = TrackingEntry(
        status=tracking_status,
        message=message,
        date=datetime.now(timezone.utc),
    ).model_dump()
    updated = await db.parcels.find_one_and_update(
        {"parcel_id": parcel_id},
        {"$push": {"tracking_history": entry}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise not_found_exception("Parcel")
    return updated


async def cash_out(parcel_id: str) -> dict:
    """Marks the collected cash as settled. Each call re-stamps cash_out_at."""
    return await _update_parcel(parcel_id, {
        "cash_out_status": CashOutStatus.PAID.value,
        "cash_out_at":     datetime.now(timezone.utc),
    })


async def delete_parcel(parcel_id: str) -> dict:
    """Hard delete. A rider still carrying the parcel is released."""
    deleted = await db.parcels.find_one_and_delete({"parcel_id": parcel_id}, projection={"_id": 0})
    if not deleted:
        raise not_found_exception("Parcel")

    rider_id = deleted.get("assigned_rider_id")
    if rider_id and deleted.get("delivery_status") != DeliveryStatus.DELIVERED.value:
        await release_rider(rider_id)
    logger.info(f"Parcel {parcel_id} deleted")
    return deleted
