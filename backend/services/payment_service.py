"""
Payment service: Stripe PaymentIntent creation and payment history.
Docs : https://docs.stripe.com/api/payment_intents/create

The client confirms the intent with the returned client secret, then
posts the confirmation here; only that confirmation is recorded.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List

import httpx
from pymongo.errors import DuplicateKeyError

from config import settings
from core.exceptions import (
    bad_request_exception, conflict_exception, internal_exception, not_found_exception,
)
from core.security import new_id
from core.utils import iexact, normalize_email
from database import db
from models.payment import PaymentConfirm, PaymentHistory
from services.parcel_service import record_payment

logger = logging.getLogger(__name__)

STRIPE_BASE_URL = "https://api.stripe.com/v1"


async def create_payment_intent(parcel_id: str, amount: int) -> dict:
    """
    Creates a Stripe PaymentIntent (amount in the smallest currency unit).
    Returns the client secret the front end needs to confirm the payment.
    """
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("Stripe not configured, simulated payment intent")
        intent_id = f"pi_simulated_{uuid.uuid4().hex[:16]}"
        return {
            "success": True,
            "payment_intent_id": intent_id,
            "client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
            "simulated": True,
        }

    payload = {
        "amount": amount,
        "currency": settings.STRIPE_CURRENCY,
        "description": f"Parcel Payment for {parcel_id}",
        "automatic_payment_methods[enabled]": "true",
        "metadata[parcel_id]": parcel_id,
    }

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            resp = await client.post(
                f"{STRIPE_BASE_URL}/payment_intents",
                data=payload,
                auth=(settings.STRIPE_SECRET_KEY, ""),
            )
            data = resp.json()
            if resp.status_code == 200:
                return {
                    "success": True,
                    "payment_intent_id": data["id"],
                    "client_secret": data["client_secret"],
                }
            else:
                logger.error(f"Stripe error: {data}")
                return {"success": False, "error": data.get("error", {}).get("message")}
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Stripe network error: {e}")
        return {"success": False, "error": str(e)}


async def checkout(parcel_id: str, amount: int) -> dict:
    if amount is None or amount <= 0:
        raise bad_request_exception("Invalid payment amount")
    parcel = await db.parcels.find_one({"parcel_id": parcel_id}, {"_id": 0, "parcel_id": 1})
    if not parcel:
        raise not_found_exception("Parcel")

    result = await create_payment_intent(parcel_id, amount)
    if not result["success"]:
        raise internal_exception("Failed to create payment intent")
    return {"client_secret": result["client_secret"]}


async def _recorded_transaction(body: PaymentConfirm):
    existing = await db.payment_histories.find_one({"transaction_id": body.transaction_id}, {"_id": 0})
    if existing and existing["parcel_id"] != body.parcel_id:
        raise conflict_exception("Transaction already recorded for another parcel")
    if existing:
        logger.info(f"Duplicate confirmation ignored for transaction {body.transaction_id}")
    return existing


async def confirm_payment(body: PaymentConfirm) -> tuple:
    """
    Marks the parcel paid and writes one history row.
    A transaction id already on record returns that row unchanged.
    Returns (history, created).
    """
    existing = await _recorded_transaction(body)
    if existing:
        return existing, False

    await record_payment(body.parcel_id)

    history = PaymentHistory(
        payment_id=new_id("pay"),
        parcel_id=body.parcel_id,
        email=normalize_email(body.email),
        amount=body.amount,
        payment_method=body.payment_method,
        transaction_id=body.transaction_id,
        paid_at=datetime.now(timezone.utc),
    ).model_dump()
    try:
        await db.payment_histories.insert_one(history)
    except DuplicateKeyError:
        # a concurrent confirmation of the same transaction won the insert
        existing = await _recorded_transaction(body)
        if existing:
            return existing, False
        raise
    logger.info(f"Payment {body.transaction_id} recorded for parcel {body.parcel_id}")
    return {k: v for k, v in history.items() if k != "_id"}, True


async def payment_history_by_email(email: str) -> List[dict]:
    cursor = db.payment_histories.find(
        {"email": iexact(email)},
        {"_id": 0},
        sort=[("paid_at", -1)],
    )
    return await cursor.to_list(length=500)
