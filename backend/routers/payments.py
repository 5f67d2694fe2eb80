"""
Router payment: Stripe checkout, payment confirmation, payment history.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from core.dependencies import AuthContext, Identity, get_auth_context, get_identity
from core.exceptions import forbidden_exception
from core.rate_limit import WRITE_LIMIT, limiter
from core.responses import success_response
from core.utils import normalize_email
from models.payment import CheckoutRequest, PaymentConfirm
from services import payment_service

router = APIRouter()


@router.post("/checkout", summary="Create a payment intent")
async def checkout(body: CheckoutRequest, _identity: Identity = Depends(get_identity)):
    result = await payment_service.checkout(body.parcel_id, body.amount)
    return success_response("Payment intent created", result)


@router.post("/confirm", summary="Confirm a payment and record it")
@limiter.limit(WRITE_LIMIT)
async def confirm_payment(
    request: Request,
    body: PaymentConfirm,
    _identity: Identity = Depends(get_identity),
):
    history, created = await payment_service.confirm_payment(body)
    if created:
        return success_response("Payment confirmed and history recorded successfully", history, 201)
    return success_response("Payment already recorded", history)


@router.get("/history", summary="Payment history by email")
async def payment_history(
    email: Optional[str] = None,
    ctx: AuthContext = Depends(get_auth_context),
):
    email = normalize_email(email) if email else ctx.email
    if not ctx.is_admin and email != ctx.email:
        raise forbidden_exception()
    histories = await payment_service.payment_history_by_email(email)
    message = "Payment history fetched successfully" if histories else "No payment history found"
    return success_response(message, histories)
