import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from storefront.identity.repository import ProfileLookupError
from storefront.identity.service import resolve_requester
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_user

from storefront.payments import stripe_client
from storefront.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class StripePaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str = "create"
    order_id: Optional[str] = Field(default=None, alias="orderId")
    currency: str = "usd"
    receipt_email: Optional[str] = Field(default=None, alias="receiptEmail")
    payment_intent_id: Optional[str] = Field(default=None, alias="paymentIntentId")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

# module storefront.payments.views
@router.post("/stripe-payment", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def stripe_payment(
    payload: StripePaymentRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """
    Fonction de paiement (Bearer optionnel: invité autorisé).
    - action=create   {orderId, currency, receiptEmail?} -> {clientSecret, paymentIntentId, status}
    - action=finalize {paymentIntentId}                  -> {orderId, status}
    - Erreurs: {error} avec statut non-2xx
    """
    try:
        requester = resolve_requester(user)
    except ProfileLookupError:
        logger.exception("Erreur stripe_payment requester lookup")
        return _error("Unable to verify your account. Please try again.", 503)

    try:
        if payload.action == "finalize":
            return payments_service.finalize_payment(payload.payment_intent_id, requester=requester)
        if payload.action == "create":
            return payments_service.create_payment_intent(
                payload.order_id,
                currency=payload.currency,
                receipt_email=payload.receipt_email,
                requester=requester,
            )
        return _error(f"Unknown action: {payload.action}", 400)
    except payments_service.PaymentBackendError as e:
        logger.info("payments.stripe_payment rejected action=%s status=%s error=%s", payload.action, e.status_code, e.message)
        return _error(e.message, e.status_code)


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: payment_intent.succeeded -> finalize idempotent (troisième point d'entrée).
    - Signature: stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Réponses: {"status": "ok", "orderId", "result"} ou {"status": "ignored"}
    - Erreurs: 400 si signature/payload invalide; statut du refus sinon (Stripe relivrera)
    """
    try:
        event = await stripe_client.parse_event(request)
    except Exception:
        logger.exception("Erreur webhook_stripe signature")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")

    try:
        return await run_in_threadpool(payments_service.handle_webhook_event, event)
    except payments_service.PaymentBackendError as e:
        logger.warning("payments.webhook finalize rejected status=%s error=%s", e.status_code, e.message)
        return _error(e.message, e.status_code)
