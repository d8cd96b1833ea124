"""
Fonction de paiement (côté serveur, client service-role):
- create: obtient ou réutilise un PaymentIntent pour une commande Pending, montant relu en base
- finalize: vérifie l'intent auprès de Stripe puis confirme la commande une seule fois
- webhook: payment_intent.succeeded rejoint le même finalize (livraison au moins une fois)
Les erreurs sont des PaymentBackendError (message + statut HTTP) rendues en {error}.
"""
from decimal import ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging

import stripe

from storefront.cart.models import to_money
from storefront.identity.models import Requester
from storefront.orders import repository as orders_repo
from storefront.orders.models import ORDER_CONFIRMED

from . import stripe_client
from . import metadata as meta

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"
INTENT_CANCELED = "canceled"
ALREADY_CONFIRMED = "already_confirmed"


class PaymentBackendError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def amount_in_cents(total: Any) -> int:
    return int((to_money(total) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _load_order(order_id: str, requester: Optional[Requester], trusted: bool, verb: str) -> Dict[str, Any]:
    try:
        order = orders_repo.get_order(order_id, columns=orders_repo.ORDER_PAYMENT_COLUMNS)
    except orders_repo.OrderStoreError as e:
        raise PaymentBackendError(str(e), status_code=502) from e
    if not order:
        raise PaymentBackendError("Order not found", status_code=404)
    if not trusted and not (requester or Requester()).owns(order):
        raise PaymentBackendError(f"You do not have permission to {verb} this order", status_code=403)
    return order


def _reusable_intent(intent_id: Optional[str], amount: int) -> Optional[Dict[str, Any]]:
    """
    Intent déjà rattaché à la commande:
    - succeeded -> commande déjà payée (erreur)
    - canceled ou introuvable -> None (un nouvel intent sera créé)
    - montant différent -> mis à jour
    """
    if not intent_id:
        return None
    try:
        existing = stripe_client.retrieve_payment_intent(intent_id)
    except stripe.StripeError:
        logger.warning("payments.service existing intent unavailable intent_id=%s", intent_id)
        return None
    status = existing.get("status")
    if status == INTENT_SUCCEEDED:
        raise PaymentBackendError("Order already paid")
    if status == INTENT_CANCELED:
        return None
    if existing.get("amount") != amount:
        return stripe_client.update_payment_intent_amount(existing["id"], amount)
    return existing


def create_payment_intent(
    order_id: Optional[str],
    currency: str = "usd",
    receipt_email: Optional[str] = None,
    requester: Optional[Requester] = None,
) -> Dict[str, Any]:
    """
    action=create -> {clientSecret, paymentIntentId, status}
    Le montant vient de orders.total (jamais du client).
    """
    if not order_id:
        raise PaymentBackendError("orderId is required")

    order = _load_order(order_id, requester, trusted=False, verb="pay for")
    if order.get("status") == ORDER_CONFIRMED:
        raise PaymentBackendError("Order already confirmed")

    amount = amount_in_cents(order.get("total"))
    if amount <= 0:
        raise PaymentBackendError("Order total is invalid for payment")

    try:
        intent = _reusable_intent(order.get("stripe_payment_intent_id"), amount)
        if intent is None:
            intent = stripe_client.create_payment_intent(
                amount=amount,
                currency=currency or "usd",
                metadata=meta.make_metadata(order_id, requester.auth_user_id if requester else None),
                receipt_email=receipt_email or None,
            )
    except stripe.StripeError as e:
        logger.exception("payments.service.create_payment_intent stripe failure order_id=%s", order_id)
        raise PaymentBackendError(getattr(e, "user_message", None) or "Unable to start payment", status_code=502) from e

    try:
        orders_repo.link_payment_intent(order_id, intent["id"], intent.get("status") or "")
    except orders_repo.OrderStoreError as e:
        raise PaymentBackendError(str(e), status_code=502) from e

    logger.info("payments.service intent ready order_id=%s intent_id=%s amount=%s", order_id, intent["id"], amount)
    return {
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent["id"],
        "status": intent.get("status"),
    }


def _check_linked_intent(order: Dict[str, Any], order_id: str, intent_id: str) -> None:
    """Une commande confirmée ne reconnaît que l'intent qui l'a réglée (double encaissement sinon)."""
    linked = order.get("stripe_payment_intent_id")
    if linked and linked != intent_id:
        logger.error(
            "payments.service finalize intent mismatch order_id=%s intent_id=%s linked=%s",
            order_id, intent_id, linked,
        )
        raise PaymentBackendError("Payment does not match the confirmed order", status_code=409)


def finalize_payment(
    payment_intent_id: Optional[str],
    requester: Optional[Requester] = None,
    trusted: bool = False,
) -> Dict[str, Any]:
    """
    action=finalize -> {orderId, status}
    Idempotent: un second appel pour la même commande retourne le même orderId
    avec status 'already_confirmed', sans nouvelle écriture.
    - trusted: appel webhook (signature vérifiée), pas de contrôle de propriété
    """
    if not payment_intent_id:
        raise PaymentBackendError("paymentIntentId is required")

    try:
        intent = stripe_client.retrieve_payment_intent(payment_intent_id)
    except stripe.StripeError as e:
        logger.exception("payments.service.finalize_payment retrieve failed intent_id=%s", payment_intent_id)
        raise PaymentBackendError("Unable to retrieve payment intent", status_code=502) from e

    if not intent or not isinstance(intent.get("amount"), int):
        raise PaymentBackendError("Unable to retrieve payment intent", status_code=502)
    status = intent.get("status")
    if status != INTENT_SUCCEEDED:
        raise PaymentBackendError(f"Payment is not complete (status: {status})")

    order_id = meta.order_id_from_intent(intent)
    if not order_id:
        raise PaymentBackendError("Payment intent is missing order metadata")

    order = _load_order(order_id, requester, trusted=trusted, verb="modify")
    if order.get("status") == ORDER_CONFIRMED:
        _check_linked_intent(order, order_id, intent["id"])
        logger.info("payments.service finalize already confirmed order_id=%s", order_id)
        return {"orderId": order_id, "status": ALREADY_CONFIRMED}

    settled = intent.get("amount_received") or intent["amount"]
    expected = amount_in_cents(order.get("total"))
    if settled != expected:
        logger.error(
            "payments.service amount mismatch order_id=%s intent_id=%s settled=%s expected=%s",
            order_id, payment_intent_id, settled, expected,
        )
        raise PaymentBackendError("Payment amount does not match order total", status_code=409)

    try:
        confirmed = orders_repo.confirm_paid_order(order_id, intent["id"], status)
        if confirmed is None:
            # aucune ligne Pending: une autre exécution a confirmé entre-temps
            current = orders_repo.get_order(order_id, columns="id, status, stripe_payment_intent_id")
            if (current or {}).get("status") == ORDER_CONFIRMED:
                _check_linked_intent(current, order_id, intent["id"])
                logger.info("payments.service finalize raced, already confirmed order_id=%s", order_id)
                return {"orderId": order_id, "status": ALREADY_CONFIRMED}
            raise PaymentBackendError("Order could not be confirmed", status_code=409)
    except orders_repo.OrderStoreError as e:
        raise PaymentBackendError(str(e), status_code=502) from e

    logger.info("payments.service order confirmed order_id=%s intent_id=%s", order_id, intent["id"])
    return {"orderId": order_id, "status": status}


def handle_webhook_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    payment_intent.succeeded -> finalize (trusted). Autres types ignorés.
    Retour: {"status": "ok", "orderId", "result"} ou {"status": "ignored"}
    """
    event_type = (event or {}).get("type")
    if event_type != "payment_intent.succeeded":
        logger.info("payments.webhook ignored type=%s", event_type)
        return {"status": "ignored"}
    intent = meta.intent_from_event(event)
    if not meta.order_id_from_intent(intent):
        logger.warning("payments.webhook intent without order metadata intent_id=%s", intent.get("id"))
        return {"status": "ignored"}
    result = finalize_payment(intent.get("id"), trusted=True)
    return {"status": "ok", "orderId": result["orderId"], "result": result["status"]}
