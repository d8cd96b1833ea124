"""
Adaptateur Stripe: centralise les appels PaymentIntent et la configuration Stripe.
Les objets Stripe sont convertis en dict pour le reste du code.
"""
from typing import Any, Dict, Optional

import stripe
from fastapi import Request

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_API_VERSION

# module storefront.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key / api_version si STRIPE_SECRET_KEY est défini.
    - En absence de clé, les appels Stripe échoueront côté SDK (No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    if STRIPE_API_VERSION:
        stripe.api_version = STRIPE_API_VERSION
    return stripe


def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


def retrieve_payment_intent(payment_intent_id: str) -> Dict[str, Any]:
    """Retour: dict intent (id, status, amount, currency, metadata, client_secret...)."""
    require_stripe()
    return _as_dict(stripe.PaymentIntent.retrieve(payment_intent_id))


def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    receipt_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent.
    - amount: en centimes
    - automatic_payment_methods activé (moyens de paiement gérés par le tableau de bord Stripe)
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": currency.lower(),
        "metadata": metadata,
        "automatic_payment_methods": {"enabled": True},
    }
    if receipt_email:
        params["receipt_email"] = receipt_email
    return _as_dict(stripe.PaymentIntent.create(**params))


def update_payment_intent_amount(payment_intent_id: str, amount: int) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.PaymentIntent.modify(payment_intent_id, amount=amount))


async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    return _as_dict(event)
