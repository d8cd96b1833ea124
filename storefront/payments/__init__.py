"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Stripe, métadonnées d'intent, fonction de paiement (create/finalize/webhook)
et client utilisé par le tunnel de commande.
"""

from .stripe_client import require_stripe, retrieve_payment_intent, create_payment_intent as create_stripe_intent, parse_event
from .metadata import make_metadata, order_id_from_intent, intent_from_event
from .service import PaymentBackendError, create_payment_intent, finalize_payment, handle_webhook_event
from .client import PaymentBackend, LocalPaymentBackend, HttpPaymentBackend, get_payment_backend
from .outcomes import (
    IntentCreated,
    IntentFailed,
    PaymentSucceeded,
    PaymentRequiresAction,
    PaymentFailed,
    FinalizeSucceeded,
    FinalizeFailed,
    parse_payment_outcome,
)

__all__ = [
    # stripe
    "require_stripe",
    "retrieve_payment_intent",
    "create_stripe_intent",
    "parse_event",
    # metadata
    "make_metadata",
    "order_id_from_intent",
    "intent_from_event",
    # fonction de paiement
    "PaymentBackendError",
    "create_payment_intent",
    "finalize_payment",
    "handle_webhook_event",
    # client
    "PaymentBackend",
    "LocalPaymentBackend",
    "HttpPaymentBackend",
    "get_payment_backend",
    # résultats
    "IntentCreated",
    "IntentFailed",
    "PaymentSucceeded",
    "PaymentRequiresAction",
    "PaymentFailed",
    "FinalizeSucceeded",
    "FinalizeFailed",
    "parse_payment_outcome",
]
