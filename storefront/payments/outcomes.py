"""
Résultats typés des appels de paiement (création d'intent, issue côté UI, finalize).
Retournés par le client de paiement au lieu de callbacks onSuccess/onError.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class IntentCreated:
    client_secret: str
    payment_intent_id: str
    status: str


@dataclass(frozen=True)
class IntentFailed:
    reason: str


@dataclass(frozen=True)
class PaymentSucceeded:
    payment_intent_id: str


@dataclass(frozen=True)
class PaymentRequiresAction:
    payment_intent_id: Optional[str]
    redirect_url: Optional[str] = None


@dataclass(frozen=True)
class PaymentFailed:
    reason: str


@dataclass(frozen=True)
class FinalizeSucceeded:
    order_id: str
    status: str

    @property
    def already_confirmed(self) -> bool:
        return self.status == "already_confirmed"


@dataclass(frozen=True)
class FinalizeFailed:
    reason: str


IntentOutcome = Union[IntentCreated, IntentFailed]
PaymentOutcome = Union[PaymentSucceeded, PaymentRequiresAction, PaymentFailed]
FinalizeOutcome = Union[FinalizeSucceeded, FinalizeFailed]


def parse_payment_outcome(payload: Dict[str, Any]) -> PaymentOutcome:
    """
    Traduit le rapport de l'UI passerelle:
    {"status": "succeeded"|"requires_action"|"failed", "paymentIntentId": ..., "redirectUrl": ..., "error": ...}
    """
    data = payload or {}
    status = str(data.get("status") or "").strip().lower()
    intent_id = data.get("paymentIntentId") or data.get("payment_intent") or None
    if status == "succeeded" and intent_id:
        return PaymentSucceeded(str(intent_id))
    if status == "requires_action":
        return PaymentRequiresAction(intent_id, data.get("redirectUrl") or None)
    reason = str(data.get("error") or "").strip() or "Payment failed. Please try again."
    return PaymentFailed(reason)
