"""
Machine à états du tunnel de commande.
- Les transitions sont une fonction pure de (état, événement).
- CheckoutSession est la valeur sérialisée en session (état, commande active, message en attente).
"""
from enum import Enum
from typing import Any, Dict, MutableMapping, Optional

from storefront.config import CHECKOUT_SESSION_KEY
from .errors import InvalidTransition


class CheckoutState(str, Enum):
    EMPTY_CART = "empty_cart"
    DETAILS = "details"
    PAYMENT = "payment"
    COMPLETE = "complete"


class CheckoutEvent(str, Enum):
    CART_FILLED = "cart_filled"
    CART_EMPTIED = "cart_emptied"
    SUBMIT_CARD = "submit_card"
    SUBMIT_TERMS = "submit_terms"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    BACK = "back"
    RESUME = "resume"
    FINALIZE_REPLAYED = "finalize_replayed"


S, E = CheckoutState, CheckoutEvent

TRANSITIONS: Dict[CheckoutState, Dict[CheckoutEvent, CheckoutState]] = {
    S.EMPTY_CART: {
        E.CART_FILLED: S.DETAILS,
        E.CART_EMPTIED: S.EMPTY_CART,
        E.RESUME: S.PAYMENT,
        E.FINALIZE_REPLAYED: S.COMPLETE,
    },
    S.DETAILS: {
        E.CART_FILLED: S.DETAILS,
        E.CART_EMPTIED: S.EMPTY_CART,
        E.SUBMIT_CARD: S.PAYMENT,
        E.SUBMIT_TERMS: S.COMPLETE,
        E.RESUME: S.PAYMENT,
        # retour passerelle rejoué après réinitialisation de la session (finalize vérifié côté serveur)
        E.FINALIZE_REPLAYED: S.COMPLETE,
    },
    S.PAYMENT: {
        E.PAYMENT_SUCCEEDED: S.COMPLETE,
        E.PAYMENT_FAILED: S.PAYMENT,
        E.RESUME: S.PAYMENT,
        E.BACK: S.DETAILS,
        # enregistrement de reprise perdu: le panier décide
        E.CART_FILLED: S.DETAILS,
        E.CART_EMPTIED: S.EMPTY_CART,
    },
    # état terminal: aucune transition sortante
    S.COMPLETE: {},
}


def transition(state: CheckoutState, event: CheckoutEvent) -> CheckoutState:
    try:
        return TRANSITIONS[state][event]
    except KeyError:
        raise InvalidTransition(f"Cannot apply '{event.value}' while checkout is '{state.value}'.")


def sync_event(has_pending_payment: bool, cart_empty: bool) -> CheckoutEvent:
    """Un enregistrement de reprise force RESUME (Payment), quel que soit le panier."""
    if has_pending_payment:
        return E.RESUME
    return E.CART_EMPTIED if cart_empty else E.CART_FILLED


class CheckoutSession:
    def __init__(
        self,
        state: CheckoutState = CheckoutState.DETAILS,
        active_order_id: Optional[str] = None,
        notice: Optional[Dict[str, str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.state = state
        self.active_order_id = active_order_id
        # message à afficher au prochain chargement (retour passerelle)
        self.notice = notice
        # dernier formulaire soumis, pour pré-remplir Details et Payment
        self.details = details

    def apply(self, event: CheckoutEvent) -> CheckoutState:
        self.state = transition(self.state, event)
        return self.state

    def sync(self, has_pending_payment: bool, cart_empty: bool) -> CheckoutState:
        return self.apply(sync_event(has_pending_payment, cart_empty))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "activeOrderId": self.active_order_id,
            "notice": self.notice,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CheckoutSession":
        if not isinstance(data, dict):
            return cls()
        try:
            state = CheckoutState(data.get("state") or CheckoutState.DETAILS.value)
        except ValueError:
            state = CheckoutState.DETAILS
        if state == CheckoutState.COMPLETE:
            # état terminal jamais conservé: une nouvelle visite repart de Details
            state = CheckoutState.DETAILS
        notice = data.get("notice") if isinstance(data.get("notice"), dict) else None
        details = data.get("details") if isinstance(data.get("details"), dict) else None
        return cls(state, data.get("activeOrderId") or None, notice, details)

    @classmethod
    def load(cls, session: MutableMapping[str, Any]) -> "CheckoutSession":
        return cls.from_dict(session.get(CHECKOUT_SESSION_KEY))

    def save(self, session: MutableMapping[str, Any]) -> None:
        session[CHECKOUT_SESSION_KEY] = self.to_dict()

    @staticmethod
    def reset(session: MutableMapping[str, Any]) -> None:
        session.pop(CHECKOUT_SESSION_KEY, None)
