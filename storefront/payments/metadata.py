"""
Métadonnées Stripe du PaymentIntent: {orderId, userId|"guest"}.
"""
from typing import Any, Dict, Optional

GUEST_USER_ID = "guest"

# module storefront.payments.metadata
def make_metadata(order_id: str, auth_user_id: Optional[str]) -> Dict[str, str]:
    return {"orderId": str(order_id), "userId": str(auth_user_id) if auth_user_id else GUEST_USER_ID}


def order_id_from_intent(intent: Dict[str, Any]) -> Optional[str]:
    """orderId porté par intent.metadata, None si absent."""
    meta = intent.get("metadata") if isinstance(intent, dict) else None
    order_id = meta.get("orderId") if isinstance(meta, dict) else None
    return str(order_id) if order_id else None


def intent_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait l'objet PaymentIntent d'un event webhook (event.data.object).
    - Tolérant: retourne {} si la structure est inattendue.
    """
    data = (event or {}).get("data") if isinstance(event, dict) else None
    obj = (data or {}).get("object") if isinstance(data, dict) else None
    return obj if isinstance(obj, dict) else {}
