"""
Accès aux données pour les commandes (tables orders, order_lines).
Toutes les écritures passent par le client service-role: la propriété est vérifiée côté serveur.
Les erreurs Supabase sont journalisées puis relevées en OrderStoreError (pas de valeur neutre:
le tunnel doit savoir qu'une écriture a échoué).
"""
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.orders.models import (
    ORDER_PENDING,
    ORDER_CONFIRMED,
    PAYMENT_STATUS_TERMS,
)

logger = logging.getLogger(__name__)

ORDER_PAYMENT_COLUMNS = "id, total, currency, status, stripe_payment_intent_id, created_by, payment_status"


class OrderStoreError(RuntimeError):
    pass


def _first(res) -> Optional[Dict[str, Any]]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

# module storefront.orders.repository
def create_order(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une commande et retourne la ligne créée (id attribué par la base)."""
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(payload).execute()
    except Exception as e:
        logger.exception("orders.repository.create_order failed")
        raise OrderStoreError("Failed to create order.") from e
    row = _first(res)
    if not row or not row.get("id"):
        raise OrderStoreError("Failed to create order. Please try again.")
    return row


def update_pending_order(order_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Met à jour une commande encore 'Pending' (re-soumission du formulaire).
    - Retour: la ligne mise à jour, ou None si la commande n'existe plus ou n'est plus Pending.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update(payload)
            .eq("id", order_id)
            .eq("status", ORDER_PENDING)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.update_pending_order failed order_id=%s", order_id)
        raise OrderStoreError("Failed to update order.") from e
    return _first(res)


def replace_order_lines(order_id: str, lines: List[Dict[str, Any]]) -> None:
    """
    Remplace toutes les lignes d'une commande en une seule transaction
    (fonction Postgres replace_order_lines, voir sql/).
    """
    try:
        (
            supabase_client.get_service_supabase()
            .rpc("replace_order_lines", {"p_order_id": order_id, "p_lines": lines})
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.replace_order_lines failed order_id=%s lines=%s", order_id, len(lines))
        raise OrderStoreError("Failed to save order items.") from e


def confirm_terms_order(order_id: str) -> Optional[Dict[str, Any]]:
    """Passe une commande NET terms de Pending à Confirmed (sans passerelle)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({"status": ORDER_CONFIRMED, "payment_status": PAYMENT_STATUS_TERMS})
            .eq("id", order_id)
            .eq("status", ORDER_PENDING)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.confirm_terms_order failed order_id=%s", order_id)
        raise OrderStoreError("Failed to confirm order.") from e
    return _first(res)


def get_order(order_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(columns)
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        raise OrderStoreError("Failed to load order.") from e
    return _first(res)


def get_order_with_lines(order_id: str) -> Optional[Dict[str, Any]]:
    return get_order(order_id, columns="*, order_lines(id, sku, qty, unit_price, currency, product_id)")


def link_payment_intent(order_id: str, payment_intent_id: str, payment_status: str) -> None:
    """Rattache l'intent Stripe à la commande (un intent -> une commande, index unique)."""
    try:
        (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({"stripe_payment_intent_id": payment_intent_id, "payment_status": payment_status})
            .eq("id", order_id)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.link_payment_intent failed order_id=%s", order_id)
        raise OrderStoreError("Failed to link payment to order.") from e


def confirm_paid_order(order_id: str, payment_intent_id: str, payment_status: str) -> Optional[Dict[str, Any]]:
    """
    Transition Pending -> Confirmed conditionnelle (status = Pending dans le filtre).
    - Retour: la ligne confirmée, ou None si une autre exécution l'a déjà confirmée.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({
                "status": ORDER_CONFIRMED,
                "payment_status": payment_status,
                "stripe_payment_intent_id": payment_intent_id,
                "paid_at": _now_iso(),
            })
            .eq("id", order_id)
            .eq("status", ORDER_PENDING)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.confirm_paid_order failed order_id=%s", order_id)
        raise OrderStoreError("Failed to confirm order.") from e
    return _first(res)
